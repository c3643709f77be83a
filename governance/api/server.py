"""
Community Governance: API Server
================================

HTTP wrapper around GovernanceService.

Endpoints:
- GET  /health                       -> Service status
- POST /api/v1/decisions             -> Evaluate and record an operation
- POST /api/v1/decisions/emergency   -> Same, with community approval bypassed
- GET  /api/v1/decisions             -> Recorded governance decisions
- GET  /api/v1/integrity             -> Run an integrity assessment
- GET  /api/v1/integrity/history     -> Stored integrity reports
- GET  /api/v1/metrics               -> Metric aggregates

Structural errors in a submitted operation return 422. Policy rejections
return 200 with ``approved: false``.

Usage:
    uvicorn governance.api.server:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import GovernanceConfig
from ..contracts.base import Timestamp, TimeRange
from ..contracts.records import DECISION_RECORD
from ..errors import InvalidOperationError, RecordStoreError
from ..service import GovernanceService
from .mapper import (
    OperationRequest, operation_from_request, record_to_dict, recorded_to_dict,
    report_to_dict,
)

logger = logging.getLogger(__name__)

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

# Global Service Instance
service_instance: Optional[GovernanceService] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the governance service from the environment on startup."""
    global service_instance

    config = GovernanceConfig.from_env()
    logger.info(
        "Initializing governance service (store=%s, probe timeout=%gs)",
        config.store_backend, config.probe_timeout_seconds
    )
    service_instance = GovernanceService.from_config(config)

    yield

    logger.info("Shutting down governance service")
    service_instance.close()
    service_instance = None


app = FastAPI(
    title="Community Governance API",
    version="0.1.0",
    description="Policy decisions and integrity reports for community-governed operations",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidOperationError)
async def invalid_operation_handler(request: Request, exc: InvalidOperationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(RecordStoreError)
async def record_store_handler(request: Request, exc: RecordStoreError):
    logger.error("Record store error serving %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Record store unavailable"})


def _service() -> GovernanceService:
    if service_instance is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return service_instance


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """Service status."""
    _service()
    return {"status": "online"}


@app.post("/api/v1/decisions")
def submit_operation(request: OperationRequest):
    """Evaluate an operation and record the decision."""
    operation = operation_from_request(request)
    return recorded_to_dict(_service().submit(operation))


@app.post("/api/v1/decisions/emergency")
def submit_emergency_operation(request: OperationRequest):
    """Evaluate with every community-approval flag forced off."""
    operation = operation_from_request(request)
    return recorded_to_dict(_service().submit_emergency(operation))


@app.get("/api/v1/decisions")
def list_decisions(approved: Optional[bool] = None, kind: Optional[str] = None, limit: int = 100):
    """Recorded governance decisions, newest first."""
    service = _service()
    if service.store is None:
        raise HTTPException(status_code=503, detail="No record store configured")

    filter = {}
    if approved is not None:
        filter["approved"] = approved
    if kind is not None:
        filter["operation_kind"] = kind
    records = service.store.query(DECISION_RECORD, filter=filter)
    records = list(reversed(records))[:max(limit, 0)]
    return {"decisions": [record_to_dict(r) for r in records]}


@app.get("/api/v1/integrity")
def run_integrity_assessment():
    """Run the integrity aggregator and return the new report."""
    return report_to_dict(_service().assess())


@app.get("/api/v1/integrity/history")
def integrity_history(start: Optional[str] = None, end: Optional[str] = None):
    """Stored integrity reports, oldest first, optionally within [start, end]."""
    service = _service()
    if service.aggregator is None:
        raise HTTPException(status_code=503, detail="No integrity aggregator configured")

    time_range = None
    if start or end:
        try:
            time_range = TimeRange(
                start=Timestamp.from_iso(start) if start else Timestamp.from_iso("1970-01-01T00:00:00+00:00"),
                end=Timestamp.from_iso(end) if end else Timestamp.now(),
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    return {"reports": [report_to_dict(r) for r in service.aggregator.history(time_range)]}


@app.get("/api/v1/metrics")
def metrics():
    """Aggregates for every metric with recorded points."""
    service = _service()
    if service.metrics is None:
        return {"metrics": {}}
    return {"metrics": service.metrics.snapshot()}
