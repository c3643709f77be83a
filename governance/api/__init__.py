"""
HTTP API for the governance core (FastAPI + pydantic, served by uvicorn).
"""
