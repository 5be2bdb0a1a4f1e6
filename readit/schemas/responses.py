"""
schemas/responses.py — Response bodies for the HTTP surface

ErrorResponse is shared by the HTTPException and RequestValidationError
handlers in main.py; the health models back /health and /health/db.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    status_code: int
    request_id: str = ""
    detail: list | None = None


class HealthResponse(BaseModel):
    status: str
    version: str


class DatabaseHealthResponse(BaseModel):
    """schema_version is None until the first migration is applied."""

    status: str
    database: str
    schema_version: int | None = None
    dirty: bool = False
