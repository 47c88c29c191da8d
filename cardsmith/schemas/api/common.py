from typing import Any, Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Error envelope shared by every endpoint."""

    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
