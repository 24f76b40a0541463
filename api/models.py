"""
API request and response models for SiteCMS REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/auth.

    Both fields default to "" so a missing field reaches the handler and gets
    the same 400 as an empty one, instead of a 422 validation error.
    """

    username: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SuccessResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True


class AuthStatusResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    authenticated: bool


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope: {"error": {"code", "message", "detail"}}."""

    error: ErrorDetail
