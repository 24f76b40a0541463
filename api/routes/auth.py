"""
api/routes/auth.py -- Admin login, logout and session status.

Routes:
  POST   /api/auth  -- password login; sets the session cookie
  DELETE /api/auth  -- clears the session cookie
  GET    /api/auth  -- {"authenticated": bool}

Security:
  Failed-login limiter: 10 failures per client per 15 minutes, then 429 with
      Retry-After until the window expires. Checked BEFORE the body is parsed
      and before the credential check, so a locked-out client is rejected
      even with the right password or a malformed body.
  slowapi throttle: 30 requests/minute per client on POST as an outer cap.
  Cache-Control: no-store on every login response.
  Bad username and bad password share one generic 401 message.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from api.limiter import LOGIN_REQUEST_LIMIT, limiter
from api.models import AuthStatusResponse, ErrorDetail, ErrorResponse, LoginRequest, SuccessResponse
from auth import service
from auth.dependencies import client_identity, get_login_limiter, get_session_gate
from auth.limiter import LoginRateLimiter
from auth.session import SessionGate

# Auth policy:
# - POST   /api/auth: public -- login endpoint must be unauthenticated
# - DELETE /api/auth: public -- clearing a cookie needs no prior auth
# - GET    /api/auth: public -- reports whether the caller is logged in
router = APIRouter()


def _login_error(status_code: int, code: str, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(exclude_none=True),
        headers=headers,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _rate_limited(retry_after_seconds: int | None) -> JSONResponse:
    return _login_error(
        429,
        "rate_limited",
        "Too many failed attempts. Please try again later.",
        headers={"Retry-After": str(retry_after_seconds)},
    )


async def _read_login_body(request: Request) -> LoginRequest:
    """Parse the JSON body by hand so it happens AFTER the rate-limit check.

    Declaring `body: LoginRequest` as a parameter would make FastAPI validate
    it before the handler runs, and a locked-out client sending junk would
    get 422 instead of 429.
    """
    try:
        return LoginRequest.model_validate_json(await request.body())
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc


@limiter.limit(LOGIN_REQUEST_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post(
    "/auth",
    response_model=SuccessResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": LoginRequest.model_json_schema()}},
        }
    },
)
async def login(
    request: Request,
    response: Response,
    gate: SessionGate = Depends(get_session_gate),
    login_limiter: LoginRateLimiter = Depends(get_login_limiter),
):
    """Authenticate the admin; on success set the session cookie.

    The rate-limit check runs before the body is read or validated, so a
    locked-out client gets 429 whatever it sends.
    """
    client_id = client_identity(request)
    decision = login_limiter.check(client_id)
    if decision.limited:
        return _rate_limited(decision.retry_after_seconds)

    body = await _read_login_body(request)
    if not body.username or not body.password:
        return _login_error(400, "missing_credentials", "Username and password are required")

    # bcrypt and the credential collaborator block; keep them off the event loop.
    result = await run_in_threadpool(service.login, gate, login_limiter, client_id, body.username, body.password)
    if result.reason == "rate_limited":
        # Another request from the same client crossed the threshold meanwhile.
        return _rate_limited(result.retry_after_seconds)
    if not result.accepted:
        return _login_error(401, "bad_credentials", "Invalid credentials")

    # Cookie was attached to `response` by the gate; FastAPI merges it.
    response.headers["Cache-Control"] = "no-store"
    return SuccessResponse()


@router.delete("/auth", response_model=SuccessResponse)
async def logout(gate: SessionGate = Depends(get_session_gate)) -> SuccessResponse:
    """Clear the session cookie. The token itself stays valid until the secret rotates."""
    service.logout(gate)
    return SuccessResponse()


@router.get("/auth", response_model=AuthStatusResponse)
async def status(gate: SessionGate = Depends(get_session_gate)) -> AuthStatusResponse:
    """Report whether the caller holds a valid session cookie."""
    return AuthStatusResponse(authenticated=service.is_authenticated(gate))
