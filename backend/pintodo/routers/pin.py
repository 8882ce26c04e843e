from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from pintodo.core.limits import limiter, verify_rate_limit
from pintodo.core.settings import MIN_PIN_LENGTH, Settings
from pintodo.models import PinRequest, PinStatus
from pintodo.security import client_ip, get_app_settings, get_sessions, get_tracker
from pintodo.security.attempts import AttemptTracker
from pintodo.security.pin import verify_pin
from pintodo.security.sessions import SESSION_COOKIE_NAME, SessionStore, issue_trust, revoke_trust

router = APIRouter(prefix="/api", tags=["pin"])


@router.get("/pin-required", response_model=PinStatus)
def pin_required(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    tracker: AttemptTracker = Depends(get_tracker),
) -> PinStatus:
    if not settings.pin_required:
        return PinStatus(
            required=False,
            length=MIN_PIN_LENGTH,
            locked=False,
            attemptsLeft=tracker.max_attempts,
            lockoutMinutes=0,
        )

    ip = client_ip(request)
    lockout_minutes = tracker.is_locked_out(ip)
    return PinStatus(
        required=True,
        length=len(settings.pin),
        locked=bool(lockout_minutes),
        attemptsLeft=0 if lockout_minutes else tracker.attempts_left(ip),
        lockoutMinutes=lockout_minutes,
    )


@router.post("/verify-pin")
@limiter.limit(verify_rate_limit)
async def verify(
    request: Request,
    payload: PinRequest,
    settings: Settings = Depends(get_app_settings),
    tracker: AttemptTracker = Depends(get_tracker),
    sessions: SessionStore = Depends(get_sessions),
) -> JSONResponse:
    result = await verify_pin(
        payload.pin,
        settings.pin,
        tracker,
        client_ip(request),
        delay_ms=(settings.verify_delay_min_ms, settings.verify_delay_max_ms),
    )
    response = JSONResponse(status_code=result.status_code, content=result.to_payload())
    if result.valid and settings.pin_required:
        issue_trust(response, settings, sessions)
    return response


@router.post("/logout")
def logout(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionStore = Depends(get_sessions),
) -> JSONResponse:
    response = JSONResponse(content={"success": True})
    revoke_trust(response, request.cookies.get(SESSION_COOKIE_NAME), settings, sessions)
    return response
