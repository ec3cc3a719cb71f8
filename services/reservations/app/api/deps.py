from datetime import datetime
from typing import Awaitable, Callable

from fastapi import Depends, Request

from app.application.authorization import Caller
from app.core_settings import get_settings
from app.domain.errors import Forbidden, Unauthorized
from app.domain.lifecycle import utcnow
from app.domain.models import Role
from app.infrastructure.auth_local import decode_access_token
from shared.core import set_request_context

BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise Unauthorized("Authentication required")
    return auth_header.split(" ", 1)[1]


async def get_caller(request: Request) -> Caller:
    # must stay on the event loop: the caller id is stored in the request's context
    token_data = decode_access_token(_bearer_token(request))
    if not token_data:
        raise Unauthorized("Invalid or expired token")
    try:
        caller = Caller(user_id=int(token_data["sub"]), role=Role(token_data["role"]))
    except (KeyError, ValueError):
        raise Unauthorized("Invalid or expired token")
    set_request_context(user_id=str(caller.user_id))
    return caller


def require_role(role: Role, message: str) -> Callable[..., Awaitable[Caller]]:
    async def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role != role:
            raise Forbidden(message)
        return caller
    return dependency


def get_clock() -> Callable[[], datetime]:
    return utcnow


def verify_cron_secret(request: Request) -> None:
    secret = get_settings().CRON_SECRET
    if not secret:
        return
    if request.headers.get("Authorization") != f"{BEARER_PREFIX}{secret}":
        raise Unauthorized("Invalid cron credentials")
