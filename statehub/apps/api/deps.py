from __future__ import annotations

from dataclasses import dataclass
import logging

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncEngine

from statehub.core.config import Settings
from statehub.persistence.repos.base import AccountStore, NotificationStore, OverlayStore
from statehub.services.accounts import AccountActionService, ConflictRetryPolicy
from statehub.services.credentials import credentials_match
from statehub.services.feed import NotificationFeedService
from statehub.services.sessions import AccountSessionService


logger = logging.getLogger(__name__)

# Header used by older internal callers to carry the account id.
_LEGACY_ACCOUNT_ID_HEADER = "uid"


@dataclass
class Services:
    # Everything a request handler may touch; built once per app.
    settings: Settings
    accounts: AccountActionService
    sessions: AccountSessionService
    feed: NotificationFeedService
    engine: AsyncEngine | None = None


def build_services(
    settings: Settings,
    *,
    account_store: AccountStore,
    notification_store: NotificationStore,
    overlay_store: OverlayStore,
    engine: AsyncEngine | None = None,
) -> Services:
    return Services(
        settings=settings,
        accounts=AccountActionService(
            account_store,
            credential_secret=settings.credential_secret,
            retry_policy=ConflictRetryPolicy(
                max_attempts=settings.action_conflict_max_attempts,
                backoff_ms=settings.action_conflict_backoff_ms,
            ),
        ),
        sessions=AccountSessionService(
            account_store,
            credential_secret=settings.credential_secret,
            default_balance=settings.account_default_balance,
        ),
        feed=NotificationFeedService(
            notification_store,
            overlay_store,
            broadcast_prefix=settings.broadcast_id_prefix,
        ),
        engine=engine,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


class Principal(BaseModel):
    # Caller admitted by the shared-secret gate; account_id is the identity it vouches for.
    account_id: str | None = None
    auth_method: str = "access_key"


def _auth_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
    )


def _caller_account_id(request: Request, settings: Settings) -> str | None:
    value = request.headers.get(settings.account_id_header) or request.headers.get(_LEGACY_ACCOUNT_ID_HEADER)
    if value is None:
        return None
    return value.strip() or None


async def require_access_key(
    request: Request,
    services: Services = Depends(get_services),
) -> Principal:
    settings = services.settings
    account_id = _caller_account_id(request, settings)
    if not settings.auth_enabled:
        return Principal(account_id=account_id, auth_method="disabled")
    provided = request.headers.get(settings.access_key_header)
    if not credentials_match(provided, settings.access_key):
        # Log only routing context; the presented key never reaches the logs.
        logger.warning("auth_access_denied path=%s method=%s", request.url.path, request.method)
        raise _auth_error("Unauthorized")
    return Principal(account_id=account_id)
