from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from statehub.apps.api.deps import Principal, Services, get_services, require_access_key
from statehub.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from statehub.apps.api.response import SuccessEnvelope, success_response
from statehub.domain.notifications import FeedItem


router = APIRouter(prefix="/notifications", tags=["notifications"], responses=DEFAULT_ERROR_RESPONSES)


class FeedItemResponse(BaseModel):
    id: str
    scope: str
    classification: str
    body: str
    created_at: datetime
    expires_at: datetime | None = None
    read: bool


class FeedResponse(BaseModel):
    notifications: list[FeedItemResponse]


class MarkRequest(BaseModel):
    # Optional at the schema level so a missing id maps to INVALID_ARGUMENT, not 422.
    id: str | None = None


class MarkResponse(BaseModel):
    message: str


def _item_response(item: FeedItem) -> FeedItemResponse:
    return FeedItemResponse(
        id=item.id,
        scope=item.scope,
        classification=item.classification,
        body=item.body,
        created_at=item.created_at,
        expires_at=item.expires_at,
        read=item.read,
    )


@router.get("", response_model=SuccessEnvelope[FeedResponse])
async def list_notifications(
    request: Request,
    principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    items = await services.feed.list_feed(principal.account_id)
    data = FeedResponse(notifications=[_item_response(item) for item in items])
    return success_response(request=request, data=data)


@router.patch("/read", response_model=SuccessEnvelope[MarkResponse])
async def mark_notification_read(
    payload: MarkRequest,
    request: Request,
    principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    await services.feed.mark(principal.account_id, payload.id, "read")
    return success_response(request=request, data=MarkResponse(message="Notification marked as read"))


@router.delete("/delete", response_model=SuccessEnvelope[MarkResponse])
async def mark_notification_deleted(
    payload: MarkRequest,
    request: Request,
    principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    await services.feed.mark(principal.account_id, payload.id, "deleted")
    return success_response(request=request, data=MarkResponse(message="Notification marked as deleted"))
