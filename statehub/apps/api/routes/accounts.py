from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import AliasChoices, BaseModel, Field

from statehub.apps.api.deps import Principal, Services, get_services, require_access_key
from statehub.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from statehub.apps.api.response import SuccessEnvelope, success_response
from statehub.domain.accounts import AccountSnapshot, AuditEntry
from statehub.domain.actions import canonical_action_name, parse_action


router = APIRouter(prefix="/accounts", tags=["accounts"], responses=DEFAULT_ERROR_RESPONSES)


class AuditEntryResponse(BaseModel):
    sequence: int
    occurred_at: datetime
    kind: str
    justification: str
    executor: str
    quantity: int | None = None
    credential: str | None = None
    expires_at: datetime | None = None


class AccountResponse(BaseModel):
    id: str
    email: str
    balance: int
    suspended: bool
    credential: str
    created_at: datetime | None = None
    audit_log: list[AuditEntryResponse]


class AccountActionRequest(BaseModel):
    action: str
    # Left loosely typed so non-positive or malformed amounts surface as INVALID_ARGUMENT.
    amount: Any = None
    justification: str | None = Field(default=None, validation_alias=AliasChoices("justification", "reason"))
    executor: str | None = None
    expiry: datetime | None = None


class AccountActionResponse(BaseModel):
    message: str
    account: AccountResponse


def _entry_response(entry: AuditEntry) -> AuditEntryResponse:
    return AuditEntryResponse(
        sequence=entry.sequence,
        occurred_at=entry.occurred_at,
        kind=entry.kind,
        justification=entry.justification,
        executor=entry.executor,
        quantity=entry.quantity,
        credential=entry.credential,
        expires_at=entry.expires_at,
    )


def account_response(snapshot: AccountSnapshot) -> AccountResponse:
    # External identity-provider tokens are deliberately left out of the payload.
    return AccountResponse(
        id=snapshot.id,
        email=snapshot.email,
        balance=snapshot.balance,
        suspended=snapshot.suspended,
        credential=snapshot.credential,
        created_at=snapshot.created_at,
        audit_log=[_entry_response(entry) for entry in snapshot.audit_log],
    )


@router.get("/{account_id}", response_model=SuccessEnvelope[AccountResponse])
async def get_account(
    account_id: str,
    request: Request,
    _principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    snapshot = await services.sessions.get_profile(account_id)
    return success_response(request=request, data=account_response(snapshot))


@router.patch("/{account_id}", response_model=SuccessEnvelope[AccountActionResponse])
async def apply_account_action(
    account_id: str,
    payload: AccountActionRequest,
    request: Request,
    _principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    # An unknown account answers 404 before the action name is checked.
    await services.sessions.get_profile(account_id)
    action = parse_action(
        payload.action,
        amount=payload.amount,
        justification=payload.justification,
        expires_at=payload.expiry,
    )
    updated = await services.accounts.apply_action(account_id, action, executor=payload.executor)
    response = AccountActionResponse(
        message=f"{canonical_action_name(payload.action)} executed successfully",
        account=account_response(updated),
    )
    return success_response(request=request, data=response)
