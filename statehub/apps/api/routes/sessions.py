from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request, Response, status
from pydantic import AliasChoices, BaseModel, Field

from statehub.apps.api.deps import Principal, Services, get_services, require_access_key
from statehub.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from statehub.apps.api.response import SuccessEnvelope, success_response


router = APIRouter(prefix="/sessions", tags=["sessions"], responses=DEFAULT_ERROR_RESPONSES)


class SessionRequest(BaseModel):
    id: str | None = None
    email: str | None = None
    # Caller-supplied replacement credential for an existing account.
    token: str | None = None
    access_token: str | None = Field(
        default=None, validation_alias=AliasChoices("access_token", "access-token")
    )


class SessionResponse(BaseModel):
    message: str
    created: bool
    credential: str


class CredentialResponse(BaseModel):
    credential: str


@router.post("", response_model=SuccessEnvelope[SessionResponse])
async def establish_session(
    payload: SessionRequest,
    request: Request,
    response: Response,
    _principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    result = await services.sessions.establish_session(
        payload.id,
        email=payload.email,
        external_access_token=payload.access_token,
        credential=payload.token,
    )
    if result.created:
        response.status_code = status.HTTP_201_CREATED
        message = "Account created successfully"
    elif payload.token:
        message = "Credential updated successfully"
    else:
        message = "Session refreshed successfully"
    data = SessionResponse(message=message, created=result.created, credential=result.credential)
    return success_response(request=request, data=data)


@router.get("", response_model=SuccessEnvelope[CredentialResponse])
async def lookup_credential(
    request: Request,
    access_token: str | None = Header(default=None, alias="X-Access-Token"),
    principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    credential = await services.sessions.lookup_credential(
        principal.account_id, external_access_token=access_token
    )
    return success_response(request=request, data=CredentialResponse(credential=credential))
