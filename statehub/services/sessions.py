from __future__ import annotations

from dataclasses import dataclass
import logging

from statehub.core.config import get_settings
from statehub.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from statehub.domain.accounts import AccountSnapshot
from statehub.persistence.repos.base import AccountStore
from statehub.services.credentials import CredentialGenerator, generate_credential


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionResult:
    created: bool
    credential: str


class AccountSessionService:
    """Session establishment and refresh on behalf of the upstream identity service.

    Account identities are always supplied by the caller; this service never
    allocates one.
    """

    def __init__(
        self,
        store: AccountStore,
        *,
        credential_secret: str | None = None,
        credential_generator: CredentialGenerator | None = None,
        default_balance: int | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._credential_secret = credential_secret or settings.credential_secret
        self._generate = credential_generator or generate_credential
        self._default_balance = settings.account_default_balance if default_balance is None else default_balance

    async def establish_session(
        self,
        account_id: str | None,
        *,
        email: str | None = None,
        external_access_token: str | None = None,
        credential: str | None = None,
    ) -> SessionResult:
        if not account_id:
            raise InvalidArgumentError("Account ID is required")

        existing = await self._store.get(account_id)
        if existing is None:
            if not email or not external_access_token:
                raise InvalidArgumentError(
                    "Email and access-token are required for new accounts", account_id=account_id
                )
            snapshot = AccountSnapshot(
                id=account_id,
                email=email,
                credential=self._generate(account_id, self._credential_secret),
                balance=self._default_balance,
                suspended=False,
                version=0,
                external_access_token=external_access_token,
            )
            try:
                created = await self._store.create(snapshot)
            except ConflictError:
                # A concurrent establish created the account first; refresh it instead.
                existing = await self._store.get(account_id)
                if existing is None:
                    raise
            else:
                logger.info("account_created account_id=%s", account_id)
                return SessionResult(created=True, credential=created.credential)

        updated = await self._refresh(
            existing, credential=credential, external_access_token=external_access_token
        )
        return SessionResult(created=False, credential=updated.credential)

    async def lookup_credential(
        self,
        account_id: str | None,
        *,
        external_access_token: str | None = None,
    ) -> str:
        if not account_id:
            raise InvalidArgumentError("Account ID is required")
        snapshot = await self._store.get(account_id)
        if snapshot is None:
            raise NotFoundError("Account not found", account_id=account_id)
        if external_access_token:
            snapshot = await self._refresh(snapshot, external_access_token=external_access_token)
        return snapshot.credential

    async def get_profile(self, account_id: str) -> AccountSnapshot:
        snapshot = await self._store.get(account_id)
        if snapshot is None:
            raise NotFoundError("Account not found", account_id=account_id)
        return snapshot

    async def _refresh(
        self,
        snapshot: AccountSnapshot,
        *,
        credential: str | None = None,
        external_access_token: str | None = None,
    ) -> AccountSnapshot:
        if credential is None and external_access_token is None:
            return snapshot
        try:
            return await self._store.update_session(
                snapshot, credential=credential, external_access_token=external_access_token
            )
        except ConflictError:
            # Session fields are last-writer-wins; retry once against the fresh version.
            fresh = await self._store.get(snapshot.id)
            if fresh is None:
                raise NotFoundError("Account not found", account_id=snapshot.id)
            return await self._store.update_session(
                fresh, credential=credential, external_access_token=external_access_token
            )
