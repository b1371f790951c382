from __future__ import annotations

import hashlib
import hmac
from typing import Callable


CredentialGenerator = Callable[[str, str], str]


def generate_credential(account_id: str, shared_secret: str) -> str:
    # Pure HMAC-SHA256 derivation; the same id and secret always yield the same credential.
    return hmac.new(
        shared_secret.encode("utf-8"),
        account_id.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def credentials_match(provided: str | None, expected: str) -> bool:
    # Constant-time comparison for shared secrets and credentials.
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
