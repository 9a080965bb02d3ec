"""Authentication models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class Token:
    """Bearer token returned by the client-credentials grant; never persisted."""

    access_token: str = ""
    expires_in: int = 0
    token_type: str = ""

    @classmethod
    def empty(cls) -> Token:
        return cls()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Token:
        return cls(
            access_token=str(payload.get("access_token") or ""),
            expires_in=int(payload.get("expires_in") or 0),
            token_type=str(payload.get("token_type") or ""),
        )


@dataclass(slots=True, frozen=True)
class AuthenticationResult:
    """Outcome of one authentication handshake."""

    token: Token
    audit_token: str
    is_success: bool

    @classmethod
    def failed(cls) -> AuthenticationResult:
        return cls(token=Token.empty(), audit_token="", is_success=False)
