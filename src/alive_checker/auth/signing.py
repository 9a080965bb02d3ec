"""Audit token, client assertion, and per-request signature builders.

All three artifacts are RS256 JWTs signed with the same private key and the
configured ``kid``. RSASSA-PKCS1-v1_5 is deterministic, so identical claims
produce byte-identical tokens; the random parts (``jti``, ``dnonce``) come from
injectable sources for that reason.
"""

from __future__ import annotations

import logging
import random
import socket
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any
from uuid import uuid4

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from alive_checker.auth.hashing import to_base64_string, to_hex_string
from alive_checker.clock import Clock
from alive_checker.config import ClientSettings

logger = logging.getLogger(__name__)

TOKEN_EXPIRATION = timedelta(minutes=5)
SIGNING_ALGORITHM = "RS256"
DNONCE_LENGTH = 13
LEVEL_OF_ASSURANCE = "LOA3"
CONTENT_TYPE_JSON = "application/json"


class SigningKeyError(RuntimeError):
    """Raised when the configured private key cannot be used for RS256 signing."""


class TokenCreator:
    """Signs claim sets with the client's RSA private key."""

    def __init__(self, *, key_id: str, private_key: RSAPrivateKey) -> None:
        self.key_id = key_id
        self._private_key = private_key

    @classmethod
    def from_pem_file(cls, *, key_id: str, path: Path) -> TokenCreator:
        try:
            pem = path.read_bytes()
        except OSError as error:
            raise SigningKeyError(f"Cannot read private key {path}: {error}") from error
        try:
            private_key = serialization.load_pem_private_key(pem, password=None)
        except ValueError as error:
            raise SigningKeyError(f"Invalid PEM private key in {path}: {error}") from error
        if not isinstance(private_key, RSAPrivateKey):
            raise SigningKeyError(f"Private key in {path} is not an RSA key.")
        return cls(key_id=key_id, private_key=private_key)

    def create_jwt_token(self, claims: dict[str, Any]) -> str:
        return jwt.encode(
            claims,
            self._private_key,
            algorithm=SIGNING_ALGORITHM,
            headers={"kid": self.key_id},
        )


class TokenService:
    """Builds the three signed artifacts the verifier demands."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        settings: ClientSettings,
        creator: TokenCreator,
        clock: Clock,
        id_factory: Callable[[], str] | None = None,
        rng: random.Random | None = None,
        host_name: str | None = None,
    ) -> None:
        self.settings = settings
        self.creator = creator
        self.clock = clock
        self._id_factory = id_factory or (lambda: str(uuid4()))
        self._random = rng or random.Random()  # noqa: S311
        self.host_name = host_name or socket.gethostname()

    def get_audit_token(self, correlation_id: str) -> str:
        """Tracking-evidence token describing who asks and why."""

        claims: dict[str, Any] = {
            "jti": correlation_id,
            "purposeId": self.settings.purpose_id,
            "dnonce": self._dnonce(),
            "userID": self.settings.user_id,
            "LoA": LEVEL_OF_ASSURANCE,
            "aud": self.settings.signature_audience,
            "userLocation": self.host_name,
            "iss": self.settings.client_id,
            "sub": self.settings.client_id,
            **self._time_claims(),
        }
        return self.creator.create_jwt_token(claims)

    def get_client_assertion(self, correlation_id: str, audit_token: str) -> str:
        """Client assertion bound to the audit token through its hex digest."""

        audit_hash = to_hex_string(audit_token)
        logger.debug("Audit hash: %s", audit_hash)
        claims: dict[str, Any] = {
            "jti": correlation_id,
            "sub": self.settings.client_id,
            "aud": self.settings.audience,
            "iss": self.settings.client_id,
            "purposeId": self.settings.purpose_id,
            **self._time_claims(),
            "digest": {"alg": "SHA256", "value": audit_hash},
        }
        return self.creator.create_jwt_token(claims)

    def get_signature(self, body: str) -> str:
        """Per-request integrity token over the exact body bytes sent."""

        digest = to_base64_string(body)
        claims: dict[str, Any] = {
            "jti": self._id_factory(),
            "sub": self.settings.client_id,
            "aud": self.settings.signature_audience,
            "iss": self.settings.client_id,
            **self._time_claims(),
            "signed_headers": [
                {"digest": f"SHA-256={digest}"},
                {"content-type": CONTENT_TYPE_JSON},
            ],
        }
        return self.creator.create_jwt_token(claims)

    def _time_claims(self) -> dict[str, int]:
        now = self.clock.now()
        issued_at = int(now.timestamp())
        return {
            "iat": issued_at,
            "nbf": issued_at,
            "exp": int((now + TOKEN_EXPIRATION).timestamp()),
        }

    def _dnonce(self) -> str:
        return "".join(str(self._random.randrange(10)) for _ in range(DNONCE_LENGTH))
