"""Client-credentials handshake that trades a signed assertion for a bearer token."""

from __future__ import annotations

import logging

import httpx

from alive_checker.auth.models import AuthenticationResult, Token
from alive_checker.auth.signing import TokenService
from alive_checker.config import ClientSettings

logger = logging.getLogger(__name__)

CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
GRANT_TYPE = "client_credentials"


class AuthService:
    """Performs one independent authentication per call; reuse is the caller's concern."""

    def __init__(
        self,
        *,
        settings: ClientSettings,
        token_service: TokenService,
        client: httpx.Client,
    ) -> None:
        self.settings = settings
        self.token_service = token_service
        self._client = client

    def authenticate_assertion(self, correlation_id: str) -> AuthenticationResult:
        audit_token = self.token_service.get_audit_token(correlation_id)
        logger.debug("AuditToken: %s", audit_token)

        client_assertion = self.token_service.get_client_assertion(correlation_id, audit_token)
        logger.debug("ClientAssertion: %s", client_assertion)

        try:
            response = self._client.post(
                self.settings.authentication_url,
                data={
                    "client_id": self.settings.client_id,
                    "client_assertion": client_assertion,
                    "client_assertion_type": CLIENT_ASSERTION_TYPE,
                    "grant_type": GRANT_TYPE,
                },
            )
        except httpx.HTTPError as exc:
            logger.warning("Token request to %s failed: %s", self.settings.authentication_url, exc)
            return AuthenticationResult.failed()

        if not response.is_success:
            logger.warning(
                "Token not created: HTTP %d %s",
                response.status_code,
                response.text[:500],
            )
            return AuthenticationResult.failed()

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Token response is not valid JSON: %s", response.text[:500])
            return AuthenticationResult.failed()
        if not isinstance(payload, dict):
            logger.warning("Token response is not a JSON object: %s", response.text[:500])
            return AuthenticationResult.failed()

        try:
            token = Token.from_payload(payload)
        except (TypeError, ValueError) as exc:
            logger.warning("Token response has unusable fields: %s", exc)
            return AuthenticationResult.failed()
        logger.debug("Token authenticated, expires in %ss", token.expires_in)
        return AuthenticationResult(token=token, audit_token=audit_token, is_success=True)
