"""HTTP client for the C019 existence-in-life verification service."""

from __future__ import annotations

import logging

import httpx

from alive_checker.auth.hashing import to_base64_string
from alive_checker.auth.models import Token
from alive_checker.clock import Clock
from alive_checker.config import ClientSettings
from alive_checker.endpoint.classifier import classify_response
from alive_checker.endpoint.models import Outcome, RateLimited, ServerError
from alive_checker.endpoint.rate_limiter import FixedWindowRateLimiter, RateLimitExceededError

logger = logging.getLogger(__name__)

TRACKING_EVIDENCE_HEADER = "Agid-JWT-TrackingEvidence"
SIGNATURE_HEADER = "Agid-JWT-Signature"


class AliveCheckerEndpoint:
    """Sends one signed verification request and classifies the answer."""

    def __init__(
        self,
        *,
        settings: ClientSettings,
        client: httpx.Client,
        clock: Clock,
        rate_limiter: FixedWindowRateLimiter,
    ) -> None:
        self.settings = settings
        self.clock = clock
        self.rate_limiter = rate_limiter
        self._client = client

    def fetch_person_data(
        self,
        *,
        token: Token,
        audit_token: str,
        signature: str,
        body: str,
    ) -> Outcome:
        headers = {
            "Authorization": f"Bearer {token.access_token}",
            "Digest": f"SHA-256={to_base64_string(body)}",
            TRACKING_EVIDENCE_HEADER: audit_token,
            SIGNATURE_HEADER: signature,
            "Content-Type": "application/json",
        }

        try:
            self.rate_limiter.acquire()
        except RateLimitExceededError as exc:
            logger.error("Rate limit reached: %s", exc)
            return RateLimited(detail=str(exc))

        try:
            response = self._client.post(
                self.settings.service_url,
                content=body.encode("utf-8"),
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("Request to %s failed: %s", self.settings.service_url, exc)
            return ServerError(detail=str(exc) or exc.__class__.__name__)

        logger.debug("Response: HTTP %d %s", response.status_code, response.text)
        return classify_response(
            status_code=response.status_code,
            body=response.text,
            check_date=self.clock.now(),
        )
