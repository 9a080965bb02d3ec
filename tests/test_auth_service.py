from __future__ import annotations

import random
from urllib.parse import parse_qs

import allure
import httpx
from conftest import AUTHENTICATION_URL, StepClock
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from alive_checker.auth.service import CLIENT_ASSERTION_TYPE, AuthService
from alive_checker.auth.signing import TokenCreator, TokenService
from alive_checker.config import ClientSettings

pytestmark = [
    allure.epic("Signing Protocol"),
    allure.feature("Authentication"),
]


def _auth_service(
    settings: ClientSettings,
    private_key: RSAPrivateKey,
    handler,
) -> AuthService:
    token_service = TokenService(
        settings=settings,
        creator=TokenCreator(key_id=settings.key_id, private_key=private_key),
        clock=StepClock(),
        rng=random.Random(1),
        host_name="localhost",
    )
    return AuthService(
        settings=settings,
        token_service=token_service,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_successful_handshake_returns_token_and_audit_token(
    client_settings: ClientSettings,
    rsa_private_key: RSAPrivateKey,
) -> None:
    seen: dict[str, list[str]] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == AUTHENTICATION_URL
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        seen.update(parse_qs(request.content.decode()))
        return httpx.Response(
            200,
            json={"access_token": "access-123", "expires_in": 600, "token_type": "Bearer"},
        )

    service = _auth_service(client_settings, rsa_private_key, handler)

    result = service.authenticate_assertion("correlation-1")

    assert result.is_success is True
    assert result.token.access_token == "access-123"
    assert result.token.expires_in == 600
    assert result.audit_token.count(".") == 2
    assert seen["client_id"] == [client_settings.client_id]
    assert seen["client_assertion_type"] == [CLIENT_ASSERTION_TYPE]
    assert seen["grant_type"] == ["client_credentials"]
    assert seen["client_assertion"][0].count(".") == 2


def test_rejected_handshake_returns_failed_result(
    client_settings: ClientSettings,
    rsa_private_key: RSAPrivateKey,
) -> None:
    service = _auth_service(
        client_settings,
        rsa_private_key,
        lambda request: httpx.Response(401, json={"error": "invalid_client"}),
    )

    result = service.authenticate_assertion("correlation-1")

    assert result.is_success is False
    assert result.token.access_token == ""
    assert result.audit_token == ""


def test_transport_error_returns_failed_result(
    client_settings: ClientSettings,
    rsa_private_key: RSAPrivateKey,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service = _auth_service(client_settings, rsa_private_key, handler)

    assert service.authenticate_assertion("correlation-1").is_success is False


def test_each_call_authenticates_independently(
    client_settings: ClientSettings,
    rsa_private_key: RSAPrivateKey,
) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"access_token": f"token-{len(calls)}"})

    service = _auth_service(client_settings, rsa_private_key, handler)

    first = service.authenticate_assertion("a")
    second = service.authenticate_assertion("b")

    assert len(calls) == 2
    assert first.token.access_token == "token-1"
    assert second.token.access_token == "token-2"
    assert first.audit_token != second.audit_token


def test_non_json_token_response_returns_failed_result(
    client_settings: ClientSettings,
    rsa_private_key: RSAPrivateKey,
) -> None:
    service = _auth_service(
        client_settings,
        rsa_private_key,
        lambda request: httpx.Response(200, text="<html>maintenance</html>"),
    )

    assert service.authenticate_assertion("correlation-1").is_success is False


def test_non_numeric_expiry_returns_failed_result(
    client_settings: ClientSettings,
    rsa_private_key: RSAPrivateKey,
) -> None:
    service = _auth_service(
        client_settings,
        rsa_private_key,
        lambda request: httpx.Response(200, json={"access_token": "t", "expires_in": "soon"}),
    )

    assert service.authenticate_assertion("correlation-1").is_success is False
