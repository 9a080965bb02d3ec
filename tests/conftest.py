"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from alive_checker.config import ClientSettings
from alive_checker.queue.repository import CheckerRepository

SERVICE_URL = "https://anpr.example.test/C019-servizioAccertamentoEsistenzaVita/v1/anpr-service-e002"
AUTHENTICATION_URL = "https://auth.example.test/token.oauth2"


class StepClock:
    """Deterministic clock; every ``now()`` call moves time forward by ``step``."""

    def __init__(
        self,
        start: datetime = datetime(2024, 2, 13, 9, 30, tzinfo=UTC),
        step: timedelta = timedelta(milliseconds=1),
    ) -> None:
        self.current = start
        self.step = step

    def now(self) -> datetime:
        value = self.current
        self.current += self.step
        return value

    def advance(self, delta: timedelta) -> None:
        self.current += delta


@pytest.fixture(scope="session")
def rsa_private_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture()
def private_key_path(tmp_path: Path, rsa_private_key: RSAPrivateKey) -> Path:
    path = tmp_path / "private_key.pem"
    path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ),
    )
    return path


@pytest.fixture()
def client_settings(private_key_path: Path) -> ClientSettings:
    return ClientSettings(
        key_id="SkLpMIiLjUxasmi1b8lvrv3U8TRMWp61CfYUbmPBXsw",
        client_id="3eb7ceb9-0a22-4eda-97d0-ef71ccb2cf44",
        audience="auth.uat.interop.pagopa.it/client-assertion",
        signature_audience="https://modipa-val.anpr.interno.it/govway/rest/in/C019",
        purpose_id="0136c028-c4d0-4c5e-89ca-6630987564b2",
        private_key_path=private_key_path,
        user_id="UserId",
        service_url=SERVICE_URL,
        authentication_url=AUTHENTICATION_URL,
    )


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def repository(tmp_path: Path, clock: StepClock):
    repo = CheckerRepository(tmp_path / "checker.db", clock=clock)
    repo.init_schema()
    yield repo
    repo.close()
