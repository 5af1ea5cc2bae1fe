"""Tests for the HTTP API.

Tests the full request/response cycle for the qualified statement endpoints.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from eidas_csr import __version__
from eidas_csr.config import AuditConfig, DefaultsConfig, Settings
from eidas_csr.qcstatements.flavors import CertificateFlavor
from eidas_csr.qcstatements.roles import Role

PI_AI_HEX = (
    "306c3013060604008e4601063009060704008e4601060330550606040081982702"
    "304b302430220607040081982701020c065053505f50490607040081982701030c"
    "065053505f41490c1b46696e616e6369616c20436f6e6475637420417574686f72"
    "6974790c0647422d464341"
)

# --- Fixtures ---


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with QSEAL/PSP_AS defaults and a temporary audit log."""
    return Settings(
        defaults=DefaultsConfig(roles=[Role.ACCOUNT_SERVICING], flavor=CertificateFlavor.QSEAL),
        audit=AuditConfig(log_file=tmp_path / "audit.log"),
    )


@pytest.fixture
def test_app(settings: Settings) -> Generator[FastAPI, None, None]:
    """FastAPI app created via main.create_app with test settings."""
    from eidas_csr.main import create_app

    with (
        patch("eidas_csr.main.log_startup"),
        patch("eidas_csr.main.log_shutdown"),
    ):
        app = create_app(settings)
        yield app


@pytest.fixture
def client(test_app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client for the configured app."""
    with TestClient(test_app) as client:
        yield client


# --- GET /health Tests ---


class TestHealth:
    """Tests for GET /health."""

    def test_healthy(self, client: TestClient) -> None:
        """Reports status and version."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__}


# --- Application Tests ---


class TestCreateApp:
    """Tests for the application factory."""

    def test_settings_are_per_app(self, client: TestClient, tmp_path: Path) -> None:
        """A second app keeps its own defaults."""
        other_settings = Settings(
            defaults=DefaultsConfig(roles=[Role.PAYMENT_INITIATION], flavor=CertificateFlavor.QWAC),
            audit=AuditConfig(log_file=tmp_path / "other.log"),
        )
        from eidas_csr.main import create_app

        with patch("eidas_csr.main.log_startup"), patch("eidas_csr.main.log_shutdown"):
            other = TestClient(create_app(other_settings))

        first = client.post("/qcstatements", json={"country_code": "GB"}).json()
        second = other.post("/qcstatements", json={"country_code": "GB"}).json()

        assert client.post("/qcstatements/decode", json=first).json()["roles"] == ["PSP_AS"]
        assert other.post("/qcstatements/decode", json=second).json()["roles"] == ["PSP_PI"]

    def test_startup_and_shutdown_logged(self, settings: Settings) -> None:
        """Lifespan logs the configured address."""
        from eidas_csr.main import create_app

        with patch("eidas_csr.main.log_startup") as startup, patch("eidas_csr.main.log_shutdown") as shutdown:
            with TestClient(create_app(settings)):
                startup.assert_called_once_with(version=__version__, host="127.0.0.1", port=8080)
            shutdown.assert_called_once_with()


# --- GET /authorities Tests ---


class TestAuthorities:
    """Tests for GET /authorities."""

    def test_lists_all(self, client: TestClient) -> None:
        """Every authority is listed by country code."""
        response = client.get("/authorities")

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 31
        assert body["GB"] == {"name": "Financial Conduct Authority", "id": "GB-FCA"}


# --- POST /qcstatements Tests ---


class TestEncode:
    """Tests for POST /qcstatements."""

    def test_encodes_single_role(self, client: TestClient) -> None:
        """Hex output matches the codec."""
        with patch("eidas_csr.routes.qcstatements.log_qc_statement_encoded") as mock_log:
            response = client.post(
                "/qcstatements",
                json={"roles": ["PSP_PI"], "country_code": "GB", "flavor": "QWAC"},
            )

        assert response.status_code == 200
        assert response.json()["qc_statement"].startswith("305b3013")
        mock_log.assert_called_once_with(roles=["PSP_PI"], authority_id="GB-FCA", flavor="QWAC")

    def test_uses_configured_defaults(self, client: TestClient) -> None:
        """Missing roles and flavor come from settings."""
        response = client.post("/qcstatements", json={"country_code": "DE"})
        assert response.status_code == 200

        decoded = client.post("/qcstatements/decode", json=response.json())

        body = decoded.json()
        assert body["roles"] == ["PSP_AS"]
        assert body["authority_id"] == "DE-BAFIN"
        assert body["certificate_types"] == ["0.4.0.1862.1.6.2"]

    def test_unknown_country(self, client: TestClient) -> None:
        """Unknown country is 404 with error details."""
        response = client.post("/qcstatements", json={"roles": ["PSP_PI"], "country_code": "US"})

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "UnknownCountryCodeError"
        assert body["details"]["country_code"] == "US"

    def test_unknown_role(self, client: TestClient) -> None:
        """Unknown role is 400."""
        response = client.post("/qcstatements", json={"roles": ["PSP_XX"], "country_code": "GB"})

        assert response.status_code == 400
        assert response.json()["error"] == "UnknownRoleError"

    def test_unknown_flavor(self, client: TestClient) -> None:
        """Unknown flavor is 400."""
        response = client.post(
            "/qcstatements",
            json={"roles": ["PSP_PI"], "country_code": "GB", "flavor": "QESIG"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Unknown QC type: QESIG"

    def test_missing_country(self, client: TestClient) -> None:
        """Body without country code fails request validation."""
        response = client.post("/qcstatements", json={"roles": ["PSP_PI"]})

        assert response.status_code == 422


# --- POST /qcstatements/decode Tests ---


class TestDecode:
    """Tests for POST /qcstatements/decode."""

    def test_decodes_reference_vector(self, client: TestClient) -> None:
        """Packed reference vector decodes to both roles."""
        response = client.post("/qcstatements/decode", json={"qc_statement": PI_AI_HEX})

        assert response.status_code == 200
        assert response.json() == {
            "roles": ["PSP_PI", "PSP_AI"],
            "role_oids": ["0.4.0.19495.1.2", "0.4.0.19495.1.3"],
            "authority_name": "Financial Conduct Authority",
            "authority_id": "GB-FCA",
            "certificate_types": ["0.4.0.1862.1.6.3"],
        }

    def test_invalid_hex(self, client: TestClient) -> None:
        """Non-hex input is 400."""
        response = client.post("/qcstatements/decode", json={"qc_statement": "zz"})

        assert response.status_code == 400
        assert response.json()["error"] == "DecodingError"

    def test_truncated_statement(self, client: TestClient) -> None:
        """Truncated statement is 400."""
        response = client.post("/qcstatements/decode", json={"qc_statement": PI_AI_HEX[:-4]})

        assert response.status_code == 400
        assert response.json()["details"]["structure"] == "qcStatements"
