"""Integration tests for the HTTP surface over the in-memory ledger."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from gateway.app.config import Settings
from gateway.app.errors import RegistrationError
from gateway.app.ledger.inmemory import InMemoryLedgerNetwork
from gateway.app.main import create_app
from gateway.app.streaming.broadcast import StreamState


def register(client: TestClient, username: str = "alice", org: str = "org1") -> dict:
    response = client.post("/users", json={"username": username, "orgName": org})
    assert response.status_code == 200
    return response.json()


class TestHealth:
    """Test /health."""

    def test_health_returns_200_empty(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.content == b""


class TestUsers:
    """Test POST /users."""

    def test_register_returns_credential(self, client: TestClient) -> None:
        data = register(client)

        assert data["success"] is True
        assert data["secret"]

    @pytest.mark.parametrize(
        ("body", "field"),
        [
            ({"orgName": "org1"}, "username"),
            ({"username": "", "orgName": "org1"}, "username"),
            ({"username": "alice"}, "orgName"),
            ({"username": "alice", "orgName": ""}, "orgName"),
            ({"username": 42, "orgName": "org1"}, "username"),
        ],
    )
    def test_missing_field_is_failure_descriptor(
        self,
        client: TestClient,
        network: InMemoryLedgerNetwork,
        body: dict,
        field: str,
    ) -> None:
        response = client.post("/users", json=body)

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "message": f"{field} field is missing or Invalid in the request",
        }
        # Ledger never contacted, nothing streaming
        assert client.app.state.identities.current is None  # type: ignore[attr-defined]
        assert client.app.state.broadcaster.state == StreamState.IDLE  # type: ignore[attr-defined]

    def test_non_json_body_is_failure_descriptor(self, client: TestClient) -> None:
        response = client.post(
            "/users", content=b"username=alice", headers={"content-type": "text/plain"}
        )

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_rejected_enrollment_is_failure_descriptor(self, settings: Settings) -> None:
        ledger = MagicMock()
        ledger.register = AsyncMock(side_effect=RegistrationError("alice is already registered"))
        bridge = MagicMock()
        bridge.subscribe = AsyncMock()
        app = create_app(settings=settings, ledger=ledger, bridge=bridge)

        with TestClient(app) as client:
            response = client.post("/users", json={"username": "alice", "orgName": "org1"})

        assert response.status_code == 200
        assert response.json() == {"success": False, "message": "alice is already registered"}
        bridge.subscribe.assert_not_called()

    def test_registration_starts_single_subscription(
        self, client: TestClient, network: InMemoryLedgerNetwork
    ) -> None:
        register(client, "alice", "org1")
        register(client, "bob", "org2")

        assert network.subscriber_count("mychannel") == 1
        broadcaster = client.app.state.broadcaster  # type: ignore[attr-defined]
        assert broadcaster.state == StreamState.STREAMING
        assert broadcaster.subscription[1].username == "alice"
        # Identity is last-write-wins
        assert client.app.state.identities.current.username == "bob"  # type: ignore[attr-defined]


class TestAssets:
    """Test /asset and /transfer."""

    def test_operations_before_registration_fail(self, client: TestClient) -> None:
        response = client.get("/asset", params={"id": "a1"})

        assert response.status_code == 500
        assert "No registered user" in response.json()["error"]

    def test_asset_lifecycle(self, client: TestClient) -> None:
        register(client)

        created = client.post("/asset", json={"id": "a1", "owner": "alice", "value": 10})
        assert created.status_code == 200
        assert created.json() == {"id": "a1", "owner": "alice", "value": "10"}

        fetched = client.get("/asset", params={"id": "a1"})
        assert fetched.status_code == 200
        assert fetched.json()["owner"] == "alice"

        updated = client.put("/asset", json={"id": "a1", "value": "12"})
        assert updated.status_code == 200
        assert updated.json()["value"] == "12"

        transferred = client.post("/transfer", json={"id": "a1", "newOwner": "bob"})
        assert transferred.status_code == 200
        assert transferred.json()["owner"] == "bob"

        deleted = client.delete("/asset", params={"id": "a1"})
        assert deleted.status_code == 200

        gone = client.get("/asset", params={"id": "a1"})
        assert gone.status_code == 500
        assert gone.json() == {"error": "The asset a1 does not exist"}

    def test_repeated_reads_are_identical(self, client: TestClient) -> None:
        register(client)
        client.post("/asset", json={"id": "a1", "owner": "alice"})

        first = client.get("/asset", params={"id": "a1"})
        second = client.get("/asset", params={"id": "a1"})

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()

    def test_body_overrides_query_string(self, client: TestClient) -> None:
        register(client)

        response = client.post("/asset", params={"id": "q", "owner": "q"}, json={"id": "b"})

        assert response.json() == {"id": "b", "owner": "q"}

    def test_invalid_body_is_500(self, client: TestClient) -> None:
        register(client)

        response = client.post(
            "/asset", content=b"[1, 2]", headers={"content-type": "application/json"}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Request body must be a JSON object"}

    def test_ledger_rejection_is_500(self, client: TestClient) -> None:
        register(client)
        client.post("/asset", json={"id": "a1"})

        response = client.post("/asset", json={"id": "a1"})

        assert response.status_code == 500
        assert response.json() == {"error": "The asset a1 already exists"}

    def test_unexpected_error_is_500(self, settings: Settings) -> None:
        ledger = MagicMock()
        ledger.register = AsyncMock(return_value={"success": True})
        ledger.query = AsyncMock(side_effect=RuntimeError("peer exploded"))
        bridge = MagicMock()
        bridge.subscribe = AsyncMock()
        app = create_app(settings=settings, ledger=ledger, bridge=bridge)

        with TestClient(app) as client:
            register(client)
            response = client.get(
                "/asset", params={"id": "a1"}, headers={"Origin": "http://ui.example"}
            )

        assert response.status_code == 500
        assert response.json() == {"error": "peer exploded"}
        assert response.headers["access-control-allow-origin"] == "*"

    def test_ledger_rejection_carries_cors_headers(self, client: TestClient) -> None:
        register(client)

        response = client.get(
            "/asset", params={"id": "missing"}, headers={"Origin": "http://ui.example"}
        )

        assert response.status_code == 500
        assert response.headers["access-control-allow-origin"] == "*"


class TestRequestTimeout:
    """Test the server-level request timeout."""

    def test_slow_ledger_call_times_out(self, settings: Settings) -> None:
        async def slow_query(request: object) -> dict:
            await asyncio.sleep(5)
            return {}

        settings = settings.model_copy(update={"request_timeout_ms": 50})
        ledger = MagicMock()
        ledger.register = AsyncMock(return_value={"success": True})
        ledger.query = slow_query
        bridge = MagicMock()
        bridge.subscribe = AsyncMock()
        app = create_app(settings=settings, ledger=ledger, bridge=bridge)

        with TestClient(app) as client:
            register(client)
            response = client.get(
                "/asset", params={"id": "a1"}, headers={"Origin": "http://ui.example"}
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Request timed out"}
        assert response.headers["access-control-allow-origin"] == "*"


class TestScenario:
    """End-to-end: register, health check, read a missing asset."""

    def test_register_health_missing_asset(self, settings: Settings) -> None:
        credential = {"success": True, "secret": "one-time-secret", "message": "enrolled"}
        network = InMemoryLedgerNetwork()
        ledger = MagicMock()
        ledger.register = AsyncMock(return_value=credential)
        ledger.query = network.query
        bridge = MagicMock()
        bridge.subscribe = AsyncMock()
        app = create_app(settings=settings, ledger=ledger, bridge=bridge)

        # The in-memory chaincode only serves enrolled identities
        asyncio.run(network.register("alice", "org1"))

        with TestClient(app) as client:
            registered = client.post("/users", json={"username": "alice", "orgName": "org1"})
            assert registered.status_code == 200
            assert registered.json() == credential

            assert client.get("/health").status_code == 200

            missing = client.get("/asset", params={"id": "nope"})
            assert missing.status_code == 500
            assert missing.json() == {"error": "The asset nope does not exist"}

        bridge.subscribe.assert_awaited_once()


class TestMetrics:
    """Test /metrics."""

    def test_metrics_expose_ledger_counters(self, client: TestClient) -> None:
        register(client)
        client.post("/asset", json={"id": "m1"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "ledger_operations_total" in response.text
        assert "registrations_total" in response.text
