"""Shared pytest fixtures for all test suites."""

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gateway.app.config import Settings
from gateway.app.ledger.inmemory import InMemoryLedgerNetwork
from gateway.app.main import create_app


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: generator off, in-memory ledger."""
    return Settings(
        channel_name="mychannel",
        chaincode_name="ngo",
        peers=["peer0.org1.example.com"],
        ledger_url="",
        generator_enabled=False,
    )


@pytest.fixture
def network() -> InMemoryLedgerNetwork:
    return InMemoryLedgerNetwork()


@pytest.fixture
def app(settings: Settings, network: InMemoryLedgerNetwork) -> FastAPI:
    return create_app(settings=settings, ledger=network, bridge=network)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client sharing one event loop across HTTP and WebSocket calls."""
    with TestClient(app) as test_client:
        yield test_client
