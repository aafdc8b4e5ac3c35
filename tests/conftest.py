"""Shared fixtures for calculator history tests."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app import create_app
from history import HistoryLedger
from service import HistoryCalculatorService
from settings import Settings


@pytest.fixture
def ledger() -> HistoryLedger:
    return HistoryLedger(max_history=100)


@pytest.fixture
def service(ledger) -> HistoryCalculatorService:
    return HistoryCalculatorService(ledger)


@pytest.fixture
def client(service) -> TestClient:
    app = create_app(service=service, settings=Settings(max_history=100))
    return TestClient(app)
