"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("LOG_LEVEL", "WARNING")

from main import app, app_state
from services.expenses_service import ExpenseStore


@pytest.fixture
def client():
    """Test client running the app lifespan, so every test starts from an empty store."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store(client) -> ExpenseStore:
    """The store the running app is using."""
    return app_state["expense_store"]


@pytest.fixture
def valid_expense() -> dict:
    return {
        "amount": 12.5,
        "description": "Coffee",
        "category": "Food",
        "date": "2025-01-01",
    }
