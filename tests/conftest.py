"""Shared test configuration."""

import os
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

# Never talk to real services with real keys from a developer .env
os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("AIRSTACK_API_KEY", "test-airstack-key")

from config import load_settings


@pytest.fixture
def settings():
    return replace(load_settings(), request_timeout=1.0)


@pytest.fixture
def events():
    return []


@pytest.fixture
def record_event(events):
    return events.append


@pytest.fixture
def make_response():
    def _make(status_code=200, payload=None, text=""):
        res = MagicMock()
        res.status_code = status_code
        res.text = text
        if isinstance(payload, Exception):
            res.json.side_effect = payload
        else:
            res.json.return_value = payload if payload is not None else {}
        return res
    return _make
