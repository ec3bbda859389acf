"""
Shared test configuration and fixtures for the FluidPay Connect test suite.
"""

import json
from typing import Any, Callable, Optional

import httpx
import pytest

from fluidpay_connect.core.config import Settings, clear_settings_cache


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Make every test read configuration fresh."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def http_response() -> Callable[..., httpx.Response]:
    """Build httpx responses as the FluidPay API would return them."""

    def _build(status_code: int = 200, payload: Optional[Any] = None, text: Optional[str] = None) -> httpx.Response:
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        return httpx.Response(status_code, content=text.encode("utf-8"))

    return _build


@pytest.fixture
def approved_transaction() -> dict:
    return {
        "status": "success",
        "msg": "success",
        "data": {
            "id": "txn_bq9k2l3rq8ci81sk0dl0",
            "type": "sale",
            "amount": 1112,
            "currency": "usd",
            "response": "approved",
            "response_code": 100,
            "response_body": {
                "card": {
                    "id": "card_bq9k2l3rq8ci81sk0dlg",
                    "avs_response_code": "Y",
                    "cvv_response_code": "M",
                }
            },
        },
    }


@pytest.fixture
def declined_transaction() -> dict:
    return {
        "status": "success",
        "msg": "success",
        "data": {
            "id": "txn_bq9k3fbrq8ci81sk0dm0",
            "response": "declined",
            "response_code": 202,
            "response_body": {
                "card": {
                    "avs_response_code": "N",
                    "cvv_response_code": "N",
                }
            },
        },
    }


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        fluidpay_api_key="api_test_key_123",
        fluidpay_test_mode=True,
        fluidpay_timeout_seconds=10,
    )
