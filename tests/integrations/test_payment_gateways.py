"""
Payment Gateway Framework Tests

Contract tests for the gateway base class, canonical result types
and the gateway factory.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from fluidpay_connect.integrations.payment_gateways import (
    AVSResult,
    CVVResult,
    FluidPayAdapter,
    ParameterError,
    PaymentError,
    PaymentGateway,
    PaymentGatewayFactory,
    PaymentGatewayType,
    Response,
    ResponseError,
)


class TestPaymentGatewayContract:
    """Contract tests for all payment gateway implementations."""

    def test_payment_gateway_interface_compliance(self):
        """Test that all payment gateways implement the required interface."""
        required_methods = ["purchase", "get_supported_payment_methods"]

        for gateway_class in [FluidPayAdapter]:
            gateway = gateway_class(api_key="test_key")

            assert isinstance(gateway, PaymentGateway)
            for method_name in required_methods:
                assert callable(getattr(gateway, method_name)), f"{gateway_class.__name__}.{method_name} not callable"

    def test_base_class_is_abstract(self):
        with pytest.raises(TypeError):
            PaymentGateway()


class TestGatewayHelpers:
    """Shared helpers on the base class."""

    @pytest.fixture
    def gateway(self):
        return FluidPayAdapter(api_key="test_key")

    @pytest.mark.parametrize("money,cents", [
        (None, None),
        (1000, 1000),
        (0, 0),
        (Decimal("10.00"), 1000),
        (Decimal("0.015"), 2),
        (19.99, 1999),
    ])
    def test_amount_in_cents(self, gateway, money, cents):
        assert gateway.amount(money) == cents

    @pytest.mark.parametrize("money", ["ten", "", "1,000.00", object()])
    def test_amount_rejects_non_numeric(self, gateway, money):
        with pytest.raises(ParameterError) as exc_info:
            gateway.amount(money)

        assert exc_info.value.error_code == "invalid_amount"
        assert exc_info.value.provider == "fluidpay"

    def test_requires_passes_when_present(self, gateway):
        gateway.requires({"a": 1, "b": False}, "a", "b")

    def test_requires_raises_on_missing_or_none(self, gateway):
        with pytest.raises(ParameterError) as exc_info:
            gateway.requires({"a": None}, "a")

        assert "a" in exc_info.value.error_message
        assert isinstance(exc_info.value, ValueError)
        assert isinstance(exc_info.value, PaymentError)

    @pytest.mark.asyncio
    async def test_ssl_post_raises_response_error_on_non_2xx(self, gateway, http_response):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = http_response(422, {"status": "failed"})

            with pytest.raises(ResponseError) as exc_info:
                await gateway.ssl_post("https://example.test/api", "{}", {})

            assert exc_info.value.status_code == 422
            assert exc_info.value.body == '{"status": "failed"}'
            assert exc_info.value.provider == "fluidpay"

    @pytest.mark.asyncio
    async def test_ssl_get_returns_text(self, gateway, http_response):
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = http_response(200, text="ok")

            assert await gateway.ssl_get("https://example.test/api", {}) == "ok"


class TestResultTypes:
    """Canonical Response, AVS and CVV results."""

    def test_response_defaults(self):
        response = Response(success=False, message=None, params={})

        assert response.error_code is None
        assert response.network_transaction_id is None
        assert response.avs_result == AVSResult()
        assert response.cvv_result == CVVResult()

    def test_avs_result_exact_match(self):
        result = AVSResult(code="Y")

        assert result.message == "Street address and 5-digit postal code match."
        assert result.street_match == "Y"
        assert result.postal_match == "Y"

    def test_avs_result_name_match(self):
        result = AVSResult(code="J")

        assert result.street_match == "Y"
        assert result.postal_match == "Y"
        assert result.to_dict()["code"] == "J"

    def test_avs_result_no_match(self):
        result = AVSResult(code="N")

        assert result.street_match == "N"
        assert result.postal_match == "N"

    def test_avs_result_without_code(self):
        result = AVSResult()

        assert result.message is None
        assert result.street_match is None
        assert result.postal_match is None

    def test_cvv_result(self):
        assert CVVResult(code="M").message == "CVV matches"
        assert CVVResult(code="Z").message is None
        assert CVVResult().to_dict() == {"code": None, "message": None}


class TestPaymentGatewayFactory:
    """Gateway registration and construction."""

    def test_fluidpay_registered(self):
        assert PaymentGatewayType.FLUIDPAY in PaymentGatewayFactory.get_supported_gateways()

    def test_create_gateway(self):
        gateway = PaymentGatewayFactory.create_gateway(PaymentGatewayType.FLUIDPAY, api_key="test_key", test=False)

        assert isinstance(gateway, FluidPayAdapter)
        assert gateway.base_url == "https://app.fluidpay.com"

    def test_create_unregistered_gateway(self):
        with patch.dict(PaymentGatewayFactory._gateways, clear=True):
            with pytest.raises(ValueError, match="Unsupported gateway type"):
                PaymentGatewayFactory.create_gateway(PaymentGatewayType.FLUIDPAY, api_key="test_key")
