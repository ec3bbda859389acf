"""
Payment gateway integration modules

Provides adapters for payment processing platforms
with consistent interface and error handling.
"""

from .base import (
    AVSResult,
    CVVResult,
    ParameterError,
    PaymentError,
    PaymentGateway,
    PaymentGatewayFactory,
    PaymentGatewayType,
    PaymentMethodType,
    Response,
    ResponseError,
)
from .fluid_pay_adapter import FluidPayAdapter, TransactionType

__all__ = [
    "AVSResult",
    "CVVResult",
    "FluidPayAdapter",
    "ParameterError",
    "PaymentError",
    "PaymentGateway",
    "PaymentGatewayFactory",
    "PaymentGatewayType",
    "PaymentMethodType",
    "Response",
    "ResponseError",
    "TransactionType",
]
