"""
Payment Gateway Base Classes and Interfaces

Defines the contract and base functionality for all payment gateway adapters
in FluidPay Connect: canonical result types, gateway errors, and the
HTTP transport helpers shared by every adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import httpx

from fluidpay_connect.core.logging import get_logger

logger = get_logger(__name__)


class PaymentGatewayType(str, Enum):
    """Supported payment gateway types."""
    FLUIDPAY = "fluidpay"


class PaymentMethodType(str, Enum):
    """Vaultable payment method kinds."""
    CARD = "card"
    ACH = "ach"
    TOKEN = "token"


AVS_MESSAGES = MappingProxyType({
    "A": "Street address matches, but postal code does not match.",
    "B": "Street address matches, but postal code not verified.",
    "C": "Street address and postal code do not match.",
    "D": "Street address and postal code match.",
    "E": "AVS data is invalid or AVS is not allowed for this card type.",
    "F": "Card member's name does not match, but billing postal code matches.",
    "G": "Non-U.S. issuing bank does not support AVS.",
    "H": "Card member's name does not match. Street address and postal code match.",
    "I": "Address not verified.",
    "J": "Card member's name, billing address, and postal code match.",
    "K": "Card member's name matches but billing address and billing postal code do not match.",
    "L": "Card member's name and billing postal code match, but billing address does not match.",
    "M": "Street address and postal code match.",
    "N": "Street address and postal code do not match.",
    "O": "Card member's name and billing address match, but billing postal code does not match.",
    "P": "Postal code matches, but street address not verified.",
    "Q": "Card member's name, billing address, and postal code match. Shipping information verified.",
    "R": "System unavailable.",
    "S": "U.S.-issuing bank does not support AVS.",
    "T": "Card member's name does not match, but street address matches.",
    "U": "Address information unavailable.",
    "V": "Card member's name, billing address, and billing postal code match.",
    "W": "Street address does not match, but 9-digit postal code matches.",
    "X": "Street address and 9-digit postal code match.",
    "Y": "Street address and 5-digit postal code match.",
    "Z": "Street address does not match, but 5-digit postal code matches.",
})

# match flag -> AVS codes carrying it; codes absent from every set leave the flag unset
AVS_STREET_MATCH = MappingProxyType({
    "Y": frozenset("ABDHJMOQTVXY"),
    "N": frozenset("CKLNWZ"),
    "X": frozenset("GS"),
})

AVS_POSTAL_MATCH = MappingProxyType({
    "Y": frozenset("DFHJLMPQVWXYZ"),
    "N": frozenset("ACKNO"),
    "X": frozenset("GS"),
})

CVV_MESSAGES = MappingProxyType({
    "D": "CVV check flagged transaction as suspicious",
    "I": "CVV failed data validation check",
    "M": "CVV matches",
    "N": "CVV does not match",
    "P": "CVV not processed",
    "S": "CVV should have been present",
    "U": "CVV request unable to be processed by issuer",
    "X": "CVV check not supported for card",
})


def _match_flag(table: Mapping[str, frozenset], code: Optional[str]) -> Optional[str]:
    for flag, codes in table.items():
        if code in codes:
            return flag
    return None


@dataclass(frozen=True)
class AVSResult:
    """Canonical address verification result."""
    code: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        return AVS_MESSAGES.get(self.code)

    @property
    def street_match(self) -> Optional[str]:
        return _match_flag(AVS_STREET_MATCH, self.code)

    @property
    def postal_match(self) -> Optional[str]:
        return _match_flag(AVS_POSTAL_MATCH, self.code)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "code": self.code,
            "message": self.message,
            "street_match": self.street_match,
            "postal_match": self.postal_match,
        }


@dataclass(frozen=True)
class CVVResult:
    """Card verification value result, passed through from the provider."""
    code: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        return CVV_MESSAGES.get(self.code)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"code": self.code, "message": self.message}


@dataclass
class Response:
    """Canonical result of a gateway operation."""
    success: bool
    message: Optional[str]
    params: Dict[str, Any]
    error_code: Optional[str] = None
    network_transaction_id: Optional[str] = None
    avs_result: AVSResult = field(default_factory=AVSResult)
    cvv_result: CVVResult = field(default_factory=CVVResult)
    test: bool = False


class PaymentError(Exception):
    """Payment gateway specific errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        provider: Optional[str] = None,
        gateway_response: Optional[Dict[str, Any]] = None,
        transaction_id: Optional[str] = None
    ):
        super().__init__(message)
        self.error_message = message
        self.error_code = error_code
        self.provider = provider
        self.gateway_response = gateway_response
        self.transaction_id = transaction_id


class ParameterError(PaymentError, ValueError):
    """Required input is missing or invalid; raised before any request is sent."""


class ResponseError(PaymentError):
    """Raised by the transport when the gateway answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str, provider: Optional[str] = None):
        super().__init__(
            message=f"Failed with {status_code}",
            error_code=str(status_code),
            provider=provider,
        )
        self.status_code = status_code
        self.body = body


class PaymentGateway(ABC):
    """Abstract base class for payment gateway adapters."""

    test_url: str = ""
    live_url: str = ""
    homepage_url: Optional[str] = None
    display_name: Optional[str] = None

    def __init__(self, test: bool = True, timeout_seconds: int = 30, **config):
        """
        Initialize the payment gateway with configuration.

        Args:
            test: Send requests to the gateway's test host
            timeout_seconds: HTTP client timeout
            **config: Additional configuration
        """
        self.config = config
        self.test = test
        self.timeout_seconds = timeout_seconds
        self.gateway_type = self._get_gateway_type()

    @abstractmethod
    def _get_gateway_type(self) -> PaymentGatewayType:
        """Return the gateway type identifier."""
        pass

    @abstractmethod
    async def purchase(self, options: Dict[str, Any]) -> Response:
        """
        Authorize and capture a payment in one step.

        Args:
            options: Transaction fields and payment method reference

        Returns:
            Response describing the gateway outcome

        Raises:
            ParameterError: If required options are missing
            PaymentError: If the gateway cannot be reached
        """
        pass

    @property
    def base_url(self) -> str:
        """Host for the current mode."""
        return self.test_url if self.test else self.live_url

    def requires(self, options: Mapping[str, Any], *keys: str) -> None:
        """Raise ParameterError unless every key is present and not None."""
        for key in keys:
            if options.get(key) is None:
                raise ParameterError(
                    message=f"Missing required parameter: {key}",
                    error_code="missing_parameter",
                    provider=self.gateway_type.value,
                )

    def amount(self, money: Any) -> Optional[int]:
        """
        Format money as integer cents.

        Integers are already cents; Decimal and float values are major units.
        """
        if money is None:
            return None
        if isinstance(money, int):
            return money
        try:
            cents = Decimal(str(money)) * 100
            return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        except (InvalidOperation, ValueError):
            raise ParameterError(
                message=f"Invalid amount: {money!r}",
                error_code="invalid_amount",
                provider=self.gateway_type.value,
            )

    async def ssl_post(self, url: str, data: str, headers: Dict[str, str]) -> str:
        """POST a raw body and return the response text."""
        return await self._ssl_request("POST", url, headers, data)

    async def ssl_get(self, url: str, headers: Dict[str, str]) -> str:
        """GET a URL and return the response text."""
        return await self._ssl_request("GET", url, headers)

    async def _ssl_request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        data: Optional[str] = None
    ) -> str:
        provider = self.gateway_type.value
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                if method == "GET":
                    response = await client.get(url, headers=headers)
                else:
                    response = await client.post(url, content=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error("gateway_connection_error", provider=provider, method=method, url=url, error=str(e))
            raise PaymentError(
                message=f"Connection error: {e}",
                error_code="connection_error",
                provider=provider,
            ) from e

        if not response.is_success:
            raise ResponseError(response.status_code, response.text, provider=provider)
        return response.text

    def get_supported_payment_methods(self) -> List[PaymentMethodType]:
        """
        Get list of supported payment method types.

        Returns:
            List of supported payment method types
        """
        return [PaymentMethodType.CARD]


class PaymentGatewayFactory:
    """Factory for creating payment gateway instances."""

    _gateways: Dict[PaymentGatewayType, type] = {}

    @classmethod
    def register_gateway(
        cls,
        gateway_type: PaymentGatewayType,
        gateway_class: type[PaymentGateway]
    ):
        """Register a payment gateway implementation."""
        cls._gateways[gateway_type] = gateway_class

    @classmethod
    def create_gateway(
        cls,
        gateway_type: PaymentGatewayType,
        **config
    ) -> PaymentGateway:
        """Create a payment gateway instance."""
        if gateway_type not in cls._gateways:
            raise ValueError(f"Unsupported gateway type: {gateway_type}")

        gateway_class = cls._gateways[gateway_type]
        return gateway_class(**config)

    @classmethod
    def get_supported_gateways(cls) -> List[PaymentGatewayType]:
        """Get list of registered gateway types."""
        return list(cls._gateways.keys())
