"""
FluidPay Payment Gateway Adapter

Maps purchase and customer-vault operations onto the FluidPay REST API
and normalizes its JSON responses into the canonical Response type.
"""

import json
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from fluidpay_connect.core.config import Settings, get_settings
from fluidpay_connect.core.logging import get_logger

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

logger = get_logger(__name__)

TRANSACTION_ACTION = "transaction"
TOKEN_AUTH_ACTION = "token-auth"
VAULT_ACTION = "vault"

APPROVED_RESPONSE_CODE = 100

RESPONSE_CODE_MESSAGES = MappingProxyType({
    0: "Unknown",
    99: "Pending payment",
    100: "Approved",
    110: "Partial approved",
    101: "Approved, pending customer approval",
    200: "Decline",
    201: "Do not honor",
    202: "Insufficient funds",
    203: "Exceeds withdrawn limit",
    204: "Invalid Transaction",
    205: "SCA Decline",
    220: "Invalid Amount",
    221: "No such Issuer",
    222: "No credit Acct",
    223: "Expired Card",
    225: "Invalid CVC",
    226: "Cannot Verify Pin",
    240: "Refer to issuer",
    250: "Pick up card (no fraud)",
    251: "Lost card, pick up (fraud account)",
    252: "Stolen card, pick up (fraud account)",
    253: "Pick up card, special condition",
    261: "Stop recurring",
    262: "Stop recurring",
    300: "Gateway Decline",
    301: "Gateway Decline - Duplicate Transaction",
    310: "Gateway Decline - Rule Engine",
    320: "Gateway Decline - Chargeback",
    321: "Gateway Decline - Stop Fraud",
    322: "Gateway Decline - Closed Contact",
    323: "Gateway Decline - Stop Recurring",
    400: "Transaction error returned by processor",
    410: "Invalid merchant configuration",
    421: "Communication error with processor",
    430: "Duplicate transaction at processor",
    440: "Processor Format error",
})

# FluidPay AVS response code -> canonical AVS code
AVS_CODE_MAPPING = MappingProxyType({
    "0": "R",  # AVS not available
    "A": "A",  # Address match only
    "B": "B",  # Address matches, ZIP not verified
    "C": "E",  # Incompatible format
    "D": "J",  # Exact match
    "F": "J",  # Exact match, UK-issued cards
    "G": "G",  # Non-U.S. issuer does not participate
    "I": "I",  # Not verified
    "M": "J",  # Exact match
    "N": "N",  # No address or ZIP match
    "P": "P",  # Postal code match
    "R": "R",  # Issuer system unavailable
    "S": "S",  # Service not supported
    "U": "U",  # Address unavailable
    "W": "W",  # 9-character numeric ZIP match only
    "X": "X",  # Exact match, 9-character numeric ZIP
    "Y": "Y",  # Exact match, 5-character numeric ZIP
    "Z": "Z",  # 5-character ZIP match only
    "1": "L",  # Cardholder name and ZIP match
    "2": "J",  # Cardholder name, address and ZIP match
    "3": "O",  # Cardholder name and address match
    "4": "K",  # Cardholder name matches
    "5": "F",  # Cardholder name incorrect, ZIP matches
    "6": "H",  # Cardholder name incorrect, address and ZIP match
    "7": "T",  # Cardholder name incorrect, address matches
    "8": "N",  # Cardholder name, address, and ZIP do not match
})


class TransactionType(str, Enum):
    """FluidPay transaction types."""
    SALE = "sale"
    AUTHORIZE = "authorize"
    VERIFICATION = "verification"
    CREDIT = "credit"


TRANSACTION_FIELDS = (
    "type",
    "amount",
    "tax_amount",
    "shipping_amount",
    "currency",
    "description",
    "order_id",
    "po_number",
    "ip_address",
    "email_receipt",
    "email_address",
    "create_vault_record",
    "processor_id",
)

AMOUNT_FIELDS = frozenset({"amount", "tax_amount", "shipping_amount"})

CUSTOMER_REFERENCE_FIELDS = (
    "id",
    "payment_method_type",
    "payment_method_id",
    "billing_address_id",
    "shipping_address_id",
)

CUSTOMER_FIELDS = (
    "description",
    "flags",
    "default_payment",
    "default_billing_address",
    "default_shipping_address",
)

ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "postal_code",
    "country",
    "email",
    "phone",
    "fax",
)

PAYMENT_METHOD_FIELDS = MappingProxyType({
    PaymentMethodType.CARD: ("number", "expiration_date"),
    PaymentMethodType.ACH: ("account_number", "routing_number", "account_type", "sec_code"),
    PaymentMethodType.TOKEN: ("token",),
})


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _copy_fields(options: Mapping[str, Any], fields) -> Dict[str, Any]:
    return {name: options.get(name) for name in fields}


class FluidPayAdapter(PaymentGateway):
    """FluidPay payment gateway adapter."""

    test_url = "https://sandbox.fluidpay.com"
    live_url = "https://app.fluidpay.com"
    homepage_url = "https://www.fluidpay.com"
    display_name = "FluidPay"

    def __init__(
        self,
        api_key: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        test: bool = True,
        **config
    ):
        """
        Initialize FluidPay adapter.

        Args:
            api_key: FluidPay API key, sent as-is in the Authorization header
            username: FluidPay username used to request a session token
            password: FluidPay password used to request a session token
            test: Whether to use the sandbox environment
            **config: Additional configuration

        Raises:
            ParameterError: If neither an API key nor a username/password pair is given
        """
        if not api_key and not (username and password):
            raise ParameterError(
                message="FluidPay requires an api_key or a username and password",
                error_code="missing_credentials",
                provider=PaymentGatewayType.FLUIDPAY.value,
            )
        super().__init__(test=test, **config)
        self.api_key = api_key
        self.username = username
        self.password = password
        self.session_token: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FluidPayAdapter":
        """Build an adapter from application settings."""
        settings = settings or get_settings()
        return cls(
            api_key=settings.fluidpay_api_key,
            username=settings.fluidpay_username,
            password=settings.fluidpay_password,
            test=settings.fluidpay_test_mode,
            timeout_seconds=settings.fluidpay_timeout_seconds,
        )

    def _get_gateway_type(self) -> PaymentGatewayType:
        """Return the gateway type identifier."""
        return PaymentGatewayType.FLUIDPAY

    async def purchase(self, options: Dict[str, Any]) -> Response:
        """
        Run a transaction against a stored token or a vaulted customer.

        Args:
            options: Must contain ``payment_method``, either ``{"token": ...}``
                or ``{"customer": {"id": ..., ...}}``. Billing/shipping
                addresses and the transaction fields are copied through.

        Returns:
            Response with the decoded FluidPay response code

        Raises:
            ParameterError: If the payment method or transaction type is invalid
        """
        self.requires(options, "payment_method")

        post: Dict[str, Any] = {}
        self._add_payment_method(post, options)
        self._add_address(post, options)
        self._add_transaction_data(post, options)

        return await self._commit(TRANSACTION_ACTION, "transaction", post)

    async def create_customer_record(self, options: Dict[str, Any]) -> Response:
        """Create a vault customer with default payment method and addresses."""
        post = _copy_fields(options, CUSTOMER_FIELDS)
        return await self._commit(VAULT_ACTION, "vault/customer", post)

    async def get_customer_record(self, customer_id: str) -> Response:
        """Fetch a vault customer by id."""
        return await self._commit(VAULT_ACTION, f"vault/{customer_id}", method="GET")

    async def create_address_record(self, customer_id: str, options: Dict[str, Any]) -> Response:
        """Add an address to a vault customer."""
        post = _copy_fields(options, ADDRESS_FIELDS)
        return await self._commit(VAULT_ACTION, f"vault/customer/{customer_id}/address", post)

    async def create_payment_method_record(self, customer_id: str, options: Dict[str, Any]) -> Response:
        """
        Add a card, bank account or stored token to a vault customer.

        ``payment_method_type`` selects both the copied fields and the path suffix.
        """
        self.requires(options, "payment_method_type")
        kind = self._payment_method_type(options["payment_method_type"])

        post = _copy_fields(options, PAYMENT_METHOD_FIELDS[kind])
        return await self._commit(VAULT_ACTION, f"vault/customer/{customer_id}/{kind.value}", post)

    async def authenticate(self) -> Response:
        """
        Exchange username/password for a session token and cache it.

        The token is reused for the lifetime of the adapter; it is never refreshed.
        """
        post = {"username": self.username, "password": self.password}
        response = await self._commit(TOKEN_AUTH_ACTION, "token-auth", post)

        token = _dig(response.params, "data", "token")
        if response.success and token:
            self.session_token = token
            logger.info("fluidpay_session_token_acquired")
        return response

    def get_supported_payment_methods(self) -> list[PaymentMethodType]:
        """Get list of supported payment method types for FluidPay."""
        return list(PAYMENT_METHOD_FIELDS)

    def _add_payment_method(self, post: Dict[str, Any], options: Mapping[str, Any]) -> None:
        payment_method = options["payment_method"]
        if not isinstance(payment_method, Mapping):
            raise ParameterError(
                message="payment_method must be a mapping",
                error_code="invalid_payment_method",
                provider=self.gateway_type.value,
            )
        if "token" in payment_method:
            post["payment_method"] = {"token": payment_method["token"]}
        elif "customer" in payment_method:
            customer = payment_method["customer"]
            post["payment_method"] = {
                "customer": {k: customer[k] for k in CUSTOMER_REFERENCE_FIELDS if k in customer}
            }
        else:
            raise ParameterError(
                message="payment_method requires a token or a customer reference",
                error_code="invalid_payment_method",
                provider=self.gateway_type.value,
            )

    def _add_address(self, post: Dict[str, Any], options: Mapping[str, Any]) -> None:
        post["billing_address"] = options.get("billing_address")
        post["shipping_address"] = options.get("shipping_address")

    def _add_transaction_data(self, post: Dict[str, Any], options: Mapping[str, Any]) -> None:
        for name in TRANSACTION_FIELDS:
            value = options.get(name)
            if name in AMOUNT_FIELDS:
                value = self.amount(value)
            post[name] = value

        try:
            post["type"] = TransactionType(post["type"] or TransactionType.SALE).value
        except ValueError:
            raise ParameterError(
                message=f"Unsupported transaction type: {post['type']}",
                error_code="invalid_transaction_type",
                provider=self.gateway_type.value,
            )

    def _payment_method_type(self, value: Any) -> PaymentMethodType:
        try:
            return PaymentMethodType(value)
        except ValueError:
            raise ParameterError(
                message=f"Unsupported payment_method_type: {value}",
                error_code="invalid_payment_method_type",
                provider=self.gateway_type.value,
            )

    async def _commit(
        self,
        action: str,
        path: str,
        parameters: Optional[Dict[str, Any]] = None,
        method: str = "POST"
    ) -> Response:
        if action != TOKEN_AUTH_ACTION and not self.api_key and self.session_token is None:
            auth_response = await self.authenticate()
            if self.session_token is None:
                # the failed token-auth result stands in for the skipped call
                logger.warning("fluidpay_authentication_failed", action=action)
                return auth_response

        url = f"{self.base_url}/api/{path}"
        headers = self._request_headers(action)
        logger.debug("fluidpay_request", action=action, method=method, path=f"/api/{path}")

        try:
            if method == "GET":
                raw_response = await self.ssl_get(url, headers)
            else:
                raw_response = await self.ssl_post(url, json.dumps(parameters or {}), headers)
        except ResponseError as e:
            # declines arrive with non-2xx statuses; decode them like any other body
            logger.info("fluidpay_error_status", action=action, status_code=e.status_code)
            raw_response = e.body

        response = self._parse(raw_response)
        success = self._success_from(action, response)
        return Response(
            success=success,
            message=self._message_from(action, response),
            params=response,
            error_code=None if success else self._error_code_from(action, response),
            network_transaction_id=self._network_transaction_id_from(response),
            avs_result=AVSResult(code=self._avs_code_from(response)),
            cvv_result=CVVResult(code=self._cvv_result_from(response)),
            test=self.test,
        )

    def _parse(self, body: Optional[str]) -> Dict[str, Any]:
        if not body or not body.strip():
            return {}
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError as e:
            logger.error("fluidpay_invalid_response", error=str(e))
            raise PaymentError(
                message=f"Invalid JSON response from FluidPay: {body[:200]}",
                error_code="invalid_response",
                provider=self.gateway_type.value,
            ) from e
        # non-object bodies are kept under "data" so params stays a mapping
        return parsed if isinstance(parsed, dict) else {"data": parsed}

    def _request_headers(self, action: str) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if action != TOKEN_AUTH_ACTION:
            headers["Authorization"] = self._authorization_header()
        return headers

    def _authorization_header(self) -> str:
        if self.api_key:
            return self.api_key
        return f"Bearer {{ {self.session_token} }}"

    def _response_code(self, response: Dict[str, Any]) -> Optional[int]:
        code = _dig(response, "data", "response_code")
        try:
            return int(code)
        except (TypeError, ValueError):
            return None

    def _success_from(self, action: str, response: Dict[str, Any]) -> bool:
        if action == TOKEN_AUTH_ACTION:
            return _dig(response, "status") == "successful"
        if action == TRANSACTION_ACTION:
            return self._response_code(response) == APPROVED_RESPONSE_CODE
        return _dig(response, "status") == "success"

    def _message_from(self, action: str, response: Dict[str, Any]) -> Optional[str]:
        if action == TRANSACTION_ACTION:
            return RESPONSE_CODE_MESSAGES.get(self._response_code(response))
        return None

    def _error_code_from(self, action: str, response: Dict[str, Any]) -> Optional[str]:
        if action != TRANSACTION_ACTION:
            return None
        code = self._response_code(response)
        return None if code is None else str(code)

    def _avs_code_from(self, response: Dict[str, Any]) -> Optional[str]:
        return AVS_CODE_MAPPING.get(_dig(response, "data", "response_body", "card", "avs_response_code"))

    def _cvv_result_from(self, response: Dict[str, Any]) -> Optional[str]:
        return _dig(response, "data", "response_body", "card", "cvv_response_code")

    def _network_transaction_id_from(self, response: Dict[str, Any]) -> Optional[str]:
        return _dig(response, "data", "id")


PaymentGatewayFactory.register_gateway(PaymentGatewayType.FLUIDPAY, FluidPayAdapter)
