"""Provider transport and response decoding.

The adapter talks to the provider through two narrow collaborators:

- ``Transport.call(request, timeout_ms)`` issues exactly one HTTP call and
  returns the status code and raw body, raising ``TransportTimeout`` when
  the per-call timeout elapses.
- ``BodyDecoder.decode(body)`` turns the raw body into an
  ``ExternalSysResponse`` or raises ``BodyDecodeError``.

``HttpxTransport`` POSTs an empty body to ``{base_url}/external/process``
with the payment identity in the query string::

    POST /external/process?serviceName=..&accountName=..&transactionId=..
                          &paymentId=..&amount=..

and the provider answers::

    {"transactionId": "...", "paymentId": "...", "result": true, "message": null}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from payspine.core.errors import BodyDecodeError, TransportTimeout

PROCESS_PATH = "/external/process"


@dataclass(frozen=True)
class PaymentRequest:
    """Identity of one provider call; built once per payment."""

    service_name: str
    account_name: str
    transaction_id: str
    payment_id: str
    amount: int

    def params(self) -> dict[str, str]:
        return {
            "serviceName": self.service_name,
            "accountName": self.account_name,
            "transactionId": self.transaction_id,
            "paymentId": self.payment_id,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: str


class Transport(Protocol):
    def call(self, request: PaymentRequest, timeout_ms: int) -> TransportResponse: ...


class ExternalSysResponse(BaseModel):
    """Provider response body."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: str | None = Field(default=None, alias="transactionId")
    payment_id: str | None = Field(default=None, alias="paymentId")
    result: bool
    message: str | None = None


class BodyDecoder(Protocol):
    def decode(self, body: str) -> ExternalSysResponse: ...


class JsonBodyDecoder:
    """Validates the provider's JSON body with pydantic."""

    def decode(self, body: str) -> ExternalSysResponse:
        try:
            return ExternalSysResponse.model_validate_json(body)
        except ValidationError as e:
            raise BodyDecodeError(f"undecodable response body: {body[:200]!r}", cause=e) from e


class HttpxTransport:
    """Synchronous httpx transport; one shared connection pool.

    Args:
        base_url: Provider base URL
        client: Preconfigured client (tests pass one with a MockTransport)
    """

    def __init__(self, base_url: str, client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client()

    def call(self, request: PaymentRequest, timeout_ms: int) -> TransportResponse:
        try:
            response = self._client.post(
                f"{self.base_url}{PROCESS_PATH}",
                params=request.params(),
                content=b"",
                timeout=timeout_ms / 1000,
            )
        except httpx.TimeoutException as e:
            raise TransportTimeout(timeout_ms) from e
        return TransportResponse(status_code=response.status_code, body=response.text)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *args) -> None:
        self.close()
