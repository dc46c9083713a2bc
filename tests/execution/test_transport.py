"""Tests for the httpx transport and body decoding."""

import httpx
import pytest

from payspine.core.errors import BodyDecodeError, TransportTimeout
from payspine.execution.transport import (
    ExternalSysResponse,
    HttpxTransport,
    JsonBodyDecoder,
    PaymentRequest,
)


@pytest.fixture
def request_():
    return PaymentRequest(
        service_name="svc",
        account_name="acc-1",
        transaction_id="tx-1",
        payment_id="pay-1",
        amount=100,
    )


class TestPaymentRequest:
    def test_params_use_provider_names(self, request_):
        assert request_.params() == {
            "serviceName": "svc",
            "accountName": "acc-1",
            "transactionId": "tx-1",
            "paymentId": "pay-1",
            "amount": "100",
        }


class TestHttpxTransport:
    """Tests for HttpxTransport against httpx.MockTransport."""

    def test_posts_to_process_endpoint(self, request_):
        seen = []

        def handler(req: httpx.Request) -> httpx.Response:
            seen.append(req)
            return httpx.Response(200, json={"transactionId": "tx-1", "paymentId": "pay-1", "result": True})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        with HttpxTransport("http://provider:1234/", client=client) as transport:
            result = transport.call(request_, timeout_ms=1500)

        assert result.status_code == 200
        assert '"result":true' in result.body.replace(" ", "")
        req = seen[0]
        assert req.method == "POST"
        assert req.url.path == "/external/process"
        assert req.url.host == "provider"
        assert req.url.params["paymentId"] == "pay-1"
        assert req.url.params["amount"] == "100"
        assert req.content == b""

    def test_passes_status_and_body_through(self, request_):
        def handler(req):
            return httpx.Response(503, text="busy")

        transport = HttpxTransport("http://provider", client=httpx.Client(transport=httpx.MockTransport(handler)))

        result = transport.call(request_, timeout_ms=100)

        assert result.status_code == 503
        assert result.body == "busy"

    def test_timeout_becomes_transport_timeout(self, request_):
        """Test httpx timeouts surface as a TimeoutError subclass."""

        def handler(req):
            raise httpx.ReadTimeout("too slow", request=req)

        transport = HttpxTransport("http://provider", client=httpx.Client(transport=httpx.MockTransport(handler)))

        with pytest.raises(TransportTimeout) as exc_info:
            transport.call(request_, timeout_ms=250)

        assert isinstance(exc_info.value, TimeoutError)
        assert exc_info.value.timeout_ms == 250

    def test_other_errors_propagate(self, request_):
        def handler(req):
            raise httpx.ConnectError("refused", request=req)

        transport = HttpxTransport("http://provider", client=httpx.Client(transport=httpx.MockTransport(handler)))

        with pytest.raises(httpx.ConnectError):
            transport.call(request_, timeout_ms=250)


class TestJsonBodyDecoder:
    """Tests for JsonBodyDecoder."""

    def test_decodes_provider_body(self):
        body = '{"transactionId": "t", "paymentId": "p", "result": false, "message": "declined"}'

        decoded = JsonBodyDecoder().decode(body)

        assert decoded == ExternalSysResponse(transaction_id="t", payment_id="p", result=False, message="declined")

    def test_optional_fields(self):
        decoded = JsonBodyDecoder().decode('{"result": true}')
        assert decoded.result is True
        assert decoded.message is None

    @pytest.mark.parametrize("body", ["", "<html>busy</html>", '{"message": "no result"}'])
    def test_undecodable_body(self, body):
        with pytest.raises(BodyDecodeError) as exc_info:
            JsonBodyDecoder().decode(body)
        assert exc_info.value.reason.startswith("undecodable response body")
