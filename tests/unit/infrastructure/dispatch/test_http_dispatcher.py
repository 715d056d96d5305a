"""Tests for the HTTP dispatcher to the EHR middleware."""

import json

import httpx
import pytest

from ehr_request_broker.domain.requests.exceptions import DispatchError
from ehr_request_broker.domain.requests.models import EhrRequest
from ehr_request_broker.infrastructure.config.models import (
    EhrMiddlewareConfig,
)
from ehr_request_broker.infrastructure.dispatch.http_dispatcher import (
    HttpEhrDispatcher,
)

CONFIG = EhrMiddlewareConfig(
    base_url="http://ehr.local",
    callback_base_url="http://broker.local/",
)


def _dispatcher(handler):
    client = httpx.Client(
        base_url=CONFIG.base_url, transport=httpx.MockTransport(handler)
    )
    return HttpEhrDispatcher(CONFIG, client=client)


def _request(**kwargs):
    return EhrRequest(
        query_signature="Encounter?date=2024", citizen_id="C1", **kwargs
    )


class TestHttpEhrDispatcher:
    """Test requests sent to the EHR middleware."""

    def test_request_is_posted_with_callback(self):
        """Test the middleware receives everything needed to call back.

        Given - A middleware accepting requests
        When - A request is sent with a token and a language preference
        Then - The body names the request, citizen, query and callback URL
        And - The headers carry the token and the language
        """
        captured = []

        def handler(http_request):
            captured.append(http_request)
            return httpx.Response(202)

        request = _request(preferred_languages="it-IT")

        _dispatcher(handler).send(request, "secret")

        sent = captured[0]
        assert sent.method == "POST"
        assert sent.url == "http://ehr.local/requests"
        assert json.loads(sent.content) == {
            "requestId": request.id,
            "citizenId": "C1",
            "query": "Encounter?date=2024",
            "callbackUrl": f"http://broker.local/callbacks/{request.id}",
        }
        assert sent.headers["Authorization"] == "Bearer secret"
        assert sent.headers["Accept-Language"] == "it-IT"
        assert sent.headers["X-Request-Id"] == request.id

    def test_optional_headers_are_omitted(self):
        captured = []

        def handler(http_request):
            captured.append(http_request)
            return httpx.Response(200)

        _dispatcher(handler).send(_request(), None)

        assert "Authorization" not in captured[0].headers
        assert "Accept-Language" not in captured[0].headers

    def test_error_status_raises_dispatch_error(self):
        """Test a refusal by the middleware is reported.

        Given - A middleware answering 503
        When - A request is sent
        Then - DispatchError carries the status code
        """
        dispatcher = _dispatcher(lambda r: httpx.Response(503))

        with pytest.raises(DispatchError) as exc_info:
            dispatcher.send(_request(), "secret")

        assert exc_info.value.status_code == 503
        assert "HTTP 503" in str(exc_info.value)

    def test_transport_error_raises_dispatch_error(self):
        def handler(http_request):
            raise httpx.ConnectError("Connection refused")

        with pytest.raises(DispatchError) as exc_info:
            _dispatcher(handler).send(_request(), "secret")

        assert exc_info.value.status_code is None
        assert "Connection refused" in str(exc_info.value)
