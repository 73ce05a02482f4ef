# ABOUTME: Tests for the plain HTTP transport
# ABOUTME: Validates option normalization and transport error codes

import socket

import pytest
import requests
from unittest.mock import MagicMock

from gcloud_diagnostics.errors import RequestError
from gcloud_diagnostics.transport import (
    HttpTransport,
    normalize_options,
    request_kwargs,
    transport_error_code,
)


class TestNormalizeOptions:
    """Tests for request option coercion."""

    def test_string_becomes_url_option(self):
        """A bare URL should be wrapped in an options dict."""
        assert normalize_options("http://www.test.com/test") == {"url": "http://www.test.com/test"}

    def test_mapping_is_copied(self):
        """Mappings should be copied, not shared."""
        options = {"url": "http://www.test.com/test", "method": "POST"}

        normalized = normalize_options(options)

        assert normalized == options
        assert normalized is not options


class TestRequestKwargs:
    """Tests for translating options into requests arguments."""

    def test_defaults_to_get(self):
        """Method should default to GET with empty headers."""
        kwargs = request_kwargs({"url": "http://www.test.com/test"})

        assert kwargs == {"method": "GET", "url": "http://www.test.com/test", "headers": {}}

    def test_forwards_known_options_and_ignores_others(self):
        """Known options pass through, unknown keys are dropped."""
        kwargs = request_kwargs({
            "url": "http://www.test.com/test",
            "method": "POST",
            "headers": {"X-custom-header": "true"},
            "json": {"a": 1},
            "params": {"q": "x"},
            "X-custom-header": "true",
        })

        assert kwargs["method"] == "POST"
        assert kwargs["headers"] == {"X-custom-header": "true"}
        assert kwargs["json"] == {"a": 1}
        assert kwargs["params"] == {"q": "x"}
        assert "X-custom-header" not in kwargs

    def test_body_maps_to_data(self):
        """A body option should be sent as request data."""
        kwargs = request_kwargs({"url": "http://www.test.com/test", "body": "payload"})

        assert kwargs["data"] == "payload"

    def test_timeout_default_does_not_override_option(self):
        """Per-request timeouts win over the transport default."""
        assert request_kwargs({"url": "u"}, timeout=30)["timeout"] == 30
        assert request_kwargs({"url": "u", "timeout": 5}, timeout=30)["timeout"] == 5


class TestTransportErrorCode:
    """Tests for mapping requests exceptions to codes."""

    def test_name_resolution_failure_is_enotfound(self):
        """DNS failures anywhere in the chain should map to ENOTFOUND."""
        try:
            try:
                raise socket.gaierror(-2, "Name or service not known")
            except socket.gaierror as dns_error:
                raise requests.ConnectionError("lookup failed") from dns_error
        except requests.ConnectionError as error:
            assert transport_error_code(error) == "ENOTFOUND"

    def test_name_resolution_failure_in_args(self):
        """Wrapped errors passed as arguments should be inspected too."""
        error = requests.ConnectionError(socket.gaierror(-2, "Name or service not known"))

        assert transport_error_code(error) == "ENOTFOUND"

    def test_timeout_is_etimedout(self):
        """Timeouts should map to ETIMEDOUT."""
        assert transport_error_code(requests.ReadTimeout("slow")) == "ETIMEDOUT"

    def test_other_connection_errors_have_no_code(self):
        """Other connection failures carry no code."""
        assert transport_error_code(requests.ConnectionError("refused")) is None


class TestHttpTransport:
    """Tests for HttpTransport requests."""

    @pytest.mark.asyncio
    async def test_returns_response_and_body(self):
        """Transport should answer (response, body) for any status."""
        session = MagicMock()
        session.request.return_value = MagicMock(status_code=500, text="oops")
        transport = HttpTransport(session=session, timeout=3)

        response, body = await transport("http://www.test.com/test")

        assert response.status_code == 500
        assert body == "oops"
        session.request.assert_called_once_with(
            method="GET", url="http://www.test.com/test", headers={}, timeout=3
        )

    @pytest.mark.asyncio
    async def test_wraps_transport_failures(self):
        """requests exceptions should become RequestError with a code."""
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError(
            socket.gaierror(-2, "Name or service not known")
        )
        transport = HttpTransport(session=session)

        with pytest.raises(RequestError) as excinfo:
            await transport({"url": "http://metadata.google.internal/"})

        assert excinfo.value.code == "ENOTFOUND"
        assert isinstance(excinfo.value.__cause__, requests.ConnectionError)

    def test_close_closes_session(self):
        """close should release the requests session."""
        session = MagicMock()
        transport = HttpTransport(session=session)

        transport.close()

        session.close.assert_called_once_with()
