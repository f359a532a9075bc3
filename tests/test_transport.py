"""Tests for the httpx transport, using httpx.MockTransport."""
import json

import httpx
import pytest

from skelpo_metrics.errors import BadURL, FailedOperation, TransportError
from skelpo_metrics.transport import HTTPXTransport


def make_transport(handler):
    return HTTPXTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_successful_request():
    """Test that a 2xx answer returns the body and the request is sent as given."""
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"id": "evt-1"})

    transport = make_transport(handler)
    body = transport.send_request(
        "POST",
        "https://metrics.example.com/events",
        {"Authorization": "k", "Content-Type": "application/json"},
        b'{"type": "x"}'
    )

    assert json.loads(body) == {"id": "evt-1"}
    assert seen[0].method == "POST"
    assert seen[0].headers["Authorization"] == "k"
    assert seen[0].content == b'{"type": "x"}'


def test_patch_without_body():
    """Test that body-less requests go out empty."""
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    transport = make_transport(handler)
    assert transport.send_request("PATCH", "https://metrics.example.com/events/E/lock", {}) == b""
    assert seen[0].method == "PATCH"
    assert seen[0].content == b""


@pytest.mark.parametrize("status", [199, 300, 404, 500])
def test_non_2xx_is_failed_operation(status):
    """Test that any status outside 200-299 fails."""
    transport = make_transport(lambda request: httpx.Response(status))

    with pytest.raises(FailedOperation) as exc_info:
        transport.send_request("PATCH", "https://metrics.example.com/events/E/reset", {})

    assert exc_info.value.status_code == status
    assert exc_info.value.identifier == "failedOperation"
    assert str(status) in str(exc_info.value)


def test_network_error_is_transport_error():
    """Test that connection failures are reported as transport errors."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = make_transport(handler)

    with pytest.raises(TransportError):
        transport.send_request("POST", "https://metrics.example.com/events", {}, b"{}")


@pytest.mark.parametrize("url", ["not a url", "ftp://metrics.example.com/events", "http://"])
def test_bad_url(url):
    """Test that unusable endpoints fail before any request is made."""
    seen = []
    transport = make_transport(lambda request: seen.append(request) or httpx.Response(200))

    with pytest.raises(BadURL):
        transport.send_request("POST", url, {}, b"{}")

    assert seen == []


def test_close():
    """Test that closing the transport closes the client."""
    transport = make_transport(lambda request: httpx.Response(200))
    transport.close()
    assert transport.client.is_closed
