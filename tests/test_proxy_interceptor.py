"""Unit tests for ProxyInterceptor forwarding and tracking URL extraction."""

import pytest
from unittest.mock import AsyncMock, Mock

from notify_relay.core.config import RelayConfig
from notify_relay.core.exceptions import MalformedUpstreamResponse, MissingTrackingField
from notify_relay.core.managers.proxy_interceptor import (
    ProxyInterceptor,
    extract_tracking_url,
)
from notify_relay.core.models.exchange import InboundRequest, UpstreamResponse


@pytest.fixture
def config():
    return RelayConfig(target="http://upstream.test/assemblies/")


@pytest.fixture
def scheduler():
    return Mock()


@pytest.fixture
def http_client():
    return AsyncMock()


@pytest.fixture
def interceptor(http_client, scheduler, config):
    return ProxyInterceptor(http_client, scheduler, config)


class TestExtractTrackingUrl:

    def test_returns_assembly_url(self):
        assert extract_tracking_url(b'{"assembly_url":"http://x/1"}') == "http://x/1"

    @pytest.mark.parametrize("body", [b"not json", b"", b"[]", b'"http://x/1"', b"\xff\xfe"])
    def test_non_object_bodies_are_malformed(self, body):
        with pytest.raises(MalformedUpstreamResponse):
            extract_tracking_url(body)

    @pytest.mark.parametrize(
        "body",
        [b"{}", b'{"assembly_url": ""}', b'{"assembly_url": null}', b'{"assembly_url": 42}'],
    )
    def test_missing_field(self, body):
        with pytest.raises(MissingTrackingField) as excinfo:
            extract_tracking_url(body)
        assert excinfo.value.field == "assembly_url"


class TestForward:

    def test_upstream_url_joins_target_and_path(self, interceptor):
        assert (
            interceptor.upstream_url(InboundRequest(method="POST", path="/"))
            == "http://upstream.test/assemblies/"
        )
        assert (
            interceptor.upstream_url(InboundRequest(method="GET", path="/abc", query="x=1&y=2"))
            == "http://upstream.test/assemblies/abc?x=1&y=2"
        )

    @pytest.mark.asyncio
    async def test_forward_strips_hop_by_hop_headers(self, interceptor, http_client):
        http_client.forward.return_value = UpstreamResponse(
            status=201,
            headers=[
                ("Content-Type", "application/json"),
                ("Content-Length", "29"),
                ("Content-Encoding", "gzip"),
                ("Transfer-Encoding", "chunked"),
                ("Set-Cookie", "a=1"),
                ("Set-Cookie", "b=2"),
            ],
            body=b'{"assembly_url":"http://x/1"}',
        )
        inbound = InboundRequest(
            method="POST",
            path="/",
            headers=[
                ("host", "localhost:8888"),
                ("content-length", "7"),
                ("connection", "keep-alive"),
                ("content-type", "application/x-www-form-urlencoded"),
                ("x-custom", "1"),
            ],
            body=b"params=",
        )

        upstream = await interceptor.forward(inbound)

        method, url, headers, body = http_client.forward.await_args.args
        assert method == "POST"
        assert url == "http://upstream.test/assemblies/"
        assert headers == [("content-type", "application/x-www-form-urlencoded"), ("x-custom", "1")]
        assert body == b"params="

        assert upstream.status == 201
        assert upstream.body == b'{"assembly_url":"http://x/1"}'
        assert upstream.headers == [
            ("Content-Type", "application/json"),
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
        ]
        # Forwarding alone never starts polling
        interceptor.scheduler.start.assert_not_called()


class TestObserve:

    @pytest.mark.asyncio
    async def test_starts_one_session_per_response(self, interceptor, scheduler):
        upstream = UpstreamResponse(status=200, body=b'{"assembly_url":"http://x/1"}')

        await interceptor.observe(upstream)
        await interceptor.observe(upstream)

        assert scheduler.start.call_count == 2
        scheduler.start.assert_called_with("http://x/1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"not json", b'{"error":"INVALID_SIGNATURE"}'])
    async def test_no_session_without_tracking_url(self, interceptor, scheduler, body):
        result = await interceptor.observe(UpstreamResponse(status=400, body=body))

        assert result is None
        scheduler.start.assert_not_called()
