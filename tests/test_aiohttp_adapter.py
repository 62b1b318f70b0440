import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses
from yarl import URL

from notify_relay.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from notify_relay.core.exceptions import TransportError

"""
Tests for AioHttpClientAdapter behavior.

Expected outcomes:
- Status checks return the body text whatever the HTTP status, so the
  classifier (not the transport) decides what a body means.
- Forwarding returns status, headers and raw body untouched, redirects included.
- Network timeouts map to TransportError with status 504, other connection
  failures to TransportError with status 502.
"""


@pytest.mark.asyncio
async def test_get_text_returns_body():
    url = "http://status.test/assemblies/1"
    with aioresponses() as m:
        m.get(url, body='{"ok":"ASSEMBLY_EXECUTING"}', status=200)

        async with AioHttpClientAdapter() as client:
            assert await client.get_text(url) == '{"ok":"ASSEMBLY_EXECUTING"}'


@pytest.mark.asyncio
async def test_get_text_returns_error_bodies_too():
    url = "http://status.test/assemblies/missing"
    with aioresponses() as m:
        m.get(url, body='{"error":"ASSEMBLY_NOT_FOUND"}', status=404)

        async with AioHttpClientAdapter() as client:
            assert await client.get_text(url) == '{"error":"ASSEMBLY_NOT_FOUND"}'


@pytest.mark.asyncio
async def test_timeout_maps_to_transport_error():
    # Timeout case: simulate a network/adapter timeout. The adapter should map
    # asyncio.TimeoutError to a TransportError with status 504.
    url = "http://status.test/slow"
    with aioresponses() as m:
        m.get(url, exception=asyncio.TimeoutError())

        async with AioHttpClientAdapter() as client:
            with pytest.raises(TransportError) as excinfo:
                await client.get_text(url)
            assert excinfo.value.status == 504
            assert excinfo.value.url == url


@pytest.mark.asyncio
async def test_connection_error_maps_to_transport_error():
    url = "http://status.test/down"
    with aioresponses() as m:
        m.get(url, exception=aiohttp.ClientConnectionError("refused"))

        async with AioHttpClientAdapter() as client:
            with pytest.raises(TransportError) as excinfo:
                await client.get_text(url)
            assert excinfo.value.status == 502


@pytest.mark.asyncio
async def test_post_form_sends_fields_and_returns_status():
    url = "http://127.0.0.1:3000/transloadit"
    form = {"transloadit": '{"ok":"ASSEMBLY_COMPLETED"}', "signature": "abc"}
    with aioresponses() as m:
        m.post(url, status=204)

        async with AioHttpClientAdapter() as client:
            assert await client.post_form(url, form) == 204

        calls = m.requests[("POST", URL(url))]
        assert len(calls) == 1
        assert calls[0].kwargs["data"] == form


@pytest.mark.asyncio
async def test_post_form_connection_error():
    url = "http://127.0.0.1:3000/transloadit"
    with aioresponses() as m:
        m.post(url, exception=aiohttp.ClientConnectionError("refused"))

        async with AioHttpClientAdapter() as client:
            with pytest.raises(TransportError):
                await client.post_form(url, {"transloadit": "{}", "signature": "x"})


@pytest.mark.asyncio
async def test_forward_returns_upstream_response_verbatim():
    url = "http://upstream.test/assemblies/"
    with aioresponses() as m:
        m.post(
            url,
            body=b'{"assembly_url":"http://x/1"}',
            status=201,
            headers={"Content-Type": "application/json", "X-Upstream": "yes"},
        )

        async with AioHttpClientAdapter() as client:
            upstream = await client.forward(
                "POST", url, [("X-Custom", "1")], b"params=%7B%7D"
            )

        assert upstream.status == 201
        assert upstream.body == b'{"assembly_url":"http://x/1"}'
        assert upstream.header("x-upstream") == "yes"
        assert upstream.header("content-type") == "application/json"

        call = m.requests[("POST", URL(url))][0]
        assert call.kwargs["data"] == b"params=%7B%7D"
        assert call.kwargs["allow_redirects"] is False


@pytest.mark.asyncio
async def test_forward_timeout_maps_to_504():
    url = "http://upstream.test/assemblies/"
    with aioresponses() as m:
        m.get(url, exception=asyncio.TimeoutError())

        async with AioHttpClientAdapter() as client:
            with pytest.raises(TransportError) as excinfo:
                await client.forward("GET", url, [], b"")
            assert excinfo.value.status == 504


@pytest.mark.asyncio
async def test_requests_outside_context_manager_fail():
    client = AioHttpClientAdapter()
    with pytest.raises(RuntimeError):
        await client.get_text("http://status.test/")
