"""Tests for SSRF-guarded URL probing."""

import httpx
import pytest

from scamshield.services.safe_fetcher import (
    PRIVATE_ADDRESS_NOTE,
    PRIVATE_REDIRECT_NOTE,
    UNREACHABLE_NOTE,
    USER_AGENT,
    SafeFetcher,
    is_private_address,
)


class RecordingHandler:
    """MockTransport handler that records every request it sees."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.respond(request)


def fetcher_for(respond):
    handler = RecordingHandler(respond)
    return SafeFetcher(transport=httpx.MockTransport(handler)), handler


class TestIsPrivateAddress:
    @pytest.mark.parametrize(
        "host",
        [
            "localhost",
            "api.localhost",
            "127.0.0.1",
            "10.0.0.8",
            "172.16.4.1",
            "192.168.1.1",
            "169.254.169.254",
            "0.0.0.0",
            "::1",
            "[::1]",
            "fe80::1",
            "127.1",
            "2130706433",
        ],
    )
    def test_private_hosts(self, host):
        assert is_private_address(host)

    @pytest.mark.parametrize("host", ["example.com", "8.8.8.8", "paypal-secure-login.tk", ""])
    def test_public_hosts(self, host):
        assert not is_private_address(host)


class TestProbe:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["http://127.0.0.1/admin", "http://192.168.1.1/", "http://localhost:8080/"])
    async def test_private_targets_never_fetched(self, url):
        """Internal targets are refused before any request is made."""
        fetcher, handler = fetcher_for(lambda request: httpx.Response(200))

        result = await fetcher.probe(url)

        assert handler.requests == []
        assert result.suspicious == [PRIVATE_ADDRESS_NOTE]
        assert result.reachable is False

    @pytest.mark.asyncio
    async def test_successful_head(self):
        fetcher, handler = fetcher_for(
            lambda request: httpx.Response(200, headers={"server": "nginx", "content-type": "text/html"})
        )

        result = await fetcher.probe("https://example.com/login")

        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert request.method == "HEAD"
        assert request.headers["user-agent"] == USER_AGENT
        assert result.reachable is True
        assert result.status_code == 200
        assert result.server_header == "nginx"
        assert result.content_type == "text/html"
        assert result.redirected is False
        assert result.suspicious == []

    @pytest.mark.asyncio
    async def test_cross_domain_redirect_is_suspicious(self):
        def respond(request):
            if request.url.host == "short.example":
                return httpx.Response(301, headers={"location": "https://landing.example/offer"})
            return httpx.Response(200)

        fetcher, _ = fetcher_for(respond)

        result = await fetcher.probe("https://short.example/abc")

        assert result.redirected is True
        assert result.redirect_count == 1
        assert result.final_url == "https://landing.example/offer"
        assert result.suspicious == ["Redirects to a different domain: landing.example"]

    @pytest.mark.asyncio
    async def test_same_domain_redirect_is_not_suspicious(self):
        def respond(request):
            if request.url.scheme == "http":
                return httpx.Response(301, headers={"location": "https://example.com/"})
            return httpx.Response(200)

        fetcher, _ = fetcher_for(respond)

        result = await fetcher.probe("http://example.com/")

        assert result.redirected is True
        assert result.suspicious == []

    @pytest.mark.asyncio
    async def test_redirect_to_private_address_is_refused(self):
        def respond(request):
            return httpx.Response(302, headers={"location": "http://127.0.0.1/admin"})

        fetcher, handler = fetcher_for(respond)

        result = await fetcher.probe("https://evil.example/")

        assert [r.url.host for r in handler.requests] == ["evil.example"]
        assert result.suspicious == [PRIVATE_REDIRECT_NOTE]

    @pytest.mark.asyncio
    async def test_timeout_becomes_note(self):
        def respond(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        fetcher, _ = fetcher_for(respond)

        result = await fetcher.probe("https://slow.example/")

        assert result.reachable is False
        assert result.suspicious == [UNREACHABLE_NOTE]
