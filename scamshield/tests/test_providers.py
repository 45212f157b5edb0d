"""Tests for the reputation and scan-engine provider adapters."""

import json

import httpx
import pytest

from scamshield.services.safe_browsing import SAFE_BROWSING_ENDPOINT, SafeBrowsingClient
from scamshield.services.virustotal import VIRUSTOTAL_API, VirusTotalClient, url_identifier


def _report(malicious=0, suspicious=0, harmless=60, undetected=10, date=1700000000):
    return {
        "data": {
            "attributes": {
                "last_analysis_stats": {
                    "malicious": malicious,
                    "suspicious": suspicious,
                    "harmless": harmless,
                    "undetected": undetected,
                    "timeout": 0,
                },
                "last_analysis_date": date,
            }
        }
    }


class TestSafeBrowsingClient:
    @pytest.mark.asyncio
    async def test_no_key_is_neutral_without_request(self):
        calls = []
        transport = httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200))

        result = await SafeBrowsingClient(api_key="", transport=transport).check("https://example.com")

        assert result.is_flagged is False
        assert result.categories == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_flagged_url(self):
        seen = {}

        def respond(request):
            seen["key"] = request.url.params["key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"matches": [{"threatType": "SOCIAL_ENGINEERING"}, {"threatType": "MALWARE"}]},
            )

        client = SafeBrowsingClient(api_key="sb-key", transport=httpx.MockTransport(respond))
        result = await client.check("http://paypal-secure-login.tk/verify")

        assert result.is_flagged is True
        assert result.categories == ["SOCIAL_ENGINEERING", "MALWARE"]
        assert seen["key"] == "sb-key"
        assert seen["body"]["threatInfo"]["threatEntries"] == [{"url": "http://paypal-secure-login.tk/verify"}]

    @pytest.mark.asyncio
    async def test_empty_response_is_clean(self):
        client = SafeBrowsingClient(api_key="sb-key", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        result = await client.check("https://example.com")
        assert result.is_flagged is False

    @pytest.mark.asyncio
    async def test_api_error_is_neutral(self):
        client = SafeBrowsingClient(api_key="sb-key", transport=httpx.MockTransport(lambda r: httpx.Response(403)))
        result = await client.check("https://example.com")
        assert result.is_flagged is False

    @pytest.mark.asyncio
    async def test_network_error_is_neutral(self):
        def respond(request):
            raise httpx.ConnectError("down", request=request)

        client = SafeBrowsingClient(api_key="sb-key", transport=httpx.MockTransport(respond))
        result = await client.check("https://example.com")
        assert result.is_flagged is False

    @pytest.mark.asyncio
    async def test_malformed_json_is_neutral(self):
        client = SafeBrowsingClient(
            api_key="sb-key",
            transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"<html>")),
        )
        result = await client.check("https://example.com")
        assert result.is_flagged is False

    def test_endpoint(self):
        assert SAFE_BROWSING_ENDPOINT.startswith("https://safebrowsing.googleapis.com/")


class TestVirusTotalClient:
    def test_url_identifier_is_unpadded(self):
        assert url_identifier("http://a.b") == "aHR0cDovL2EuYg"
        assert "=" not in url_identifier("https://example.com/?x=1")

    @pytest.mark.asyncio
    async def test_no_key_is_neutral(self):
        result = await VirusTotalClient(api_key="").check("https://example.com")
        assert (result.positives, result.total) == (0, 0)

    @pytest.mark.asyncio
    async def test_known_url(self):
        def respond(request):
            assert request.headers["x-apikey"] == "vt-key"
            return httpx.Response(200, json=_report(malicious=4, suspicious=1))

        client = VirusTotalClient(api_key="vt-key", transport=httpx.MockTransport(respond))
        result = await client.check("http://paypal-secure-login.tk/verify")

        assert result.positives == 5
        assert result.total == 75
        assert result.scan_date == 1700000000

    @pytest.mark.asyncio
    async def test_unknown_url_is_submitted_then_requeried(self):
        requests = []
        report_path = f"/api/v3/urls/{url_identifier('https://new.example/')}"

        def respond(request):
            requests.append((request.method, request.url.path))
            if request.method == "POST":
                return httpx.Response(200, json={"data": {"id": "analysis-1"}})
            lookups = sum(1 for method, _ in requests if method == "GET")
            if lookups == 1:
                return httpx.Response(404)
            return httpx.Response(200, json=_report(malicious=2))

        client = VirusTotalClient(api_key="vt-key", grace_period=0, transport=httpx.MockTransport(respond))
        result = await client.check("https://new.example/")

        assert requests == [
            ("GET", report_path),
            ("POST", "/api/v3/urls"),
            ("GET", report_path),
        ]
        assert result.positives == 2

    @pytest.mark.asyncio
    async def test_still_unknown_after_requery_is_neutral(self):
        def respond(request):
            if request.method == "POST":
                return httpx.Response(200, json={})
            return httpx.Response(404)

        client = VirusTotalClient(api_key="vt-key", grace_period=0, transport=httpx.MockTransport(respond))
        result = await client.check("https://new.example/")
        assert (result.positives, result.total) == (0, 0)

    @pytest.mark.asyncio
    async def test_timeout_is_neutral(self):
        def respond(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = VirusTotalClient(api_key="vt-key", transport=httpx.MockTransport(respond))
        result = await client.check("https://example.com")
        assert (result.positives, result.total) == (0, 0)

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_neutral(self):
        client = VirusTotalClient(
            api_key="vt-key",
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"data": []})),
        )
        result = await client.check("https://example.com")
        assert (result.positives, result.total) == (0, 0)

    def test_api_base(self):
        assert VIRUSTOTAL_API == "https://www.virustotal.com/api/v3"
