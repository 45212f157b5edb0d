"""Tests for the threat intelligence fan-out."""

import asyncio

import pytest

from scamshield.services.link_service import LinkAnalysisService
from scamshield.services.safe_browsing import ReputationResult
from scamshield.services.threat_intel import ThreatIntelAggregator
from scamshield.services.virustotal import ScanResult
from scamshield.tests.fakes import StubFetcher, StubReputation, StubScanner

URL = "http://paypal-secure-login.tk/verify"


class Rendezvous:
    """Lookups that only finish once all of them have started."""

    def __init__(self, parties):
        self.parties = parties
        self.started = 0
        self.all_started = asyncio.Event()

    async def arrive(self):
        self.started += 1
        if self.started == self.parties:
            self.all_started.set()
        await self.all_started.wait()


class SlowReputation:
    async def check(self, url):
        await asyncio.sleep(5)
        return ReputationResult(is_flagged=True)


class TestThreatIntelAggregator:
    @pytest.mark.asyncio
    async def test_combines_all_three_lookups(self):
        aggregator = ThreatIntelAggregator(
            reputation=StubReputation(ReputationResult(is_flagged=True, categories=["SOCIAL_ENGINEERING"])),
            scanner=StubScanner(ScanResult(positives=7, total=70)),
            url_analyzer=LinkAnalysisService(fetcher=StubFetcher()),
        )

        signal = await aggregator.gather(URL)

        assert signal.reputation_flagged is True
        assert signal.scan_positives == 7
        assert len(signal.suspicious_flags) == 3
        assert signal.degraded == []

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self):
        rendezvous = Rendezvous(parties=3)

        class Reputation:
            async def check(self, url):
                await rendezvous.arrive()
                return ReputationResult()

        class Scanner:
            async def check(self, url):
                await rendezvous.arrive()
                return ScanResult(positives=1, total=10)

        class Analyzer:
            async def analyze(self, url):
                await rendezvous.arrive()
                return await LinkAnalysisService(fetcher=StubFetcher()).analyze(url)

        aggregator = ThreatIntelAggregator(
            reputation=Reputation(),
            scanner=Scanner(),
            url_analyzer=Analyzer(),
            reputation_deadline=1.0,
            scan_deadline=1.0,
            heuristics_deadline=1.0,
        )

        signal = await aggregator.gather(URL)

        # Sequential execution would deadlock the first lookup into its deadline
        assert signal.degraded == []
        assert signal.scan_positives == 1

    @pytest.mark.asyncio
    async def test_failing_provider_is_neutral(self):
        aggregator = ThreatIntelAggregator(
            reputation=StubReputation(error=RuntimeError("boom")),
            scanner=StubScanner(ScanResult(positives=3, total=60)),
            url_analyzer=LinkAnalysisService(fetcher=StubFetcher()),
        )

        signal = await aggregator.gather(URL)

        assert signal.reputation_flagged is False
        assert signal.scan_positives == 3
        assert signal.degraded == ["safe_browsing"]

    @pytest.mark.asyncio
    async def test_slow_provider_times_out_to_neutral(self):
        aggregator = ThreatIntelAggregator(
            reputation=SlowReputation(),
            scanner=StubScanner(),
            url_analyzer=LinkAnalysisService(fetcher=StubFetcher()),
            reputation_deadline=0.05,
        )

        signal = await aggregator.gather(URL)

        assert signal.reputation_flagged is False
        assert signal.degraded == ["safe_browsing"]

    @pytest.mark.asyncio
    async def test_everything_failing_still_returns(self):
        class BrokenAnalyzer:
            async def analyze(self, url):
                raise ValueError("bad parse")

        aggregator = ThreatIntelAggregator(
            reputation=StubReputation(error=RuntimeError("down")),
            scanner=StubScanner(error=ConnectionError("down")),
            url_analyzer=BrokenAnalyzer(),
        )

        signal = await aggregator.gather(URL)

        assert signal.reputation_flagged is False
        assert signal.scan_positives == 0
        assert signal.suspicious_flags == []
        assert sorted(signal.degraded) == ["safe_browsing", "url_analysis", "virustotal"]


class TestThreatSignalRendering:
    @pytest.mark.asyncio
    async def test_context_summary_flagged(self):
        aggregator = ThreatIntelAggregator(
            reputation=StubReputation(ReputationResult(is_flagged=True, categories=["MALWARE"])),
            scanner=StubScanner(ScanResult(positives=5, total=70)),
            url_analyzer=LinkAnalysisService(fetcher=StubFetcher()),
        )

        summary = (await aggregator.gather(URL)).context_summary()

        assert "- Google Safe Browsing: FLAGGED as MALWARE" in summary
        assert "- VirusTotal: 5/70 engines detected threats" in summary
        assert "- URL Analysis concerns: No SSL/HTTPS" in summary

    @pytest.mark.asyncio
    async def test_context_summary_clean(self):
        aggregator = ThreatIntelAggregator(
            reputation=StubReputation(),
            scanner=StubScanner(ScanResult(positives=0, total=70)),
            url_analyzer=LinkAnalysisService(fetcher=StubFetcher()),
        )

        summary = (await aggregator.gather("https://example.com/")).context_summary()

        assert summary.splitlines() == [
            "- Google Safe Browsing: Not flagged",
            "- VirusTotal: Clean (0/70 detections)",
        ]

    @pytest.mark.asyncio
    async def test_threat_intel_dict(self):
        aggregator = ThreatIntelAggregator(
            reputation=StubReputation(),
            scanner=StubScanner(ScanResult(positives=1, total=10, scan_date=123)),
            url_analyzer=LinkAnalysisService(fetcher=StubFetcher()),
        )

        data = (await aggregator.gather(URL)).threat_intel_dict()

        assert data == {
            "safe_browsing": {"is_flagged": False, "categories": []},
            "virustotal": {"positives": 1, "total": 10, "scan_date": 123},
            "degraded": [],
        }
