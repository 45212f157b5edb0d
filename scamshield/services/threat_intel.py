"""
Threat intelligence fan-out for URL submissions.

Three lookups run concurrently:
- reputation flags (Safe Browsing)
- scan-engine detections (VirusTotal)
- URL heuristics (lexical rules + safe probe)

Each lookup settles on its own: a failure, a missing credential or a blown
deadline turns into a zero-signal result for that lookup only. The aggregate
is returned once all three have settled, never earlier, and never raises.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from scamshield.services.link_service import LinkAnalysisService, UrlAnalysis
from scamshield.services.safe_browsing import (
    SAFE_BROWSING_TIMEOUT_SECONDS,
    ReputationResult,
    SafeBrowsingClient,
)
from scamshield.services.safe_fetcher import FETCH_TIMEOUT_SECONDS
from scamshield.services.virustotal import (
    SCAN_GRACE_SECONDS,
    VIRUSTOTAL_TIMEOUT_SECONDS,
    ScanResult,
    VirusTotalClient,
)

logger = logging.getLogger(__name__)


# Outer bounds per lookup; the HTTP clients carry the per-request timeouts.
SLACK_SECONDS = 1.0
REPUTATION_DEADLINE = SAFE_BROWSING_TIMEOUT_SECONDS + SLACK_SECONDS
SCAN_DEADLINE = 3 * VIRUSTOTAL_TIMEOUT_SECONDS + SCAN_GRACE_SECONDS + SLACK_SECONDS
HEURISTICS_DEADLINE = FETCH_TIMEOUT_SECONDS + SLACK_SECONDS


class ReputationProvider(Protocol):
    async def check(self, url: str) -> ReputationResult: ...


class ScanProvider(Protocol):
    async def check(self, url: str) -> ScanResult: ...


class UrlAnalyzer(Protocol):
    async def analyze(self, url: str) -> UrlAnalysis: ...


@dataclass
class ThreatSignal:
    """Everything the three lookups produced for one URL."""
    url: str
    reputation: ReputationResult
    scan: ScanResult
    url_analysis: UrlAnalysis
    degraded: List[str] = field(default_factory=list)

    @property
    def reputation_flagged(self) -> bool:
        return self.reputation.is_flagged

    @property
    def scan_positives(self) -> int:
        return self.scan.positives

    @property
    def suspicious_flags(self) -> List[str]:
        return list(self.url_analysis.suspicious)

    def threat_intel_dict(self) -> Dict[str, Any]:
        return {
            "safe_browsing": self.reputation.to_dict(),
            "virustotal": self.scan.to_dict(),
            "degraded": list(self.degraded),
        }

    def context_summary(self) -> str:
        """Compact plain-text summary handed to the judgment prompt."""
        lines = []
        if self.reputation.is_flagged:
            lines.append(f"- Google Safe Browsing: FLAGGED as {', '.join(self.reputation.categories)}")
        else:
            lines.append("- Google Safe Browsing: Not flagged")

        if self.scan.positives > 0:
            lines.append(
                f"- VirusTotal: {self.scan.positives}/{self.scan.total} engines detected threats"
            )
        else:
            lines.append(f"- VirusTotal: Clean (0/{self.scan.total} detections)")

        if self.url_analysis.suspicious:
            lines.append(f"- URL Analysis concerns: {'; '.join(self.url_analysis.suspicious)}")

        return "\n".join(lines)


def _neutral_url_analysis(url: str) -> UrlAnalysis:
    return UrlAnalysis(is_valid=False, domain="", protocol="", has_ssl=False, final_url=url)


class ThreatIntelAggregator:
    def __init__(
        self,
        reputation: Optional[ReputationProvider] = None,
        scanner: Optional[ScanProvider] = None,
        url_analyzer: Optional[UrlAnalyzer] = None,
        reputation_deadline: float = REPUTATION_DEADLINE,
        scan_deadline: float = SCAN_DEADLINE,
        heuristics_deadline: float = HEURISTICS_DEADLINE,
    ):
        self.reputation = reputation or SafeBrowsingClient()
        self.scanner = scanner or VirusTotalClient()
        self.url_analyzer = url_analyzer or LinkAnalysisService()
        self.reputation_deadline = reputation_deadline
        self.scan_deadline = scan_deadline
        self.heuristics_deadline = heuristics_deadline

    @staticmethod
    async def _settle(
        name: str,
        lookup: Callable[[], Awaitable[Any]],
        deadline: float,
        neutral: Callable[[], Any],
        degraded: List[str],
    ) -> Any:
        try:
            return await asyncio.wait_for(lookup(), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning(f"{name} lookup exceeded {deadline:.1f}s, using neutral result")
        except Exception as e:
            logger.warning(f"{name} lookup failed, using neutral result: {type(e).__name__}: {e}")
        degraded.append(name)
        return neutral()

    async def gather(self, url: str) -> ThreatSignal:
        degraded: List[str] = []

        reputation, scan, url_analysis = await asyncio.gather(
            self._settle(
                "safe_browsing",
                lambda: self.reputation.check(url),
                self.reputation_deadline,
                ReputationResult,
                degraded,
            ),
            self._settle(
                "virustotal",
                lambda: self.scanner.check(url),
                self.scan_deadline,
                ScanResult,
                degraded,
            ),
            self._settle(
                "url_analysis",
                lambda: self.url_analyzer.analyze(url),
                self.heuristics_deadline,
                lambda: _neutral_url_analysis(url),
                degraded,
            ),
        )

        return ThreatSignal(
            url=url,
            reputation=reputation,
            scan=scan,
            url_analysis=url_analysis,
            degraded=degraded,
        )
