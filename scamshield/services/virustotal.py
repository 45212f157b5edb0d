"""
VirusTotal (API v3) URL scan lookup.

Unknown URLs are submitted for scanning, then re-queried once after a short
grace period. Anything that goes wrong yields a clean 0/0 result.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

import httpx

from scamshield.config import settings

logger = logging.getLogger(__name__)


VIRUSTOTAL_API = "https://www.virustotal.com/api/v3"
VIRUSTOTAL_TIMEOUT_SECONDS = 10.0
SCAN_GRACE_SECONDS = 2.0


@dataclass
class ScanResult:
    positives: int = 0
    total: int = 0
    scan_date: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def url_identifier(url: str) -> str:
    """VirusTotal URL id: unpadded URL-safe base64 of the URL."""
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _scan_from_report(data: Any) -> ScanResult:
    attributes = _as_dict(_as_dict(_as_dict(data).get("data")).get("attributes"))
    stats = _as_dict(attributes.get("last_analysis_stats"))
    counts = {k: v for k, v in stats.items() if isinstance(v, int)}
    return ScanResult(
        positives=counts.get("malicious", 0) + counts.get("suspicious", 0),
        total=sum(counts.values()),
        scan_date=attributes.get("last_analysis_date"),
    )


class VirusTotalClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = VIRUSTOTAL_TIMEOUT_SECONDS,
        grace_period: float = SCAN_GRACE_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.virustotal_api_key if api_key is None else api_key
        self.timeout = timeout
        self.grace_period = grace_period
        self._transport = transport

    async def check(self, url: str) -> ScanResult:
        if not self.api_key:
            return ScanResult()

        report_url = f"{VIRUSTOTAL_API}/urls/{url_identifier(url)}"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"x-apikey": self.api_key},
                transport=self._transport,
            ) as client:
                response = await client.get(report_url)

                if response.status_code == 404:
                    # Not seen before: submit, wait, ask once more
                    submitted = await client.post(f"{VIRUSTOTAL_API}/urls", data={"url": url})
                    if not submitted.is_success:
                        logger.warning(f"VirusTotal submit failed: {submitted.status_code}")
                        return ScanResult()

                    await asyncio.sleep(self.grace_period)
                    response = await client.get(report_url)

                if not response.is_success:
                    logger.warning(f"VirusTotal API error: {response.status_code}")
                    return ScanResult()

                return _scan_from_report(response.json())

        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"VirusTotal lookup failed, treating as clean: {e}")
            return ScanResult()
