"""
Google Safe Browsing (v4 Lookup API) reputation check.

No API key configured means the provider is off: every URL is reported as
not flagged.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

import httpx

from scamshield.config import settings

logger = logging.getLogger(__name__)


SAFE_BROWSING_ENDPOINT = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
SAFE_BROWSING_TIMEOUT_SECONDS = 5.0

THREAT_TYPES = [
    "MALWARE",
    "SOCIAL_ENGINEERING",
    "UNWANTED_SOFTWARE",
    "POTENTIALLY_HARMFUL_APPLICATION",
]


@dataclass
class ReputationResult:
    is_flagged: bool = False
    categories: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SafeBrowsingClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = SAFE_BROWSING_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.safe_browsing_api_key if api_key is None else api_key
        self.timeout = timeout
        self._transport = transport

    def _payload(self, url: str) -> Dict[str, Any]:
        return {
            "client": {"clientId": "scamshield", "clientVersion": "1.0.0"},
            "threatInfo": {
                "threatTypes": THREAT_TYPES,
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }

    async def check(self, url: str) -> ReputationResult:
        if not self.api_key:
            return ReputationResult()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    SAFE_BROWSING_ENDPOINT,
                    params={"key": self.api_key},
                    json=self._payload(url),
                )
            if response.status_code != 200:
                logger.warning(f"Safe Browsing API error: {response.status_code}")
                return ReputationResult()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Safe Browsing lookup failed, treating as not flagged: {e}")
            return ReputationResult()

        matches = data.get("matches") if isinstance(data, dict) else None
        if not isinstance(matches, list):
            matches = []
        categories = [m.get("threatType", "UNKNOWN") for m in matches if isinstance(m, dict)]

        return ReputationResult(is_flagged=bool(matches), categories=categories)
