import ipaddress
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from scamshield.services.safe_fetcher import (
    PRIVATE_ADDRESS_NOTE,
    SafeFetcher,
    is_private_address,
)
from scamshield.utils.preprocessing import normalize_url


SUSPICIOUS_TLDS = (".xyz", ".top", ".click", ".buzz", ".gq", ".ml", ".cf", ".tk", ".ga")

COMMON_BRANDS = ("paypal", "amazon", "apple", "google", "microsoft", "facebook", "netflix", "bank")

MAX_SUBDOMAIN_LABELS = 2

INVALID_URL_NOTE = "Invalid URL format"

_ENCODED_OCTET = re.compile(r"%[0-9a-f]{2}", re.IGNORECASE)


@dataclass
class UrlAnalysis:
    """Lexical/structural view of a URL plus whatever the probe saw."""
    is_valid: bool
    domain: str
    protocol: str
    has_ssl: bool
    final_url: str
    redirect_count: int = 0
    response_code: Optional[int] = None
    server_header: Optional[str] = None
    content_type: Optional[str] = None
    suspicious: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
        return True
    except ValueError:
        return False


def lexical_flags(domain: str, path: str, has_ssl: bool) -> List[str]:
    """
    Rule-based suspicion notes for a parsed URL.

    Every rule is independent; none suppresses another.
    """
    flags: List[str] = []

    if not has_ssl:
        flags.append("No SSL/HTTPS - connection is not encrypted")

    ip_host = _is_ip_literal(domain)
    if ip_host:
        flags.append("Uses IP address instead of domain name")

    # Registrable domain guessed as the last two labels
    if not ip_host:
        subdomain_count = len(domain.split(".")) - 2
        if subdomain_count > MAX_SUBDOMAIN_LABELS:
            flags.append(f"Excessive subdomains ({subdomain_count}) - potential domain spoofing")

    if domain.endswith(SUSPICIOUS_TLDS):
        flags.append("Uses a TLD commonly associated with spam/scam sites")

    for brand in COMMON_BRANDS:
        official = f"{brand}.com"
        if (
            brand in domain
            and domain != official
            and domain != f"www.{official}"
            and not domain.endswith(f".{official}")
        ):
            flags.append(f'Domain contains "{brand}" but is not the official {official} domain')

    if _ENCODED_OCTET.search(path):
        flags.append("URL contains encoded characters (potential obfuscation)")

    return flags


class LinkAnalysisService:
    """URL heuristics, independent of any reputation provider."""

    def __init__(self, fetcher: Optional[SafeFetcher] = None):
        self.fetcher = fetcher or SafeFetcher()

    async def analyze(self, url: str) -> UrlAnalysis:
        url = normalize_url(url)

        try:
            parsed = urlparse(url)
            domain = (parsed.hostname or "").lower()
        except ValueError:
            parsed, domain = None, ""

        if parsed is None or parsed.scheme.lower() not in ("http", "https") or not domain:
            return UrlAnalysis(
                is_valid=False,
                domain=domain,
                protocol="",
                has_ssl=False,
                final_url=url,
                suspicious=[INVALID_URL_NOTE],
            )

        protocol = parsed.scheme.lower() + ":"
        has_ssl = protocol == "https:"

        # Never touch the network for internal targets
        if is_private_address(domain):
            return UrlAnalysis(
                is_valid=False,
                domain=domain,
                protocol=protocol,
                has_ssl=has_ssl,
                final_url=url,
                suspicious=[PRIVATE_ADDRESS_NOTE],
            )

        suspicious = lexical_flags(domain, parsed.path, has_ssl)

        probe = await self.fetcher.probe(url)
        suspicious.extend(probe.suspicious)

        return UrlAnalysis(
            is_valid=True,
            domain=domain,
            protocol=protocol,
            has_ssl=has_ssl,
            final_url=probe.final_url,
            redirect_count=probe.redirect_count,
            response_code=probe.status_code,
            server_header=probe.server_header,
            content_type=probe.content_type,
            suspicious=suspicious,
        )
