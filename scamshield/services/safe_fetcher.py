"""
Bounded, SSRF-guarded HTTP probing of a candidate URL.

The private-address guard works on the literal hostname only; it never
resolves DNS. A blocked target is reported before any socket is opened.
"""

import ipaddress
import logging
import socket
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)


FETCH_TIMEOUT_SECONDS = 5.0
USER_AGENT = "ScamShield/1.0 Security Scanner"

PRIVATE_HOST_NAMES = {"localhost"}
PRIVATE_SUFFIXES = (".localhost",)

PRIVATE_ADDRESS_NOTE = "URL points to a private/internal network address"
UNREACHABLE_NOTE = "URL is unreachable or timed out"
PRIVATE_REDIRECT_NOTE = "Redirects to a private/internal network address"


class PrivateAddressBlocked(httpx.RequestError):
    """A redirect hop tried to reach a private/internal host."""


@dataclass
class ProbeResult:
    """Outcome of a single HEAD probe."""
    final_url: str
    status_code: Optional[int] = None
    server_header: Optional[str] = None
    content_type: Optional[str] = None
    redirected: bool = False
    redirect_count: int = 0
    reachable: bool = False
    suspicious: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_private_address(hostname: str) -> bool:
    """
    True for loopback, link-local, RFC1918/unique-local and unspecified
    literals, and for ``localhost`` names.
    """
    host = (hostname or "").strip().lower().strip("[]").rstrip(".")
    if not host:
        return False
    if host in PRIVATE_HOST_NAMES or host.endswith(PRIVATE_SUFFIXES):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        # Shorthand IPv4 forms ("127.1", "2130706433", "0x7f.1") that resolvers
        # still map to an address.
        try:
            ip = ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


def _host_of(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


async def _refuse_private_hops(request: httpx.Request):
    if is_private_address(request.url.host):
        raise PrivateAddressBlocked(
            f"refusing to fetch private address {request.url.host}", request=request
        )


class SafeFetcher:
    """
    HEAD-probes public URLs with a fixed timeout.

    Network failures never raise; they come back as a suspicion note so the
    caller can carry on with degraded data.
    """

    def __init__(
        self,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            event_hooks={"request": [_refuse_private_hops]},
            transport=self._transport,
        )

    async def probe(self, url: str) -> ProbeResult:
        original_host = _host_of(url)

        if is_private_address(original_host):
            return ProbeResult(final_url=url, suspicious=[PRIVATE_ADDRESS_NOTE])

        try:
            async with self._client() as client:
                response = await client.head(url)
        except PrivateAddressBlocked as e:
            logger.warning(f"Blocked redirect to private address while probing {url}: {e}")
            return ProbeResult(final_url=url, suspicious=[PRIVATE_REDIRECT_NOTE])
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.info(f"Probe of {url} failed: {type(e).__name__}: {e}")
            return ProbeResult(final_url=url, suspicious=[UNREACHABLE_NOTE])

        final_url = str(response.url)
        result = ProbeResult(
            final_url=final_url,
            status_code=response.status_code,
            server_header=response.headers.get("server"),
            content_type=response.headers.get("content-type"),
            redirected=bool(response.history),
            redirect_count=len(response.history),
            reachable=True,
        )

        final_host = _host_of(final_url)
        if result.redirected and final_host != original_host:
            result.suspicious.append(f"Redirects to a different domain: {final_host}")

        return result
