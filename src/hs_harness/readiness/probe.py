"""Single-shot HTTP readiness probe.

A down server is the normal state during startup, so the probe never raises
for it: any transport failure collapses to status 0.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

import httpx

# Short per-attempt timeout, the retry loop around it owns the overall budget.
# A healthy server answers well within this.
DEFAULT_PROBE_TIMEOUT = 0.5

_log = logging.getLogger("probe")


class ProbeOutcome(str, Enum):
    READY = "ready"
    NOT_READY = "not_ready"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class ProbeResult:
    """Classified result of one probe."""
    outcome: ProbeOutcome
    status_code: int = 0

    @classmethod
    def from_status(cls, status_code: int) -> "ProbeResult":
        if status_code == 200:
            return cls(ProbeOutcome.READY, status_code)
        if status_code == 0:
            return cls(ProbeOutcome.TRANSPORT_ERROR, 0)
        return cls(ProbeOutcome.NOT_READY, status_code)

    @property
    def is_ready(self) -> bool:
        return self.outcome is ProbeOutcome.READY


class ReadinessProber:
    """Issues readiness probes over a single reusable HTTP client.

    Use as an async context manager to keep the client open across a polling
    loop; ``check`` also works without it and opens a client per call.

    Args:
        timeout: Transport timeout for each probe (seconds)
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests
    """

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
            follow_redirects=False,
        )

    async def __aenter__(self) -> "ReadinessProber":
        self._client = self._make_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def check(self, url: str) -> int:
        """GET ``url`` once.

        Returns:
            The HTTP status code, or 0 if no response arrived within the
            timeout or the request failed at the transport level
        """
        try:
            # httpx timeouts are per phase, bound the whole request as well
            async with asyncio.timeout(self.timeout):
                if self._client is not None:
                    response = await self._client.get(url)
                else:
                    async with self._make_client() as client:
                        response = await client.get(url)
            return response.status_code
        except (httpx.TransportError, TimeoutError) as e:
            _log.debug(f"Probe {url} failed: {type(e).__name__}: {e}")
            return 0

    async def probe(self, url: str) -> ProbeResult:
        return ProbeResult.from_status(await self.check(url))
