"""reqr executor - HTTP request execution."""

import logging
import time
from dataclasses import dataclass, field

import requests

from reqr.core import RequestSpec, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponseEnvelope:
    """A fully buffered HTTP response."""

    status_code: int
    reason: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    elapsed_ms: float = 0

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        if name in self.headers:
            return self.headers[name]
        lower = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lower:
                return v
        return None


def execute_request(
    spec: RequestSpec,
    timeout: int = 30,
    verify: bool = True,
) -> ResponseEnvelope:
    """Send *spec* and buffer the whole response.

    Network, TLS and timeout failures are raised as TransportError.
    """
    try:
        start = time.monotonic()
        resp = requests.request(
            method=spec.method.value,
            url=spec.url,
            headers=dict(spec.headers),
            data=spec.body,
            timeout=timeout,
            verify=verify,
            allow_redirects=True,
        )
        elapsed_ms = (time.monotonic() - start) * 1000
    except requests.exceptions.Timeout as e:
        raise TransportError(f"Request timed out after {timeout}s") from e
    except requests.exceptions.ConnectionError as e:
        raise TransportError(f"Connection error: {e}") from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Request failed: {e}") from e

    logger.debug(
        "%s %s -> %s in %dms (%d bytes)",
        spec.method.value,
        spec.url,
        resp.status_code,
        elapsed_ms,
        len(resp.content),
    )
    return ResponseEnvelope(
        status_code=resp.status_code,
        reason=resp.reason or "",
        headers=dict(resp.headers),
        body=resp.content,
        elapsed_ms=elapsed_ms,
    )
