"""Blocking transports that carry a single request to the data service."""

from __future__ import annotations

import logging
import subprocess
from typing import Optional

import httpx

from .query import QueryRequest

logger = logging.getLogger("userhub.transport")

DEFAULT_TIMEOUT = 10.0

# curl exit codes for "could not resolve host" and "failed to connect"
_CURL_CONNECT_FAILURES = {6, 7}


class TransportError(RuntimeError):
    """Raised when a request could not be exchanged with the data service."""


class TransportSpawnError(TransportError):
    """Raised when the connection or helper process could not be started."""


class EmptyResponseError(TransportError):
    """Raised when the data service produced no output at all."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Empty response from data service at {url}")
        self.url = url


class CommunicationError(TransportError):
    """Raised for any other failure while talking to the data service."""


class HTTPXTransport:
    """Perform each request as a one-shot ``httpx.request`` call."""

    name = "httpx"

    def __init__(self, *, timeout: float | None = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def execute(self, request: QueryRequest) -> str:
        try:
            response = httpx.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
                timeout=self._timeout,
            )
        except httpx.ConnectError as exc:
            raise TransportSpawnError(f"Failed to connect to data service at {request.url}: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise CommunicationError(f"Request to data service failed: {exc}") from exc

        text = response.text
        if not text.strip():
            raise EmptyResponseError(request.url)
        return text


def _decode(data: Optional[bytes]) -> str:
    return (data or b"").decode("utf-8", errors="replace")


class CurlTransport:
    """Perform each request by spawning curl and reading its stdout."""

    name = "curl"

    def __init__(self, executable: str = "curl", *, timeout: float | None = DEFAULT_TIMEOUT) -> None:
        self._executable = executable
        self._timeout = timeout

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def execute(self, request: QueryRequest) -> str:
        args = request.curl_args(self._executable, timeout=self._timeout)
        # curl enforces --max-time itself; this only stops a wedged process
        process_timeout: Optional[float] = None
        if self._timeout is not None:
            process_timeout = self._timeout + 5.0

        try:
            result = subprocess.run(
                args,
                input=request.body.encode("utf-8") if request.body is not None else None,
                capture_output=True,
                timeout=process_timeout,
                check=False,
            )
        except OSError as exc:
            raise TransportSpawnError(f"Unable to start {self._executable}: {exc}") from exc
        except subprocess.TimeoutExpired as exc:
            raise CommunicationError(f"{self._executable} did not finish within {process_timeout:g}s") from exc

        if result.returncode in _CURL_CONNECT_FAILURES:
            raise TransportSpawnError(
                f"Failed to connect to data service at {request.url} (curl exit status {result.returncode})"
            )
        if result.returncode != 0:
            stderr = _decode(result.stderr).strip()
            message = f"curl exited with status {result.returncode}"
            if stderr:
                message = f"{message}: {stderr}"
            raise CommunicationError(message)

        # undecodable bytes surface later as a JSON parse failure
        output = _decode(result.stdout)
        if not output.strip():
            raise EmptyResponseError(request.url)
        return output


TRANSPORTS = {
    HTTPXTransport.name: HTTPXTransport,
    CurlTransport.name: CurlTransport,
}


def create_transport(name: str = "httpx", *, timeout: float | None = DEFAULT_TIMEOUT):
    """Instantiate the transport registered under ``name``."""

    key = (name or "").strip().lower()
    try:
        transport_cls = TRANSPORTS[key]
    except KeyError as exc:
        choices = ", ".join(sorted(TRANSPORTS))
        raise ValueError(f"Unknown transport '{name}' (expected one of: {choices})") from exc
    logger.debug("Using %s transport (timeout=%s)", key, timeout)
    return transport_cls(timeout=timeout)


__all__ = [
    "CommunicationError",
    "CurlTransport",
    "DEFAULT_TIMEOUT",
    "EmptyResponseError",
    "HTTPXTransport",
    "TRANSPORTS",
    "TransportError",
    "TransportSpawnError",
    "create_transport",
]
