"""Build outbound request descriptors for the data service."""

from __future__ import annotations

import json
import shlex
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
from urllib.parse import quote

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE")
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class QueryRequest:
    """A fully formed request against the data service."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None

    def curl_args(self, executable: str = "curl", *, timeout: float | None = None) -> List[str]:
        """Return an argv list for running this request with curl.

        The body, when present, is read from stdin so it never passes
        through a shell or the argument list.
        """

        args = [executable, "-s", "-X", self.method]
        if timeout is not None:
            args.extend(["--max-time", f"{timeout:g}"])
        for name, value in self.headers.items():
            args.extend(["-H", f"{name}: {value}"])
        if self.body is not None:
            args.extend(["--data-binary", "@-"])
        args.append(self.url)
        return args

    def describe(self) -> str:
        command = shlex.join(self.curl_args())
        if self.body is None:
            return command
        return f"{command} <<< {shlex.quote(self.body)}"


def normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("Data service URL must not be empty")
    return cleaned.rstrip("/")


def path_segment(value: object) -> str:
    """Percent-encode a value for use as a single URL path segment."""

    return quote(str(value), safe="@")


def serialize_body(body: Optional[Mapping[str, object]]) -> Optional[str]:
    if not body:
        return None
    return json.dumps(body, separators=(",", ":"), ensure_ascii=True)


def build_query(
    base_url: str,
    endpoint: str,
    method: str = "GET",
    body: Optional[Mapping[str, object]] = None,
) -> QueryRequest:
    normalized_method = method.strip().upper()
    if normalized_method not in ALLOWED_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")

    if not endpoint.startswith("/"):
        endpoint = "/" + endpoint

    return QueryRequest(
        method=normalized_method,
        url=f"{normalize_base_url(base_url)}{endpoint}",
        headers={"Content-Type": JSON_CONTENT_TYPE},
        body=serialize_body(body),
    )


__all__ = [
    "ALLOWED_METHODS",
    "QueryRequest",
    "build_query",
    "normalize_base_url",
    "path_segment",
    "serialize_body",
]
