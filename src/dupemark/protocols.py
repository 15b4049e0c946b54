"""
Core protocols and dataclasses for dupemark.

This module defines the request model the classification engine consumes and
the contracts a traffic-inspection host implements to feed it:

- ``HttpRequest``: method, service (scheme/host/port), path, typed parameters,
  headers and raw body of one intercepted request
- ``HistoryProvider``: an ordered, replayable sequence of past requests
- ``AnnotationSink``: where classification decisions are reported
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Protocol
from urllib.parse import parse_qsl, urlsplit

# ============================================================================
# Enums
# ============================================================================


class ClassificationDecision(Enum):
    """Outcome of classifying a single request."""

    UNIQUE = "unique"
    DUPLICATE = "duplicate"
    STATIC_ASSET = "static_asset"
    SUPPRESSED = "suppressed"


class ParameterType(Enum):
    """Where a request parameter was found."""

    URL = "url"
    BODY = "body"
    COOKIE = "cookie"


DEFAULT_PORTS = {"http": 80, "https": 443}
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# ============================================================================
# Request model
# ============================================================================


@dataclass(frozen=True)
class HttpParameter:
    """A single named request parameter."""

    name: str
    value: str
    type: ParameterType


@dataclass(frozen=True)
class HttpHeader:
    name: str
    value: str


@dataclass
class HttpRequest:
    """
    An intercepted HTTP request as seen by the host.

    ``path`` is the request target as sent on the wire and may carry a query
    string; ``path_without_query`` strips it. ``parameters`` holds the typed
    URL, body and cookie parameters the host parsed out of the request.
    """

    method: str
    host: str
    port: int
    secure: bool = False
    path: str = "/"
    parameters: List[HttpParameter] = field(default_factory=list)
    headers: List[HttpHeader] = field(default_factory=list)
    body: bytes = b""

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def path_without_query(self) -> str:
        return self.path.split("?", 1)[0]

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}{self.path}"

    def header_value(self, name: str) -> Optional[str]:
        """Return the first header value matching ``name`` (case-insensitive)."""
        wanted = name.lower()
        for header in self.headers:
            if header.name.lower() == wanted:
                return header.value
        return None

    def parameters_of(self, param_type: ParameterType) -> List[HttpParameter]:
        return [p for p in self.parameters if p.type is param_type]

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        headers: Optional[Iterable[tuple[str, str]]] = None,
        body: bytes | str = b"",
    ) -> HttpRequest:
        """
        Build a request from an absolute URL, parsing parameters the way a
        proxy host would.

        - URL parameters come from the query string
        - BODY parameters come from an ``application/x-www-form-urlencoded`` body
        - COOKIE parameters come from every ``Cookie`` header

        Args:
            method: HTTP method
            url: Absolute ``http``/``https`` URL
            headers: Header name/value pairs in wire order
            body: Raw body; text is encoded as UTF-8

        Returns:
            A populated HttpRequest

        Raises:
            ValueError: If the URL has no scheme or host
        """
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        if scheme not in DEFAULT_PORTS or not parts.hostname:
            raise ValueError(f"Not an absolute http(s) URL: {url!r}")

        raw_body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        header_list = [HttpHeader(name, value) for name, value in (headers or [])]

        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"

        parameters: List[HttpParameter] = [
            HttpParameter(name, value, ParameterType.URL)
            for name, value in parse_qsl(parts.query, keep_blank_values=True)
        ]

        request = cls(
            method=method.upper(),
            host=parts.hostname,
            port=parts.port or DEFAULT_PORTS[scheme],
            secure=scheme == "https",
            path=path,
            headers=header_list,
            body=raw_body,
        )

        content_type = request.header_value("Content-Type") or ""
        if FORM_CONTENT_TYPE in content_type.lower() and raw_body:
            form = raw_body.decode("utf-8", errors="replace")
            parameters.extend(
                HttpParameter(name, value, ParameterType.BODY)
                for name, value in parse_qsl(form, keep_blank_values=True)
            )

        for header in header_list:
            if header.name.lower() == "cookie":
                parameters.extend(parse_cookie_header(header.value))

        request.parameters = parameters
        return request


def parse_cookie_header(value: str) -> List[HttpParameter]:
    """Split a ``Cookie`` header into COOKIE parameters, keeping wire order."""
    cookies: List[HttpParameter] = []
    for pair in value.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        name, _, cookie_value = pair.partition("=")
        cookies.append(HttpParameter(name.strip(), cookie_value.strip(), ParameterType.COOKIE))
    return cookies


@dataclass(frozen=True)
class HistoryEntry:
    """One stored request in the host's history."""

    request_id: int | str
    request: HttpRequest


# ============================================================================
# Host collaborator protocols
# ============================================================================


class HistoryProvider(Protocol):
    """An ordered, replayable history of intercepted requests."""

    def history(self) -> Iterable[HistoryEntry]:
        """Return past requests in chronological order."""
        ...


class AnnotationSink(Protocol):
    """Receives the decision for each classified request."""

    def report(self, request_id: int | str, decision: ClassificationDecision) -> None:
        ...
