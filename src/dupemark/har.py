"""
HAR capture files as a replayable request history.
"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlencode

import structlog

from dupemark.protocols import FORM_CONTENT_TYPE, HistoryEntry, HttpRequest

logger = structlog.get_logger(__name__)


class HarFormatError(ValueError):
    """The file is not a readable HAR capture."""


class HarHistory:
    """
    HistoryProvider over the ``log.entries`` of a HAR 1.2 file.

    Entries keep file order and get zero-based ids. Entries that cannot be
    turned into a request are skipped with a warning.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._entries: List[HistoryEntry] = self._load()

    def _load(self) -> List[HistoryEntry]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise HarFormatError(f"Cannot read HAR file {self.path}: {e}") from e

        try:
            raw_entries = data["log"]["entries"]
        except (KeyError, TypeError) as e:
            raise HarFormatError(f"HAR file {self.path} has no log.entries") from e
        if not isinstance(raw_entries, list):
            raise HarFormatError(f"HAR file {self.path}: log.entries is not a list")

        entries: List[HistoryEntry] = []
        skipped = 0
        for index, raw in enumerate(raw_entries):
            request = request_from_har(raw.get("request") if isinstance(raw, dict) else None)
            if request is None:
                skipped += 1
                logger.warning("Skipping malformed HAR entry", path=str(self.path), index=index)
                continue
            entries.append(HistoryEntry(request_id=index, request=request))

        logger.info("Loaded HAR history", path=str(self.path), entries=len(entries), skipped=skipped)
        return entries

    def history(self) -> List[HistoryEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def request_from_har(raw: Optional[Dict[str, Any]]) -> Optional[HttpRequest]:
    """Convert one HAR ``request`` object, or return None if it is unusable."""
    if not isinstance(raw, dict):
        return None
    method = raw.get("method")
    url = raw.get("url")
    if not isinstance(method, str) or not isinstance(url, str):
        return None

    headers = _name_value_pairs(raw.get("headers"))
    cookies = _name_value_pairs(raw.get("cookies"))
    if headers is None or cookies is None:
        return None
    if cookies and not any(name.lower() == "cookie" for name, _ in headers):
        headers.append(("Cookie", "; ".join(f"{name}={value}" for name, value in cookies)))

    try:
        return HttpRequest.from_url(method, url, headers=headers, body=_post_body(raw.get("postData")))
    except ValueError:
        return None


def _name_value_pairs(items: Any) -> Optional[List[Tuple[str, str]]]:
    """Read a HAR name/value list; None if any item is not a pair of strings."""
    if items is None:
        return []
    if not isinstance(items, list):
        return None
    pairs: List[Tuple[str, str]] = []
    for item in items:
        if not isinstance(item, dict):
            return None
        name = item.get("name")
        value = item.get("value", "")
        if not isinstance(name, str) or not isinstance(value, str):
            return None
        pairs.append((name, value))
    return pairs


def _post_body(post_data: Any) -> bytes:
    if not isinstance(post_data, dict):
        return b""
    text = post_data.get("text")
    if isinstance(text, str):
        if post_data.get("encoding") == "base64":
            try:
                return base64.b64decode(text)
            except ValueError:
                return b""
        return text.encode("utf-8")

    params = post_data.get("params") or []
    mime_type = post_data.get("mimeType") or ""
    if FORM_CONTENT_TYPE in mime_type and params:
        pairs = [(p.get("name", ""), p.get("value", "")) for p in params if isinstance(p, dict)]
        return urlencode(pairs).encode("utf-8")
    return b""
