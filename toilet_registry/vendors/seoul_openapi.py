"""Client utilities for the Seoul Open Data XML API."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from xml.etree import ElementTree as ET

import requests

from toilet_registry.models import Page

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
REQUEST_TIMEOUT = 10
DEFAULT_CONTENT_TYPE = "application/xml; charset=utf-8"

# INFO-000: rows returned, INFO-200: no rows in range. Other codes (bad key,
# quota exceeded, invalid range) still arrive with HTTP 200.
_OK_RESULT_CODES = {"INFO-000", "INFO-200"}


class UpstreamError(RuntimeError):
    """Base class for failures talking to the Seoul Open API."""


class UpstreamUnavailable(UpstreamError):
    """Raised on transport failures or non-successful upstream responses."""


class UpstreamMalformed(UpstreamError):
    """Raised when an upstream body cannot be parsed into rows."""


@dataclass(frozen=True)
class RawPage:
    body: bytes
    content_type: str


def build_page_url(base_url: str, start_index: int, end_index: int) -> str:
    return f"{base_url.rstrip('/')}/{start_index}/{end_index}/"


def _get(base_url: str, start_index: int, end_index: int, timeout: float) -> requests.Response:
    url = build_page_url(base_url, start_index, end_index)
    logger.info("Requesting upstream rows %d-%d", start_index, end_index)
    try:
        response = _SESSION.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else "unknown"
        raise UpstreamUnavailable(f"rows {start_index}-{end_index}: upstream returned HTTP {status}") from exc
    except requests.RequestException as exc:
        # The request URL carries the API key, so only the exception type is reported.
        raise UpstreamUnavailable(f"rows {start_index}-{end_index}: {type(exc).__name__}") from exc
    return response


def fetch_raw(start_index: int, end_index: int, base_url: str, timeout: float = REQUEST_TIMEOUT) -> RawPage:
    """Fetch one page and return the body untouched, for pass-through proxying."""
    response = _get(base_url, start_index, end_index, timeout)
    content_type = response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
    return RawPage(body=response.content, content_type=content_type)


def fetch_page(start_index: int, end_index: int, base_url: str, timeout: float = REQUEST_TIMEOUT) -> Page:
    """Fetch one page and parse its rows.

    Raises UpstreamUnavailable for transport errors, non-2xx statuses and
    upstream error codes, and UpstreamMalformed when the body is not XML or
    carries neither a RESULT code nor any rows.
    """
    response = _get(base_url, start_index, end_index, timeout)
    root = _parse_document(response.content, start_index, end_index)

    code, message = _result_status(root)
    if code and code not in _OK_RESULT_CODES:
        logger.error("Upstream rejected rows %d-%d: code=%s, message=%s", start_index, end_index, code, message)
        raise UpstreamUnavailable(f"rows {start_index}-{end_index}: {code} {message or ''}".strip())

    rows = parse_rows(root)
    if code is None and not rows:
        # Gateway or maintenance pages can be well-formed XML with neither RESULT nor rows.
        logger.error("Upstream body for rows %d-%d carries no RESULT code and no rows", start_index, end_index)
        raise UpstreamMalformed(f"rows {start_index}-{end_index}: body is not a Seoul Open API response")
    total_count = _total_count(root)
    logger.info("Fetched %d rows for %d-%d (total=%s)", len(rows), start_index, end_index, total_count)
    return Page(start_index=start_index, end_index=end_index, rows=rows, total_count=total_count)


def _parse_document(body: bytes, start_index: int, end_index: int) -> ET.Element:
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        logger.error("Unparseable upstream body for rows %d-%d: %s", start_index, end_index, exc)
        raise UpstreamMalformed(f"rows {start_index}-{end_index}: {exc}") from exc


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _find_child(parent: ET.Element, name: str) -> Optional[ET.Element]:
    wanted = name.upper()
    for element in parent:
        if _local_name(element.tag).upper() == wanted:
            return element
    return None


def _find_text(parent: ET.Element, name: str) -> Optional[str]:
    element = _find_child(parent, name)
    if element is None:
        return None
    return (element.text or "").strip()


def _result_status(root: ET.Element) -> Tuple[Optional[str], Optional[str]]:
    # Error-only bodies use <RESULT> as the document root; data bodies nest it.
    result = root if _local_name(root.tag).upper() == "RESULT" else _find_child(root, "RESULT")
    if result is None:
        return None, None
    return _find_text(result, "CODE"), _find_text(result, "MESSAGE")


def _total_count(root: ET.Element) -> Optional[int]:
    raw = _find_text(root, "list_total_count")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def parse_rows(root: ET.Element) -> List[Dict[str, str]]:
    """Collect every ``row`` element as a mapping of child tag to trimmed text."""
    rows: List[Dict[str, str]] = []
    for element in root.iter():
        if _local_name(element.tag).lower() != "row":
            continue
        row: Dict[str, str] = {}
        for child in element:
            name = _local_name(child.tag)
            if name:
                row[name] = (child.text or "").strip()
        rows.append(row)
    return rows
