"""HTTP entrypoint serving the aggregated toilet registry as JSON."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, current_app, jsonify, request

from toilet_registry.core.cache import SnapshotCache
from toilet_registry.core.config import Settings, get_settings
from toilet_registry.jobs.collect import FetchPage, run_collection
from toilet_registry.vendors import seoul_openapi
from toilet_registry.vendors.seoul_openapi import RawPage, UpstreamError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

EXTENSION_KEY = "toilet_registry"


def create_app(
    settings: Optional[Settings] = None,
    cache: Optional[SnapshotCache] = None,
    fetch_page: Optional[FetchPage] = None,
    fetch_raw: Optional[Callable[[int, int], RawPage]] = None,
) -> Flask:
    """Build the Flask app with one shared snapshot cache."""
    settings = settings or get_settings()
    if fetch_raw is None:
        fetch_raw = partial(
            seoul_openapi.fetch_raw,
            base_url=settings.upstream_base_url,
            timeout=settings.request_timeout,
        )

    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.json.sort_keys = False
    app.extensions[EXTENSION_KEY] = {
        "settings": settings,
        "cache": cache or SnapshotCache(),
        "fetch_page": fetch_page,
        "fetch_raw": fetch_raw,
    }

    app.add_url_rule("/", view_func=root)
    app.add_url_rule("/health", view_func=healthcheck)
    app.add_url_rule("/api/toilets", view_func=proxy_page)
    app.add_url_rule("/api/toilets/all", view_func=all_toilets)
    return app


def _state() -> Dict[str, Any]:
    return current_app.extensions[EXTENSION_KEY]


# ---------- Routes ----------


def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


def healthcheck() -> Any:
    return jsonify({"status": "ok"}), 200


def _parse_positive_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def resolve_range(start_raw: Optional[str], end_raw: Optional[str], default_size: int):
    """Apply the proxy's defaults: start falls back to 1, a bad end to a default-sized page."""
    start = _parse_positive_int(start_raw) or 1
    end = _parse_positive_int(end_raw)
    if end is None or end < start:
        end = start + default_size - 1
    return start, end


def proxy_page() -> Any:
    """Forward exactly one upstream page without parsing it."""
    state = _state()
    start, end = resolve_range(
        request.args.get("start"),
        request.args.get("end"),
        state["settings"].proxy_page_size,
    )
    try:
        page = state["fetch_raw"](start, end)
    except UpstreamError as exc:
        logger.error("Proxy fetch failed for %d-%d: %s", start, end, exc)
        return jsonify({"error": "Failed to fetch upstream page", "detail": str(exc)}), 502

    return Response(page.body, status=200, content_type=page.content_type)


def all_toilets() -> Any:
    state = _state()
    settings: Settings = state["settings"]
    refresh = partial(run_collection, settings, state["fetch_page"])

    try:
        result = state["cache"].get(settings.cache_ttl_seconds, refresh)
    except UpstreamError as exc:
        logger.error("Failed to refresh toilet registry: %s", exc)
        return jsonify({"error": "Failed to fetch all", "detail": str(exc)}), 502
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected failure refreshing toilet registry: %s", exc)
        return jsonify({"error": "Failed to fetch all", "detail": "internal error"}), 500

    rows = [record.to_dict() for record in result.records]
    logger.info("Serving %d rows (cached=%s, captured_at=%.3f)", len(rows), result.cached, result.captured_at)
    return jsonify({"cached": result.cached, "count": len(rows), "rows": rows}), 200


def main() -> None:
    settings = get_settings()
    logger.info("[BOOT] Binding on 0.0.0.0:%d", settings.port)
    app = create_app(settings)
    app.run(host="0.0.0.0", port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
