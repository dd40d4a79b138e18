#!/usr/bin/env python3
"""Flask API server exposing the launch cache.

Endpoints:
    /health                     — service + DB status
    /api/launches               — GET: cached page, POST: forced refresh
    /api/launches/histogram     — weekly launch counts over cached data

Design notes:
    * The DatabaseManager and LaunchCache are built once in create_app and
      stored on app.config; request handlers never open the store directly.
    * Query parameters are validated here; cache decisions live in
      launch_cache.LaunchCache.
"""

import os
import sqlite3
from datetime import datetime, timezone
from typing import Optional, Tuple

from flask import Flask, current_app, jsonify, request

from config import config
from database_manager import DatabaseManager
from error_handling import NoDataAvailableError
from histogram import build_histogram
from launch_cache import SOURCE_CACHE, LaunchCache
from launch_fetch import LaunchClient, create_session
from logging_config import get_logger, setup_logging

logger = get_logger()

LAUNCHES_PATH = "/api/launches"


class InvalidPageError(ValueError):
    """limit/offset query parameters that are not non-negative integers."""


def build_launch_cache(db_path: Optional[str] = None) -> LaunchCache:
    """Wire the store, upstream client and orchestrator from configuration."""
    db = DatabaseManager(db_path or config.db_path)
    db.ensure_schema()
    client = LaunchClient(
        config.api_url,
        timeout=config.request_timeout,
        user_agent=config.user_agent,
        session=create_session(config.max_retries, config.retry_backoff_factor),
    )
    return LaunchCache(db, client, max_records=config.max_records)


def create_app(launch_cache: Optional[LaunchCache] = None) -> Flask:
    """Create the Flask app around an explicitly constructed cache."""
    app = Flask(__name__)
    if launch_cache is None:
        launch_cache = build_launch_cache()
    app.config["LAUNCH_CACHE"] = launch_cache
    app.config["CACHE_KEY"] = config.cache_key
    app.config["CACHE_TTL_MINUTES"] = config.cache_ttl_minutes

    app.add_url_rule("/health", view_func=health_check, methods=["GET"])
    app.add_url_rule(LAUNCHES_PATH, view_func=get_launches, methods=["GET"])
    app.add_url_rule(LAUNCHES_PATH, view_func=refresh_launches, methods=["POST"])
    app.add_url_rule(
        f"{LAUNCHES_PATH}/histogram", view_func=launch_histogram, methods=["GET", "POST"]
    )
    app.register_error_handler(404, not_found)
    app.register_error_handler(500, internal_error)
    app.after_request(add_security_headers)
    return app


def _launch_cache() -> LaunchCache:
    return current_app.config["LAUNCH_CACHE"]


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidPageError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise InvalidPageError(f"{name} must be >= 0, got {value}")
    return value


def _page_args() -> Tuple[int, int]:
    return _int_arg("limit", config.default_page_size), _int_arg("offset", 0)


def health_check():
    """Health check endpoint"""
    cache = _launch_cache()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db_status = cache.db.db_exists()
        cached_launches = cache.launches.count() if db_status else 0
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return (
            jsonify(
                {
                    "status": "unhealthy",
                    "error": "Health check failed",
                    "timestamp": timestamp,
                }
            ),
            500,
        )
    return jsonify(
        {
            "status": "healthy" if db_status else "degraded",
            "database": "connected" if db_status else "no_data",
            "cached_launches": cached_launches,
            "timestamp": timestamp,
        }
    ), (200 if db_status else 503)


def get_launches():
    """Serve a page of launches, refreshing from upstream when stale."""
    try:
        limit, offset = _page_args()
    except InvalidPageError as e:
        return jsonify({"error": "Invalid pagination parameters", "message": str(e)}), 400

    try:
        envelope = _launch_cache().get(
            current_app.config["CACHE_KEY"],
            current_app.config["CACHE_TTL_MINUTES"],
            limit,
            offset,
        )
    except NoDataAvailableError as e:
        logger.error(f"No launch data available: {e}")
        return (
            jsonify(
                {
                    "error": "Failed to fetch launch data",
                    "message": str(e),
                    "cached": False,
                }
            ),
            500,
        )
    return jsonify(envelope.to_dict(LAUNCHES_PATH))


def refresh_launches():
    """Force an upstream refresh and serve the requested page."""
    try:
        limit, offset = _page_args()
    except InvalidPageError as e:
        return jsonify({"error": "Invalid pagination parameters", "message": str(e)}), 400

    try:
        envelope = _launch_cache().refresh(
            current_app.config["CACHE_KEY"],
            current_app.config["CACHE_TTL_MINUTES"],
            limit,
            offset,
        )
    except NoDataAvailableError as e:
        logger.error(f"Manual refresh error: {e}")
        return jsonify({"error": "Failed to refresh cache", "message": str(e)}), 500
    return jsonify(envelope.to_dict(LAUNCHES_PATH))


def launch_histogram():
    """Weekly launch counts over everything currently cached."""
    try:
        launches = _launch_cache().list_all()
        buckets = build_histogram(launches)
    except (sqlite3.Error, KeyError, ValueError, TypeError) as e:
        logger.error(f"Histogram error: {e}")
        return jsonify({"error": "Failed to generate histogram data", "message": str(e)}), 500

    cache_info = {
        "source": SOURCE_CACHE,
        "fetched_at": datetime.now(timezone.utc).isoformat(),
        "ttl_minutes": current_app.config["CACHE_TTL_MINUTES"],
    }
    return jsonify(
        {
            "buckets": buckets,
            "cache_info": cache_info,
            "total_launches": len(launches),
        }
    )


def not_found(error):
    """Handle 404 errors"""
    return jsonify({"error": "Endpoint not found"}), 404


def internal_error(error):
    """Handle 500 errors"""
    logger.error(f"Internal server error: {error}")
    return jsonify({"error": "Internal server error"}), 500


def add_security_headers(response):
    """Add security headers to all responses."""
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


if __name__ == "__main__":
    setup_logging()
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "false").lower() == "true"

    app = create_app()
    logger.info(f"Starting launch cache API on port {port}")
    logger.info(f"Database: {config.db_path}")

    app.run(host="0.0.0.0", port=port, debug=debug)
