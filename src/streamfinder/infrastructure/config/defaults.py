"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "streamfinder",
    "environment": "dev",
    "http": {
        "timeout_seconds": 10.0,
        "follow_redirects": True,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "dir": "./.cache/streamfinder",
        "backend": "diskcache",
        "ttl_seconds": 3600,
    },
    "extraction": {
        "intermediary_url": None,
        "proxies": [
            "https://api.allorigins.win/raw?url=",
            "https://corsproxy.io/?",
            "https://cors-anywhere.herokuapp.com/",
        ],
        "timeout_seconds": 10.0,
        "success_ttl_seconds": 600,
        "failure_ttl_seconds": 300,
        "follow_iframes": True,
    },
    "providers": {
        "bases": [
            "https://streamed.pk/api",
            "https://streamed.su/api",
        ],
        "templates": ["stream/{source}/{match_id}"],
        "proxies": [
            "https://api.allorigins.win/raw?url=",
            "https://corsproxy.io/?",
        ],
        "timeout_seconds": 3.0,
        "results_ttl_seconds": 900,
        "empty_ttl_seconds": 300,
        "source_priority": {
            "charlie": 1,
            "bravo": 2,
            "delta": 3,
            "echo": 4,
            "alpha": 5,
        },
        "fallback_sources": ["alpha", "bravo", "charlie"],
    },
    "embed": {
        "domains": [
            {"url": "https://embed.damitv.pro", "url_format": "query_params"},
            {"url": "https://embedsports.top", "url_format": "path_segments"},
            {"url": "https://embedme.top", "url_format": "path_segments"},
        ],
        "verify_timeout_seconds": 3.0,
        "marker_ttl_seconds": 300,
        "failed_ttl_seconds": 300,
        "verify_strict_status": False,
    },
}
