"""
Logging configuration for the entitycaps service

Health check and scrape requests (/health, /healthz, /metrics) are kept out of the
access log. Individual modules can run at their own level, e.g. the tracker at
DEBUG to follow every sent query while the rest stays at INFO.
"""

import logging
import logging.config
from typing import Any, Dict, Mapping, Optional

# Request paths polled by health checks and Prometheus
QUIET_PATHS = ("/health", "/metrics")


class HealthCheckFilter(logging.Filter):
    """Filter to suppress health check and metrics scrape logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out health check requests from uvicorn access logs."""
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "GET" in message and any(path in message for path in QUIET_PATHS):
                return False
        return True


def get_logging_config(
    level: str = "INFO", module_levels: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """
    Get logging configuration with health check suppression.

    Args:
        level: Level for the ``entitycaps`` logger tree
        module_levels: Per-module overrides keyed by module name
            (``tracker``, ``diagnostics``, ...) or full logger name

    Returns:
        Dict for ``logging.config.dictConfig``
    """
    loggers: Dict[str, Any] = {
        "uvicorn": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False
        },
        "uvicorn.error": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False
        },
        "uvicorn.access": {
            "handlers": ["access"],
            "level": "INFO",
            "propagate": False
        },
        "entitycaps": {
            "handlers": ["default"],
            "level": level,
            "propagate": False
        },
    }

    for module, module_level in (module_levels or {}).items():
        name = module if module.startswith("entitycaps") else f"entitycaps.{module}"
        # Records still reach the handler through the entitycaps logger
        loggers[name] = {"level": module_level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "health_check_filter": {
                "()": HealthCheckFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "access": {
                "format": "%(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["health_check_filter"]
            }
        },
        "loggers": loggers,
        "root": {
            "level": "INFO",
            "handlers": ["default"]
        }
    }
