"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DiscoveryConfig:
    """Discovery coordination configuration."""
    query_timeout: Optional[float] = None
    max_retries: int = 0
    retry_on_error: bool = False
    sweep_interval: float = 5.0
    diagnostics_history: int = 100
    max_queries_per_fetch: int = 10

    @property
    def expiry_enabled(self) -> bool:
        """Check if stalled queries should ever be expired."""
        return self.query_timeout is not None


@dataclass
class APIConfig:
    """API configuration."""
    port: int = 8080
    host: str = "0.0.0.0"
    debug: bool = False
    log_level: str = "INFO"
    module_log_levels: Dict[str, str] = field(default_factory=dict)


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_discovery_config(self) -> DiscoveryConfig:
        """Get discovery configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _get_number(name: str, default: str, cast, minimum=0):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_log_levels(name: str) -> Dict[str, str]:
    """Parse "tracker=DEBUG,diagnostics=WARNING" into module -> level."""
    levels = {}
    for item in os.getenv(name, "").split(","):
        item = item.strip()
        if not item:
            continue
        module, _, level = item.partition("=")
        module, level = module.strip(), level.strip().upper()
        if not module or level not in LOG_LEVELS:
            raise ValueError(f"{name} entries must look like module=LEVEL, got {item!r}")
        levels[module] = level
    return levels


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_discovery_config(self) -> DiscoveryConfig:
        """Get discovery configuration from environment variables."""
        # Unset or 0 keeps the classic behaviour: wait for responses forever
        query_timeout = _get_number("ENTITYCAPS_QUERY_TIMEOUT", "0", float)

        sweep_interval = _get_number("ENTITYCAPS_SWEEP_INTERVAL", "5.0", float)
        if sweep_interval == 0:
            raise ValueError("ENTITYCAPS_SWEEP_INTERVAL must be greater than 0")

        return DiscoveryConfig(
            query_timeout=query_timeout or None,
            max_retries=_get_number("ENTITYCAPS_MAX_RETRIES", "0", int),
            retry_on_error=_get_bool("ENTITYCAPS_RETRY_ON_ERROR"),
            sweep_interval=sweep_interval,
            diagnostics_history=_get_number("ENTITYCAPS_DIAGNOSTICS_HISTORY", "100", int, minimum=1),
            max_queries_per_fetch=_get_number(
                "ENTITYCAPS_MAX_QUERIES_PER_FETCH", "10", int, minimum=1
            ),
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=_get_number("API_PORT", "8080", int, minimum=1),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=_get_bool("DEBUG"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            module_log_levels=_get_log_levels("ENTITYCAPS_LOG_LEVELS"),
        )
