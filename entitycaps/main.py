#!/usr/bin/env python3
"""
entitycaps - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from entitycaps import __version__
from entitycaps.config.provider import ConfigProvider, EnvConfigProvider
from entitycaps.logging_config import get_logging_config
from entitycaps.modules.api import PeerDirectory, ResolutionBroadcaster, create_discovery_router
from entitycaps.modules.coordinator import DiscoveryCoordinator, ExpirySweeper
from entitycaps.modules.features import FeatureTranslator, load_feature_table
from entitycaps.modules.transport import QueryOutbox

logger = logging.getLogger("entitycaps.main")


def create_app(config_provider: Optional[ConfigProvider] = None) -> FastAPI:
    """
    Build the FastAPI application and wire the modules together.

    Args:
        config_provider: Configuration source (defaults to environment variables)

    Returns:
        Configured FastAPI application; modules are exposed on ``app.state``
    """
    config_provider = config_provider or EnvConfigProvider()
    discovery_config = config_provider.get_discovery_config()
    api_config = config_provider.get_api_config()

    outbox = QueryOutbox(max_queries_per_fetch=discovery_config.max_queries_per_fetch)
    coordinator = DiscoveryCoordinator(
        outbox,
        config=discovery_config,
        translator=FeatureTranslator(load_feature_table()),
    )
    directory = PeerDirectory()
    broadcaster = ResolutionBroadcaster()
    coordinator.subscribe(directory.record)
    coordinator.subscribe(broadcaster.publish)

    sweeper = ExpirySweeper(coordinator, interval=discovery_config.sweep_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - start and stop background tasks.
        """
        logger.info("Starting entitycaps API...")

        if discovery_config.expiry_enabled:
            sweeper.start()
        else:
            logger.info("Query timeout not configured; stalled queries wait indefinitely")

        yield

        logger.info("Shutting down entitycaps API...")
        await sweeper.stop()
        logger.info("entitycaps API shutdown complete")

    app = FastAPI(
        title="entitycaps API",
        description="XMPP entity capabilities discovery and caching",
        version=__version__,
        debug=api_config.debug,
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator
    app.state.outbox = outbox
    app.state.directory = directory
    app.state.broadcaster = broadcaster
    app.state.sweeper = sweeper

    app.include_router(create_discovery_router(coordinator, outbox, directory, broadcaster))

    # Health/Monitoring Endpoints

    @app.get("/healthz")
    async def healthz():
        """
        Minimal health check endpoint for readiness and liveness checks.

        Returns:
            200: Service is running
        """
        return {"status": "ok"}

    @app.get("/health")
    async def health_check():
        """
        Health check with discovery state summary.

        Returns:
            200: Service healthy
            503: Expiry is configured but the sweeper is not running
        """
        stats = coordinator.stats()
        sweeper_status = "running" if sweeper.running else "stopped"

        if discovery_config.expiry_enabled and not sweeper.running:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "sweeper": sweeper_status, **stats},
            )

        return {
            "status": "healthy",
            "sweeper": sweeper_status,
            "version": __version__,
            **stats,
        }

    @app.get("/metrics")
    async def metrics():
        """
        Prometheus-compatible metrics endpoint.

        Returns gauges for discovery state and counters for diagnostics.
        """
        stats = coordinator.stats()
        lines = []

        for name, value in stats.items():
            lines.append(f"# HELP entitycaps_{name} Current number of {name.replace('_', ' ')}")
            lines.append(f"# TYPE entitycaps_{name} gauge")
            lines.append(f"entitycaps_{name} {value}")

        lines.append("# HELP entitycaps_outbox_depth Discovery queries waiting to be pulled")
        lines.append("# TYPE entitycaps_outbox_depth gauge")
        lines.append(f"entitycaps_outbox_depth {outbox.depth()}")

        lines.append("# HELP entitycaps_resolved_peers Peers with resolved capabilities")
        lines.append("# TYPE entitycaps_resolved_peers gauge")
        lines.append(f"entitycaps_resolved_peers {len(directory)}")

        lines.append("# HELP entitycaps_diagnostics_total Diagnostic events by kind")
        lines.append("# TYPE entitycaps_diagnostics_total counter")
        for kind, count in coordinator.diagnostics.counts().items():
            lines.append(f'entitycaps_diagnostics_total{{kind="{kind}"}} {count}')

        return Response(content="\n".join(lines) + "\n", media_type="text/plain")

    # Error handlers

    @app.exception_handler(ValueError)
    async def validation_error_handler(request: Request, exc: ValueError):
        """Handle validation errors."""
        logger.error(f"Validation error: {exc}")
        return JSONResponse(status_code=400, content={"error": str(exc)})

    return app


def main() -> None:
    config_provider = EnvConfigProvider()
    api_config = config_provider.get_api_config()

    # Use dict config for logging, not file path
    logging_config = get_logging_config(api_config.log_level, api_config.module_log_levels)
    log_config.dictConfig(logging_config)

    uvicorn.run(
        create_app(config_provider),
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        log_config=logging_config,
    )


if __name__ == "__main__":
    main()
