"""Serve the catalog HTTP surface with ``python -m nurserysync``."""

from __future__ import annotations

import logging

import uvicorn

from nurserysync.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Run uvicorn against the FastAPI app, reloading in development."""

    config = get_settings()
    development = config.environment == "development"
    if config.catalog_base_url is None:
        logger.warning("No remote catalog configured; every read will be degraded")
    uvicorn.run(
        "nurserysync.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=development,
        log_level="debug" if development else "info",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
