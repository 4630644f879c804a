"""
Service entrypoint.

Loads settings, installs the optional DNS override, builds the configured
store and serves the façade with uvicorn. Configuration errors exit the
process with a non-zero status.
"""

from __future__ import annotations

import logging
import sys

from errors import ConfigurationError
from observability import build_log_context, log_event


def main() -> int:
    import uvicorn

    from api_server import create_app
    from app.core.dns import configure_custom_dns_resolver
    from app.core.settings import Settings

    ctx = build_log_context(tool="main")
    try:
        settings = Settings()
        logging.basicConfig(
            level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        configure_custom_dns_resolver(settings)
        app = create_app(settings=settings)
    except ConfigurationError as e:
        log_event("startup_failed", ctx=ctx, data={"error": e.to_dict()})
        return 1

    log_event(
        "server_started",
        ctx=ctx,
        data={"url": f"http://localhost:{settings.PORT}", "settings": settings.to_dict()},
    )
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
