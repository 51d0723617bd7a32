import asyncio
import os

import uvicorn

from hotel_api.check_upstream import get_upstream_status
from hotel_api.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

setup_logging(level=settings.log_level)
logger = get_tagged_logger(__name__, tag="server")


def maybe_check_upstream() -> None:
    """
    Optionally probe the upstream API before serving. Controlled by:
    - SKIP_UPSTREAM_CHECK=true to skip entirely (useful in dev/tests)
    - API_BASE_URL for the origin whose /status is probed.

    An unreachable upstream is not fatal: datasets are still served from
    local snapshots until it recovers.
    """
    if os.getenv("SKIP_UPSTREAM_CHECK", "false").lower() in ("1", "true", "yes"):
        logger.info("Skipping upstream preflight (SKIP_UPSTREAM_CHECK=true)")
        return

    status = asyncio.run(get_upstream_status(settings))
    if status["ok"]:
        logger.info(f"Upstream reachable at {status['url']}")
    else:
        logger.warning(
            f"Upstream preflight failed ({status['error']}); serving from cache and snapshots until it recovers."
        )


if __name__ == "__main__":
    maybe_check_upstream()

    uvicorn.run(
        "hotel_api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
