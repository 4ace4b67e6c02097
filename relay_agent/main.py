# relay_agent/main.py

import asyncio
import logging

from relay_agent.application.agent_factory import build_reconciliation_service
from relay_agent.core.config import Settings
from relay_agent.core.logging_config import configure_logging
from relay_agent.core.scheduler import run_cycle_safely, run_forever
from relay_agent.infrastructure.http.json_client import build_http_client

logger = logging.getLogger(__name__)


async def main(settings: Settings | None = None):
    settings = settings or Settings()
    configure_logging(settings)

    client = build_http_client(settings.HTTP_TIMEOUT_SECONDS)
    service = build_reconciliation_service(settings, client)

    try:
        logger.info(
            f"🚀 Relay agent started | relays={settings.relays_url} "
            f"sensors={settings.sensors_url} interval={settings.RECONCILE_INTERVAL_SECONDS}s"
        )

        if settings.RUN_ONCE:
            await run_cycle_safely(service.run_cycle)
        else:
            await run_forever(service.run_cycle, settings.RECONCILE_INTERVAL_SECONDS)

    except asyncio.CancelledError:
        pass

    finally:
        await client.aclose()
        logger.info("HTTP client closed.")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Relay agent stopping due to keyboard interrupt.")


if __name__ == "__main__":
    run()
