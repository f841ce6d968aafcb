"""Main entry point - runs the API server."""

import asyncio
import logging
import signal

import uvicorn

from dispenser.api.app import create_app
from dispenser.config import get_settings

logger = logging.getLogger(__name__)


class Application:
    """Main application wrapping the uvicorn server."""

    def __init__(self):
        self.settings = get_settings()
        self.server = None

    def configure_logging(self):
        log_level = logging.DEBUG if self.settings.debug else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    async def start(self):
        """Start the API server and block until it exits."""
        self.configure_logging()

        logger.info("Starting token dispenser...")
        logger.info(f"Config: {self.settings.get_safe_dict()}")

        config = uvicorn.Config(
            create_app(),
            host=self.settings.host,
            port=self.settings.port,
            log_level="debug" if self.settings.debug else "info",
        )
        self.server = uvicorn.Server(config)

        await self.server.serve()

        if not self.server.started:
            # Lifespan startup failed (bad seed phrase, unreachable RPC, ...)
            raise SystemExit(1)

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        if self.server:
            self.server.should_exit = True


def main():
    """Main entry point."""
    app = Application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
