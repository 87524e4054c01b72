"""
Entrypoint: load .env and config, init logging, mount the loader, render every
state it publishes and optionally re-trigger it on an interval.
"""

import asyncio
import signal

import structlog
from dotenv import load_dotenv

from loader.config import Config
from loader.controller import ResourceLoader
from loader.log import configure_logging
from loader.render import render_state


async def main():
    """Initialize dependencies and run the loader until done or interrupted"""
    load_dotenv()
    config = Config()

    log_config = config.logging
    configure_logging(
        level=log_config.get('level', 'INFO'),
        renderer=log_config.get('renderer', 'json')
    )
    logger = structlog.get_logger(__name__)

    resource_loader = ResourceLoader.from_config(config)
    resource_loader.subscribe(lambda state: print(render_state(state, resource_loader.url), flush=True))

    refresh_interval = float(config.consumer.get('refresh_interval', 0) or 0)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except NotImplementedError:
            pass

    logger.info("loader_started", url=resource_loader.url, refresh_interval=refresh_interval)

    try:
        await resource_loader.refresh()

        while refresh_interval > 0 and not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=refresh_interval)
            except asyncio.TimeoutError:
                await resource_loader.refresh()
    finally:
        await resource_loader.aclose()
        logger.info("loader_stopped", status=resource_loader.current_state().status)


if __name__ == "__main__":
    asyncio.run(main())
