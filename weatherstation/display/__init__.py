"""Terminal dashboard service."""

from .poller import ReadingPoller, PollingHandle
from .terminal_monitor import TerminalMonitor


def main():
    """Entry point for the dashboard service."""
    import asyncio
    import sys

    from .config import load_config
    from weatherstation.shared.logging import setup_logging, get_logger
    from weatherstation.shared.datasource import ConfigurationError, create_source

    config = load_config()
    setup_logging(config.log_level, log_file=config.log_file)
    logger = get_logger(__name__)

    try:
        source = create_source(config.source, config.on_missing_source)
    except ConfigurationError as e:
        logger.error(f"Cannot start dashboard: {e}")
        print(f"Cannot start dashboard: {e}", file=sys.stderr)
        sys.exit(1)

    poller = ReadingPoller(source, table=config.polling.table, limit=config.polling.limit)
    monitor = TerminalMonitor(config, poller)

    async def _run():
        try:
            await monitor.run()
        finally:
            await source.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


__all__ = ["ReadingPoller", "PollingHandle", "TerminalMonitor", "main"]
