"""
Scheduler Entry Point — runs in its own process.

Usage:
    python -m fleetalert.scheduler_main          # initial sweep, then scheduled loop
    python -m fleetalert.scheduler_main --once   # one sweep + one cleanup, then exit

This does NOT run a web server. It runs the APScheduler background loop
for alert generation and retention.
"""

import argparse
import asyncio
import signal
import sys

import structlog

from fleetalert.config import settings
from fleetalert.db.engine import close_db, get_session_factory, init_db
from fleetalert.errors import ConfigurationError
from fleetalert.logging_setup import configure_logging
from fleetalert.services.registry import build_scheduler

logger = structlog.get_logger(__name__)


async def main(once: bool = False) -> int:
    """Initialize and run the scheduler. Returns the process exit code."""
    logger.info("scheduler_starting", version=settings.app_version, environment=settings.environment)

    await init_db(settings)
    session_factory = get_session_factory(settings)

    try:
        scheduler = build_scheduler(settings, session_factory)
    except ConfigurationError as e:
        logger.error("scheduler_configuration_invalid", error=str(e))
        await close_db()
        return 2

    # Run initial sweep on startup
    logger.info("running_initial_sweep")
    sweep = await scheduler.run_all()

    if once:
        cleanup = await scheduler.run_cleanup()
        await close_db()
        logger.info(
            "single_run_complete",
            total=sweep.total,
            failed=sweep.failed,
            cleaned=cleanup.total,
        )
        return 1 if sweep.failed or not cleanup.ok else 0

    # Start periodic scheduler
    scheduler.start()

    # Graceful shutdown handling
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(signum):
        logger.info("shutdown_signal_received", signal=signum)
        stop_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, _handle_signal, signum)

    logger.info("scheduler_running", jobs=scheduler.status().task_count)

    # Block until shutdown signal
    await stop_event.wait()

    # Stop firing, let in-flight checks finish, then release the pool
    scheduler.stop()
    await scheduler.wait_idle()
    await close_db()
    logger.info("scheduler_shutdown_complete")
    return 0


def run(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="fleetalert-scheduler", description="Alert generation scheduler")
    parser.add_argument("--once", action="store_true", help="run one sweep and one cleanup, then exit")
    args = parser.parse_args(argv)

    configure_logging(settings)
    try:
        sys.exit(asyncio.run(main(once=args.once)))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
