"""
Background worker that runs the delivery sweep on a fixed interval.

Usage:
    slowpost-worker
    python -m slowpost.worker

Run as a separate process. The sweep is idempotent, so overlapping with the
/internal/scheduled/deliver cron is safe.
"""

import asyncio
import logging
import os

from slowpost.core.config import settings
from slowpost.core.structured_logging import build_log_context
from slowpost.db.session import SessionLocal
from slowpost.services import delivery_sweep

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def run_once() -> delivery_sweep.SweepSummary:
    with SessionLocal() as db:
        return delivery_sweep.run_sweep(db)


async def worker_loop() -> None:
    """Main worker loop - sweeps, then sleeps."""
    logger.info("Worker starting (sweep interval: %ss)", settings.SWEEP_INTERVAL_SECONDS)

    while True:
        try:
            summary = await asyncio.to_thread(run_once)
            if summary.errors:
                logger.warning("Sweep finished with %s error(s)", summary.errors)
        except Exception as e:
            logger.error("Error in worker loop: %s", type(e).__name__)

        await asyncio.sleep(settings.SWEEP_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(
                request_id=os.getenv("WORKER_INSTANCE_ID"),
                route="worker",
                method="background",
            ),
        )
        raise


if __name__ == "__main__":
    main()
