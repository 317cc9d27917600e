from __future__ import annotations

import argparse
import logging
import signal

from presence.core.logging import configure_logging
from presence.core.settings import settings
from presence.db.session import SessionLocal
from presence.services.reminders import ReminderScheduler


logger = logging.getLogger("reminder_worker")


def main() -> None:
    parser = argparse.ArgumentParser(description="Nudge checked-in users who have not posted a status update.")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit.")
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.reminder_poll_interval_seconds,
        help="Polling interval in seconds.",
    )
    args = parser.parse_args()

    configure_logging(level=settings.log_level, service="reminder-worker")

    scheduler = ReminderScheduler(SessionLocal, interval_seconds=args.interval)
    if args.once:
        result = scheduler.tick()
        logger.info("Reminder tick complete: %s", result.as_dict())
        return

    def _shutdown(signum, frame) -> None:  # noqa: ANN001
        logger.info("Stopping reminder worker")
        scheduler.stop()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    logger.info("Reminder worker started (interval=%ss)", args.interval)
    scheduler.run_forever()


if __name__ == "__main__":
    main()
