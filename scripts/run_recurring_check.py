#!/usr/bin/env python3
"""Run the recurring billing check once, as the daily scheduler would."""
from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backoffice.core.log import get_logger, init_logging, log_context, progress_manager  # noqa: E402
from backoffice.db.session import session_scope  # noqa: E402
from backoffice.services.recurring import RecurringPaymentService  # noqa: E402

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--date",
        dest="today",
        type=date.fromisoformat,
        default=None,
        help="Evaluate schedules as of this date (YYYY-MM-DD). Defaults to today.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    today = args.today or date.today()
    logger.info("Checking recurring payments as of %s", today)

    with session_scope() as session:
        service = RecurringPaymentService(session)
        sources = service.sources()

        result = service.run(
            today,
            sources=progress_manager.track(sources, description="Recurring sources", total=len(sources)),
        )

    for line in result.details:
        logger.info(line)
    logger.info("%s notification(s) recorded", result.notifications_created)


if __name__ == "__main__":
    init_logging(app_name="recurring-check")
    log_context.bind(job="recurring_check")
    main()
