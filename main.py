"""
PetCare — Entry Point.

`python main.py` opens (or creates) the local store, tops up every active
recurring series to the generation horizon, and logs what is scheduled.
"""

import logging

from petcare.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from petcare.core.recurrence_service import RecurrenceService
from petcare.data.db import RecurrenceRepository, close_database, init_database

logger = logging.getLogger("petcare")


def main() -> None:
    init_database()
    repo = RecurrenceRepository()
    service = RecurrenceService(repo)

    try:
        response = service.get_rules(is_active=True)
        if not response.success:
            logger.error("Startup sync aborted: %s", response.message)
            return
        for rule in response.data:
            result = service.regenerate_events(rule.id)
            if not result.success:
                logger.error("Could not refresh rule %s: %s", rule.id, result.message)

        upcoming = repo.get_upcoming_events()
        logger.info(
            "%d active rules, %d upcoming events in %s",
            len(response.data), len(upcoming), settings.DATABASE_PATH,
        )
    finally:
        close_database()


if __name__ == "__main__":
    main()
