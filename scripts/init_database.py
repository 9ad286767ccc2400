# scripts/init_database.py

import logging
from training_service.core.database import Base, engine, get_db_session
from training_service.db.models import Test

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


STANDARD_TESTS = [
    {
        "name": "Bench Press 1RM",
        "description": "Heaviest single repetition on the flat bench press.",
        "test_type": "strength",
        "unit": "kg",
        "instructions": "Warm up with progressively heavier sets, then at most three attempts.",
    },
    {
        "name": "Back Squat 1RM",
        "description": "Heaviest single repetition to parallel depth.",
        "test_type": "strength",
        "unit": "kg",
    },
    {
        "name": "30 m Sprint",
        "description": "Off-ice sprint from a standing start.",
        "test_type": "speed",
        "unit": "sec",
        "instructions": "Best of two runs with full recovery between them.",
    },
    {
        "name": "Standing Long Jump",
        "test_type": "power",
        "unit": "cm",
    },
    {
        "name": "Beep Test",
        "description": "Multi-stage 20 m shuttle run.",
        "test_type": "endurance",
        "unit": "score",
    },
    {
        "name": "Pull-ups",
        "description": "Strict pull-ups to failure.",
        "test_type": "strength",
        "unit": "reps",
    },
]


def init_tests():
    """Create the tables (if missing) and seed the standard test definitions."""
    Base.metadata.create_all(bind=engine)

    with get_db_session() as db:
        # If there is already at least one test in the table, skip initialization
        if db.query(Test).count() > 0:
            logger.info("Tests already initialized, skipping.")
            return

        for data in STANDARD_TESTS:
            db.add(Test(**data))
    logger.info(f"Seeded {len(STANDARD_TESTS)} test definitions.")


if __name__ == "__main__":
    init_tests()
