# Insert Sample Perimeter
import logging
import os

from db.session import get_engine, init_db
from models.coordinate import Coordinate
from services.perimeter_registry import PerimeterRegistry

logger = logging.getLogger(__name__)

DEMO_ORGANIZATION_ID = os.getenv("SEED_ORGANIZATION_ID", "sunrise-healthcare")


def seed_perimeters(registry: PerimeterRegistry) -> None:
    existing = registry.get_perimeter(DEMO_ORGANIZATION_ID)
    if existing:
        logger.info(f"Perimeter for {DEMO_ORGANIZATION_ID} already exists")
        return

    registry.set_perimeter(
        organization_id=DEMO_ORGANIZATION_ID,
        center=Coordinate(latitude=40.7589, longitude=-73.9851),
        radius_meters=100.0,  # 100 m radius
        display_name="Main Building",
        address="123 Healthcare Ave, Medical City, MC 12345",
        updated_by="seed",
    )
    logger.info(f"Added perimeter for {DEMO_ORGANIZATION_ID}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    engine = get_engine()
    init_db(engine)
    seed_perimeters(PerimeterRegistry(engine))
