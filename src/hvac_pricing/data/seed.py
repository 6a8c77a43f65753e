"""
Seed data: the starter HVAC catalog and default pricing parameters.
"""
from sqlalchemy.orm import Session

from ..config.logging import get_logger
from ..engine.capabilities import CapabilityToken
from ..services.catalog_service import CatalogService
from ..services.parameter_store import ParameterStore

logger = get_logger(__name__)

SEED_DEVICES = {
    'VRF Systems': [
        ('VRF-Outdoor-20HP', '15000', '2.5', '400'),
        ('VRF-Indoor-Cassette', '800', '0.8', '30'),
    ],
    'Chillers': [
        ('Screw-Chiller-100T', '45000', '4.0', '2500'),
        ('Scroll-Chiller-Mini', '12000', '1.5', '600'),
    ],
    'Air Handling Units (AHU)': [
        ('AHU-Industrial-5000', '8000', '3.0', '900'),
        ('AHU-Hygienic-2000', '11000', '2.2', '750'),
    ],
}


def seed_database(session: Session, token: CapabilityToken) -> dict:
    """Insert starter categories, devices and parameters where missing."""
    catalog = CatalogService(session)
    counts = {"categories": 0, "devices": 0}

    existing_models = {d.model_name for d in catalog.list_devices()}

    for category_name, devices in SEED_DEVICES.items():
        category = catalog.find_category(category_name)
        if category is None:
            category = catalog.save_category(token, category_name)
            counts["categories"] += 1
        for model, price, length, weight in devices:
            if model in existing_models:
                continue
            catalog.save_device(token, category.id, model, price, length, weight)
            counts["devices"] += 1

    params = ParameterStore(session).ensure_default(created_by=token.user_id)
    counts["parameter_set_id"] = params.id
    logger.info("Seeded %d categories and %d devices", counts["categories"], counts["devices"])
    return counts
