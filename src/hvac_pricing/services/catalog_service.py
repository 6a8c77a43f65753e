"""
Catalog Service - categories and devices.

Employees only ever see the safe device view (no factory price or
dimensions); maintenance operations require the MANAGE_CATALOG capability.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ..config.logging import get_logger, audit_logger
from ..engine.calculator import to_decimal
from ..engine.capabilities import Capability, CapabilityToken
from ..engine.errors import InvalidInput, NotFound
from ..engine.models import Device
from ..store.db import store_call
from ..store.tables import Category, DeviceRecord, money_overflow, utcnow

logger = get_logger(__name__)


@dataclass
class SafeDevice:
    """Device as shown to employees."""
    id: str
    model_name: str
    category_id: str
    category_name: str


def to_device(record: DeviceRecord) -> Device:
    """Convert a stored row to the engine's Device."""
    return Device(
        id=record.id,
        category_id=record.category_id,
        model_name=record.model_name,
        factory_price=record.factory_price,
        length=record.length,
        weight=record.weight,
        is_active=bool(record.is_active),
        category_name=record.category.name if record.category else None,
    )


class CatalogService:
    """Service for browsing and maintaining the device catalog."""

    def __init__(self, session: Session):
        self.session = session

    # Categories

    @store_call
    def list_categories(self, include_inactive: bool = False) -> list[Category]:
        """List categories ordered by name."""
        query = select(Category).order_by(Category.name)
        if not include_inactive:
            query = query.where(Category.is_active.is_(True))
        return list(self.session.scalars(query).all())

    @store_call
    def get_category(self, category_id: str) -> Category:
        category = self.session.get(Category, category_id)
        if category is None:
            raise NotFound(f"Category '{category_id}' not found")
        return category

    @store_call
    def find_category(self, name: str) -> Optional[Category]:
        return self.session.scalars(select(Category).where(Category.name == name.strip())).first()

    @store_call
    def save_category(
        self,
        token: CapabilityToken,
        name: str,
        category_id: Optional[str] = None,
        is_active: bool = True,
        commit: bool = True,
    ) -> Category:
        """Create or update a category."""
        token.require(Capability.MANAGE_CATALOG)
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Category name is required")

        clash = self.find_category(name)
        if clash is not None and clash.id != category_id:
            raise InvalidInput(f"Category '{name}' already exists")

        if category_id:
            category = self.get_category(category_id)
            category.name = name
            category.is_active = is_active
        else:
            category = Category(name=name, is_active=is_active)
            self.session.add(category)

        if commit:
            self.session.commit()
        else:
            self.session.flush()
        audit_logger.log("catalog.category.save", user_id=token.user_id,
                         entity_type="category", entity_id=category.id, details={"name": name})
        return category

    @store_call
    def deactivate_category(self, token: CapabilityToken, category_id: str) -> Category:
        token.require(Capability.MANAGE_CATALOG)
        category = self.get_category(category_id)
        category.is_active = False
        self.session.commit()
        return category

    # Devices

    @store_call
    def search_devices(self, query: str = "", category_id: Optional[str] = None) -> list[SafeDevice]:
        """
        Search active devices by model name (case-insensitive substring).

        Args:
            query: Text to look for in the model name; empty matches all
            category_id: Restrict to one category ("all" or None for any)
        """
        stmt = (
            select(DeviceRecord)
            .join(Category)
            .options(joinedload(DeviceRecord.category))
            .where(DeviceRecord.is_active.is_(True))
            .where(Category.is_active.is_(True))
            .order_by(DeviceRecord.model_name)
        )
        if category_id and category_id != 'all':
            stmt = stmt.where(DeviceRecord.category_id == category_id)

        records = self.session.scalars(stmt).all()

        q = (query or "").strip().lower()
        if q:
            records = [r for r in records if q in r.model_name.lower()]

        return [
            SafeDevice(
                id=r.id,
                model_name=r.model_name,
                category_id=r.category_id,
                category_name=r.category.name if r.category else 'Unknown',
            )
            for r in records
        ]

    @store_call
    def list_devices(self, include_inactive: bool = True) -> list[DeviceRecord]:
        """Full device rows for admins."""
        stmt = select(DeviceRecord).options(joinedload(DeviceRecord.category)).order_by(DeviceRecord.model_name)
        if not include_inactive:
            stmt = stmt.where(DeviceRecord.is_active.is_(True))
        return list(self.session.scalars(stmt).all())

    @store_call
    def get_device_record(self, device_id: str) -> DeviceRecord:
        record = self.session.get(DeviceRecord, device_id)
        if record is None:
            raise NotFound(f"Device '{device_id}' not found")
        return record

    def get_device(self, device_id: str) -> Device:
        return to_device(self.get_device_record(device_id))

    @store_call
    def save_device(
        self,
        token: CapabilityToken,
        category_id: str,
        model_name: str,
        factory_price,
        length,
        weight,
        device_id: Optional[str] = None,
        is_active: bool = True,
        commit: bool = True,
    ) -> DeviceRecord:
        """Create or update a device after validating its attributes."""
        token.require(Capability.MANAGE_CATALOG)

        model_name = (model_name or "").strip()
        if not model_name:
            raise InvalidInput("Model name is required")
        self.get_category(category_id)

        attributes = {
            'factory_price': to_decimal(factory_price, 'factory_price'),
            'length': to_decimal(length, 'length'),
            'weight': to_decimal(weight, 'weight'),
        }
        for name, value in attributes.items():
            if value <= 0:
                raise InvalidInput(f"{name} must be greater than zero, got {value}")
            overflow = money_overflow(value)
            if overflow:
                raise InvalidInput(f"{name} {overflow} ({value})")

        record = self.session.get(DeviceRecord, device_id) if device_id else None
        if record is not None:
            record.updated_at = utcnow()
        else:
            record = DeviceRecord(id=device_id) if device_id else DeviceRecord()
            self.session.add(record)

        record.category_id = category_id
        record.model_name = model_name
        record.is_active = is_active
        for name, value in attributes.items():
            setattr(record, name, value)

        if commit:
            self.session.commit()
        else:
            self.session.flush()
        audit_logger.log("catalog.device.save", user_id=token.user_id, entity_type="device",
                         entity_id=record.id, details={"model_name": model_name, **attributes})
        return record

    @store_call
    def deactivate_device(self, token: CapabilityToken, device_id: str) -> DeviceRecord:
        """Soft delete: inquiries keep pointing at the row."""
        token.require(Capability.MANAGE_CATALOG)
        record = self.get_device_record(device_id)
        record.is_active = False
        record.updated_at = utcnow()
        self.session.commit()
        audit_logger.log("catalog.device.deactivate", user_id=token.user_id,
                         entity_type="device", entity_id=device_id)
        return record
