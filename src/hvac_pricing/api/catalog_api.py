"""
Catalog API - categories and devices.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..engine.capabilities import CapabilityToken
from ..services.catalog_service import CatalogService
from ..store.db import get_db
from .security import require_catalog_admin, require_requester

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


class CategoryResponse(BaseModel):
    id: str
    name: str
    is_active: bool


class CategorySave(BaseModel):
    id: Optional[str] = None
    name: str
    is_active: bool = True


class SafeDeviceResponse(BaseModel):
    """Device as employees see it: no factory price or dimensions."""
    id: str
    model_name: str
    category_id: str
    category_name: str


class DeviceSave(BaseModel):
    """Request model for creating or updating a device."""
    id: Optional[str] = None
    category_id: str
    model_name: str
    factory_price: Decimal
    length: Decimal
    weight: Decimal
    is_active: bool = True


class DeviceResponse(BaseModel):
    id: str
    category_id: str
    model_name: str
    factory_price: Decimal
    length: Decimal
    weight: Decimal
    is_active: bool


def _device_response(record) -> DeviceResponse:
    return DeviceResponse(
        id=record.id,
        category_id=record.category_id,
        model_name=record.model_name,
        factory_price=record.factory_price,
        length=record.length,
        weight=record.weight,
        is_active=record.is_active,
    )


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    include_inactive: bool = False,
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    categories = CatalogService(db).list_categories(include_inactive=include_inactive)
    return [CategoryResponse(id=c.id, name=c.name, is_active=c.is_active) for c in categories]


@router.post("/categories", response_model=CategoryResponse)
async def save_category(
    body: CategorySave,
    token: CapabilityToken = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
):
    category = CatalogService(db).save_category(token, body.name, category_id=body.id, is_active=body.is_active)
    return CategoryResponse(id=category.id, name=category.name, is_active=category.is_active)


@router.get("/devices", response_model=list[SafeDeviceResponse])
async def search_devices(
    q: str = "",
    category_id: Optional[str] = None,
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    """Search active devices by model name."""
    return [SafeDeviceResponse(**d.__dict__) for d in CatalogService(db).search_devices(q, category_id)]


@router.get("/devices/admin", response_model=list[DeviceResponse])
async def list_devices(
    include_inactive: bool = True,
    token: CapabilityToken = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
):
    """Full device rows, including factory attributes."""
    return [_device_response(r) for r in CatalogService(db).list_devices(include_inactive=include_inactive)]


@router.put("/devices", response_model=DeviceResponse)
async def save_device(
    body: DeviceSave,
    token: CapabilityToken = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
):
    record = CatalogService(db).save_device(
        token,
        category_id=body.category_id,
        model_name=body.model_name,
        factory_price=body.factory_price,
        length=body.length,
        weight=body.weight,
        device_id=body.id,
        is_active=body.is_active,
    )
    return _device_response(record)


@router.delete("/devices/{device_id}")
async def deactivate_device(
    device_id: str,
    token: CapabilityToken = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
):
    """Soft-delete a device."""
    CatalogService(db).deactivate_device(token, device_id)
    return {"success": True, "message": f"Device '{device_id}' deactivated"}
