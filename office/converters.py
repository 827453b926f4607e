"""
office/converters.py -- Pure entity <-> DTO mapping functions.

Three functions per resource:
  <r>_to_dto(entity)           -- persisted row -> transport object
  <r>_from_dto(dto, created)   -- transport object -> new row stamped with created
  merge_<r>(entity, dto)       -- copy of entity with the mutable fields from dto

merge_* never changes id or date_created. No function here touches the store
or mutates its arguments (entities are frozen dataclasses; dataclasses.replace
returns a new instance).
"""

from __future__ import annotations

from dataclasses import replace

from office.dtos import CategoryDto, DeviceDto, ZoneDto
from office.models import Category, Device, Zone

# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------


def category_to_dto(entity: Category) -> CategoryDto:
    return CategoryDto(
        id=entity.id,
        name=entity.name,
        description=entity.description,
        date_created=entity.date_created,
    )


def category_from_dto(dto: CategoryDto, date_created: str) -> Category:
    return Category(
        id=dto.id,
        name=dto.name,
        description=dto.description,
        date_created=date_created,
    )


def merge_category(entity: Category, dto: CategoryDto) -> Category:
    return replace(entity, name=dto.name, description=dto.description)


# ---------------------------------------------------------------------------
# Zone
# ---------------------------------------------------------------------------


def zone_to_dto(entity: Zone) -> ZoneDto:
    return ZoneDto(
        id=entity.id,
        name=entity.name,
        description=entity.description,
        date_created=entity.date_created,
    )


def zone_from_dto(dto: ZoneDto, date_created: str) -> Zone:
    return Zone(
        id=dto.id,
        name=dto.name,
        description=dto.description,
        date_created=date_created,
    )


def merge_zone(entity: Zone, dto: ZoneDto) -> Zone:
    return replace(entity, name=dto.name, description=dto.description)


# ---------------------------------------------------------------------------
# Device
# ---------------------------------------------------------------------------


def device_to_dto(entity: Device) -> DeviceDto:
    return DeviceDto(
        id=entity.id,
        name=entity.name,
        category_id=entity.category_id,
        zone_id=entity.zone_id,
        status=entity.status,
        is_active=entity.is_active,
        date_created=entity.date_created,
    )


def device_from_dto(dto: DeviceDto, date_created: str) -> Device:
    return Device(
        id=dto.id,
        name=dto.name,
        category_id=dto.category_id,
        zone_id=dto.zone_id,
        status=dto.status,
        is_active=dto.is_active,
        date_created=date_created,
    )


def merge_device(entity: Device, dto: DeviceDto) -> Device:
    # category_id and zone_id are mutable: moving a device is an update.
    return replace(
        entity,
        name=dto.name,
        category_id=dto.category_id,
        zone_id=dto.zone_id,
        status=dto.status,
        is_active=dto.is_active,
    )
