"""
office/services.py -- Category, Zone and Device services.

All three resources follow one contract, implemented once in ResourceService:

  get_by_id(id)     zero GUID -> BAD_REQUEST, missing -> NOT_FOUND
  get_all()         every row as a DTO (read only)
  create(dto)       zero GUID -> BAD_REQUEST, existing id -> CONFLICT,
                    else insert + re-read
  update(id, dto)   zero GUID or id != dto.id -> BAD_REQUEST,
                    missing -> NOT_FOUND, else overwrite mutable fields + re-read
  delete(id)        zero GUID -> BAD_REQUEST, missing -> NOT_FOUND,
                    referenced by a device -> FORBIDDEN, else remove

Writes are always followed by a fresh read so the caller gets exactly what
the store holds (server-stamped date_created included), never an echo of the
input.

Subclasses bind the store accessors and converters for one resource and,
for Category and Zone, the dependent-device check.

Services return core.results.Result values. Only unexpected failures raise.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from core.results import ErrorKind, Result
from office.converters import (
    category_from_dto,
    category_to_dto,
    device_from_dto,
    device_to_dto,
    merge_category,
    merge_device,
    merge_zone,
    zone_from_dto,
    zone_to_dto,
)
from office.dtos import CategoryDto, DeviceDto, Identified, ZoneDto
from office.models import Category, Device, Zone
from office.store import OfficeStore

logger = logging.getLogger("connectedoffice.office")

EMPTY_ID = UUID(int=0)

E = TypeVar("E")
D = TypeVar("D", bound=Identified)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResourceService(ABC, Generic[E, D]):
    """CRUD contract shared by every inventory resource.

    label is the resource name used in messages ("category", "zone", "device").
    """

    label: str = ""

    def __init__(self, store: OfficeStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Hooks bound by subclasses
    # ------------------------------------------------------------------

    @abstractmethod
    def _fetch(self, entity_id: UUID) -> Optional[E]:
        ...

    @abstractmethod
    def _fetch_all(self) -> list[E]:
        ...

    @abstractmethod
    def _insert(self, entity: E) -> None:
        ...

    @abstractmethod
    def _save(self, entity: E) -> bool:
        ...

    @abstractmethod
    def _remove(self, entity_id: UUID) -> bool:
        ...

    @abstractmethod
    def _to_dto(self, entity: E) -> D:
        ...

    @abstractmethod
    def _from_dto(self, dto: D, date_created: str) -> E:
        ...

    @abstractmethod
    def _merge(self, entity: E, dto: D) -> E:
        ...

    def _has_dependents(self, entity_id: UUID) -> bool:
        return False

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _invalid_id(self, entity_id: UUID) -> Result:
        return Result.failure(
            ErrorKind.BAD_REQUEST,
            f"The {self.label}-id specified is not valid (id = '{entity_id}')",
        )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def get_by_id(self, entity_id: UUID) -> Result[D]:
        if entity_id == EMPTY_ID:
            return self._invalid_id(entity_id)
        entity = self._fetch(entity_id)
        if entity is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"No {self.label} with id = '{entity_id}' has been found")
        return Result.success(self._to_dto(entity))

    def get_all(self) -> Result[list[D]]:
        return Result.success([self._to_dto(e) for e in self._fetch_all()])

    def create(self, dto: D) -> Result[D]:
        if dto.id == EMPTY_ID:
            return self._invalid_id(dto.id)
        duplicate = Result.failure(ErrorKind.CONFLICT, f"A {self.label} already exists with id = '{dto.id}'")
        if self._fetch(dto.id) is not None:
            return duplicate
        try:
            self._insert(self._from_dto(dto, _now_iso()))
        except IntegrityError:
            # Lost the race against a concurrent create with the same id;
            # the primary key rejected the second insert.
            logger.warning("Concurrent create of %s %s rejected by primary key", self.label, dto.id)
            return duplicate
        logger.info("Created %s %s", self.label, dto.id)
        return self.get_by_id(dto.id)

    def update(self, entity_id: UUID, dto: D) -> Result[D]:
        if entity_id == EMPTY_ID:
            return self._invalid_id(entity_id)
        if entity_id != dto.id:
            return Result.failure(
                ErrorKind.BAD_REQUEST,
                f"The id specified does NOT match {self.label}-id (id = '{entity_id}', {self.label}-id = '{dto.id}')",
            )
        current = self._fetch(entity_id)
        if current is None or not self._save(self._merge(current, dto)):
            return Result.failure(ErrorKind.NOT_FOUND, f"No {self.label} found with id = '{entity_id}'")
        logger.info("Updated %s %s", self.label, entity_id)
        return self.get_by_id(entity_id)

    def delete(self, entity_id: UUID) -> Result[UUID]:
        if entity_id == EMPTY_ID:
            return self._invalid_id(entity_id)
        if self._fetch(entity_id) is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"This {self.label} does not exist")
        if self._has_dependents(entity_id):
            logger.info("Refused to delete %s %s: devices still assigned", self.label, entity_id)
            return Result.failure(
                ErrorKind.FORBIDDEN,
                f"You can not delete this {self.label} because it has devices assigned to it",
            )
        if not self._remove(entity_id):
            return Result.failure(ErrorKind.NOT_FOUND, f"This {self.label} does not exist")
        logger.info("Deleted %s %s", self.label, entity_id)
        return Result.success(entity_id)


# ---------------------------------------------------------------------------
# Concrete services
# ---------------------------------------------------------------------------


class CategoryService(ResourceService[Category, CategoryDto]):
    label = "category"

    def _fetch(self, entity_id: UUID) -> Optional[Category]:
        return self.store.get_category(entity_id)

    def _fetch_all(self) -> list[Category]:
        return self.store.list_categories()

    def _insert(self, entity: Category) -> None:
        self.store.create_category(entity)

    def _save(self, entity: Category) -> bool:
        return self.store.update_category(entity)

    def _remove(self, entity_id: UUID) -> bool:
        return self.store.delete_category(entity_id)

    def _to_dto(self, entity: Category) -> CategoryDto:
        return category_to_dto(entity)

    def _from_dto(self, dto: CategoryDto, date_created: str) -> Category:
        return category_from_dto(dto, date_created)

    def _merge(self, entity: Category, dto: CategoryDto) -> Category:
        return merge_category(entity, dto)

    def _has_dependents(self, entity_id: UUID) -> bool:
        return self.store.has_devices(category_id=entity_id)

    def count_zones(self, category_id: UUID) -> Result[int]:
        """Number of distinct zones holding at least one device of this category."""
        if category_id == EMPTY_ID:
            return Result.failure(ErrorKind.BAD_REQUEST, "Please specify a valid category-id")
        return Result.success(self.store.count_zones_for_category(category_id))


class ZoneService(ResourceService[Zone, ZoneDto]):
    label = "zone"

    def _fetch(self, entity_id: UUID) -> Optional[Zone]:
        return self.store.get_zone(entity_id)

    def _fetch_all(self) -> list[Zone]:
        return self.store.list_zones()

    def _insert(self, entity: Zone) -> None:
        self.store.create_zone(entity)

    def _save(self, entity: Zone) -> bool:
        return self.store.update_zone(entity)

    def _remove(self, entity_id: UUID) -> bool:
        return self.store.delete_zone(entity_id)

    def _to_dto(self, entity: Zone) -> ZoneDto:
        return zone_to_dto(entity)

    def _from_dto(self, dto: ZoneDto, date_created: str) -> Zone:
        return zone_from_dto(dto, date_created)

    def _merge(self, entity: Zone, dto: ZoneDto) -> Zone:
        return merge_zone(entity, dto)

    def _has_dependents(self, entity_id: UUID) -> bool:
        return self.store.has_devices(zone_id=entity_id)


class DeviceService(ResourceService[Device, DeviceDto]):
    """Devices are leaves: nothing references them, so deletes are never blocked."""

    label = "device"

    def _fetch(self, entity_id: UUID) -> Optional[Device]:
        return self.store.get_device(entity_id)

    def _fetch_all(self) -> list[Device]:
        return self.store.list_devices()

    def _insert(self, entity: Device) -> None:
        self.store.create_device(entity)

    def _save(self, entity: Device) -> bool:
        return self.store.update_device(entity)

    def _remove(self, entity_id: UUID) -> bool:
        return self.store.delete_device(entity_id)

    def _to_dto(self, entity: Device) -> DeviceDto:
        return device_to_dto(entity)

    def _from_dto(self, dto: DeviceDto, date_created: str) -> Device:
        return device_from_dto(dto, date_created)

    def _merge(self, entity: Device, dto: DeviceDto) -> Device:
        return merge_device(entity, dto)

    def get_all_by_zone(self, zone_id: UUID) -> Result[list[DeviceDto]]:
        return self._filtered(zone_id, "zone", self.store.list_devices_by_zone)

    def get_all_by_category(self, category_id: UUID) -> Result[list[DeviceDto]]:
        return self._filtered(category_id, "category", self.store.list_devices_by_category)

    def _filtered(
        self, ref_id: UUID, ref_label: str, query: Callable[[UUID], list[Device]]
    ) -> Result[list[DeviceDto]]:
        if ref_id == EMPTY_ID:
            return Result.failure(ErrorKind.BAD_REQUEST, f"Please specify a valid {ref_label}-id")
        return Result.success([device_to_dto(d) for d in query(ref_id)])
