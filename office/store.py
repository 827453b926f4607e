"""
office/store.py -- SQLAlchemy-backed persistence layer for the office inventory.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in office/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL or SQL Server is a connection string change.

Pattern: Repository + Data Mapper. OfficeStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers. Services never
touch SQL directly.

One table per entity, GUID primary keys stored as canonical 36-char strings.
There are no foreign keys: device.category_id / device.zone_id are soft
references and dependency checks are made by the service layer through
has_devices().

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = OfficeStore()                               # SQLite default
    store = OfficeStore("postgresql://user:pw@host/db") # PostgreSQL
    store.create_category(Category(id=uuid4(), name="HVAC"))
    categories = store.list_categories()
    store.close()
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Column, MetaData, String, Table, Text, distinct, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.config import get_settings
from core.db import create_store_engine, with_retries
from office.models import Category, Device, Zone

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_categories = Table(
    "category",
    metadata,
    Column("category_id", String(36), primary_key=True),
    Column("category_name", String(255), nullable=False),
    Column("category_description", Text),
    Column("date_created", String(32), nullable=False),
)

_zones = Table(
    "zone",
    metadata,
    Column("zone_id", String(36), primary_key=True),
    Column("zone_name", String(255), nullable=False),
    Column("zone_description", Text),
    Column("date_created", String(32), nullable=False),
)

_devices = Table(
    "device",
    metadata,
    Column("device_id", String(36), primary_key=True),
    Column("device_name", String(255), nullable=False),
    Column("category_id", String(36), nullable=False, index=True),
    Column("zone_id", String(36), nullable=False, index=True),
    Column("status", String(50)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("date_created", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _key(value: UUID) -> str:
    return str(value)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OfficeStore:
    def __init__(self, db_url: str = "") -> None:
        self.engine: Engine = create_store_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @with_retries
    def create_category(self, category: Category) -> None:
        """Insert a category under its caller-supplied id.

        Raises sqlalchemy.exc.IntegrityError if the id already exists.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _categories.insert().values(
                    category_id=_key(category.id),
                    category_name=category.name,
                    category_description=category.description,
                    date_created=category.date_created or _now_iso(),
                )
            )
            conn.commit()

    @with_retries
    def get_category(self, category_id: UUID) -> Optional[Category]:
        """Fetch a single category by id. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_categories.select().where(_categories.c.category_id == _key(category_id))).fetchone()
        return _row_to_category(row) if row is not None else None

    @with_retries
    def list_categories(self) -> list[Category]:
        """Return all categories ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(_categories.select().order_by(_categories.c.category_name)).fetchall()
        return [_row_to_category(r) for r in rows]

    @with_retries
    def update_category(self, category: Category) -> bool:
        """Overwrite the mutable fields of a category. Returns False if the id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _categories.update()
                .where(_categories.c.category_id == _key(category.id))
                .values(category_name=category.name, category_description=category.description)
            )
            conn.commit()
        return result.rowcount > 0

    @with_retries
    def delete_category(self, category_id: UUID) -> bool:
        """Permanently delete a category. Returns True if a row was removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_categories.delete().where(_categories.c.category_id == _key(category_id)))
            conn.commit()
        return result.rowcount > 0

    @with_retries
    def count_zones_for_category(self, category_id: UUID) -> int:
        """Return how many distinct zones hold at least one device of this category.

        Zones are joined in so device rows pointing at a zone that no longer
        exists are not counted.
        """
        stmt = (
            select(func.count(distinct(_zones.c.zone_id)))
            .select_from(_zones.join(_devices, _zones.c.zone_id == _devices.c.zone_id))
            .where(_devices.c.category_id == _key(category_id))
        )
        with self.engine.connect() as conn:
            result = conn.execute(stmt).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    @with_retries
    def create_zone(self, zone: Zone) -> None:
        """Insert a zone under its caller-supplied id.

        Raises sqlalchemy.exc.IntegrityError if the id already exists.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _zones.insert().values(
                    zone_id=_key(zone.id),
                    zone_name=zone.name,
                    zone_description=zone.description,
                    date_created=zone.date_created or _now_iso(),
                )
            )
            conn.commit()

    @with_retries
    def get_zone(self, zone_id: UUID) -> Optional[Zone]:
        with self.engine.connect() as conn:
            row = conn.execute(_zones.select().where(_zones.c.zone_id == _key(zone_id))).fetchone()
        return _row_to_zone(row) if row is not None else None

    @with_retries
    def list_zones(self) -> list[Zone]:
        with self.engine.connect() as conn:
            rows = conn.execute(_zones.select().order_by(_zones.c.zone_name)).fetchall()
        return [_row_to_zone(r) for r in rows]

    @with_retries
    def update_zone(self, zone: Zone) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _zones.update()
                .where(_zones.c.zone_id == _key(zone.id))
                .values(zone_name=zone.name, zone_description=zone.description)
            )
            conn.commit()
        return result.rowcount > 0

    @with_retries
    def delete_zone(self, zone_id: UUID) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_zones.delete().where(_zones.c.zone_id == _key(zone_id)))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    @with_retries
    def create_device(self, device: Device) -> None:
        """Insert a device under its caller-supplied id.

        category_id and zone_id are written as given; they are not checked
        against the category and zone tables.
        Raises sqlalchemy.exc.IntegrityError if the id already exists.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _devices.insert().values(
                    device_id=_key(device.id),
                    device_name=device.name,
                    category_id=_key(device.category_id),
                    zone_id=_key(device.zone_id),
                    status=device.status,
                    is_active=device.is_active,
                    date_created=device.date_created or _now_iso(),
                )
            )
            conn.commit()

    @with_retries
    def get_device(self, device_id: UUID) -> Optional[Device]:
        with self.engine.connect() as conn:
            row = conn.execute(_devices.select().where(_devices.c.device_id == _key(device_id))).fetchone()
        return _row_to_device(row) if row is not None else None

    @with_retries
    def list_devices(self) -> list[Device]:
        with self.engine.connect() as conn:
            rows = conn.execute(_devices.select().order_by(_devices.c.device_name)).fetchall()
        return [_row_to_device(r) for r in rows]

    @with_retries
    def list_devices_by_zone(self, zone_id: UUID) -> list[Device]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _devices.select().where(_devices.c.zone_id == _key(zone_id)).order_by(_devices.c.device_name)
            ).fetchall()
        return [_row_to_device(r) for r in rows]

    @with_retries
    def list_devices_by_category(self, category_id: UUID) -> list[Device]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _devices.select().where(_devices.c.category_id == _key(category_id)).order_by(_devices.c.device_name)
            ).fetchall()
        return [_row_to_device(r) for r in rows]

    @with_retries
    def update_device(self, device: Device) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _devices.update()
                .where(_devices.c.device_id == _key(device.id))
                .values(
                    device_name=device.name,
                    category_id=_key(device.category_id),
                    zone_id=_key(device.zone_id),
                    status=device.status,
                    is_active=device.is_active,
                )
            )
            conn.commit()
        return result.rowcount > 0

    @with_retries
    def delete_device(self, device_id: UUID) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_devices.delete().where(_devices.c.device_id == _key(device_id)))
            conn.commit()
        return result.rowcount > 0

    @with_retries
    def has_devices(self, category_id: Optional[UUID] = None, zone_id: Optional[UUID] = None) -> bool:
        """Return True if at least one device references the given category and/or zone.

        At least one of category_id / zone_id must be given.
        """
        if category_id is None and zone_id is None:
            raise ValueError("has_devices() needs a category_id or a zone_id")
        stmt = select(_devices.c.device_id).limit(1)
        if category_id is not None:
            stmt = stmt.where(_devices.c.category_id == _key(category_id))
        if zone_id is not None:
            stmt = stmt.where(_devices.c.zone_id == _key(zone_id))
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_category(row) -> Category:
    return Category(
        id=UUID(row.category_id),
        name=row.category_name,
        description=row.category_description,
        date_created=row.date_created,
    )


def _row_to_zone(row) -> Zone:
    return Zone(
        id=UUID(row.zone_id),
        name=row.zone_name,
        description=row.zone_description,
        date_created=row.date_created,
    )


def _row_to_device(row) -> Device:
    return Device(
        id=UUID(row.device_id),
        name=row.device_name,
        category_id=UUID(row.category_id),
        zone_id=UUID(row.zone_id),
        status=row.status,
        is_active=bool(row.is_active),
        date_created=row.date_created,
    )
