"""
office/models.py -- Domain dataclasses for the office inventory.

These are the persisted row shapes: pure data containers with zero logic.
Business rules live in office/services.py; SQL lives in office/store.py.

All three resources use caller-supplied GUID keys. date_created is an ISO 8601
UTC string stamped by the store on insert and never touched by an update.

category_id / zone_id on Device are soft references. Nothing in the store
enforces that the referenced rows exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class Category:
    id: UUID
    name: str
    description: Optional[str] = None
    date_created: str = ""


@dataclass(frozen=True)
class Zone:
    id: UUID
    name: str
    description: Optional[str] = None
    date_created: str = ""


@dataclass(frozen=True)
class Device:
    """A tracked office device, placed in one zone and classified by one category."""

    id: UUID
    name: str
    category_id: UUID
    zone_id: UUID
    status: Optional[str] = None  # free text, e.g. "online", "offline", "maintenance"
    is_active: bool = True
    date_created: str = ""
