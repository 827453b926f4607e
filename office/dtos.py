"""
office/dtos.py -- Transport objects for the Category, Zone and Device resources.

These Pydantic v2 models are what the resource services accept and return and
what the HTTP layer serializes. They are intentionally separate from the
dataclasses in office/models.py, which own the persisted shape; the mapping
between the two lives in office/converters.py.

Every DTO carries the same two record fields, id and date_created, declared
on each model rather than inherited. Code that only needs those two fields
types against the Identified protocol.

date_created is ignored on input: the store stamps it on insert.
"""

from __future__ import annotations

from typing import Optional, Protocol
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Identified(Protocol):
    """Anything with a GUID id and a creation timestamp."""

    id: UUID
    date_created: Optional[str]


class CategoryDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID
    name: str = Field(default="", max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    date_created: Optional[str] = None


class ZoneDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID
    name: str = Field(default="", max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    date_created: Optional[str] = None


class DeviceDto(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID
    name: str = Field(default="", max_length=255)
    category_id: UUID
    zone_id: UUID
    status: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True
    date_created: Optional[str] = None
