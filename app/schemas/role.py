from __future__ import annotations

"""
Role schemas
============

Input models carry the field rules; the role service validates request
bodies against them after the policy check and reports failures in the 422
envelope. Uniqueness needs the database and is checked in the service.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.utils.text import is_valid_name

INVALID_ROLE_NAME = "The role name contains invalid characters."


def _check_name(value: str) -> str:
    if not is_valid_name(value):
        raise ValueError(INVALID_ROLE_NAME)
    return value


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def _empty_description(cls, v):
        return _blank_to_none(v)


class RoleUpdate(BaseModel):
    """Partial update: a field is validated only when it is sent."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def _empty_description(cls, v):
        return _blank_to_none(v)


class RoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
