"""
User document model.

Maps to the `users` MongoDB collection, which this service only reads.
Accounts are created and maintained elsewhere; the legacy login needs the
email, the password hash and the active flag.

Older documents use camelCase keys (`isActive`, `firstName`); aliases
accept both spellings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from schemas.models.base import MongoBaseModel


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    email: str
    password_hash: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("password_hash", "password")
    )
    is_active: bool = Field(
        default=True, validation_alias=AliasChoices("is_active", "isActive")
    )
    first_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("first_name", "firstName")
    )
    last_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("last_name", "lastName")
    )
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    last_login_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("last_login_at", "lastLogin")
    )
