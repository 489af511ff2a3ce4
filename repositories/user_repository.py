"""MongoDB implementation of UserLookup.

Reads the `users` collection through the async pymongo client. Errors are
logged and re-raised: a failed lookup must not be mistaken for an unknown
account.
"""

from __future__ import annotations

from typing import Optional

from pymongo.asynchronous.database import AsyncDatabase

from schemas.models.user import UserDoc
from shared.logging import get_logger, hash_email

log = get_logger(__name__)


class UserRepository:
    def __init__(self, db: AsyncDatabase, collection: str = "users") -> None:
        self._collection = db[collection]

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        try:
            doc = await self._collection.find_one({"email": email.strip().lower()})
        except Exception as e:
            log.error(
                "user_lookup_failed",
                email=hash_email(email),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        return UserDoc.from_mongo(doc)
