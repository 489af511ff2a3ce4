"""UserLookup protocol — services depend on this, not the concrete repository."""

from typing import Optional, Protocol

from schemas.models.user import UserDoc


class UserLookup(Protocol):
    async def find_by_email(self, email: str) -> Optional[UserDoc]: ...
