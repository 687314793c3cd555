"""Abstract user directory with the lookup and upsert policy built on top."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Literal

from paywall.directory.fields import Eq, Predicate, Sort, UserField
from paywall.directory.models import UserRecord, normalize_email

logger = logging.getLogger(__name__)

UpsertAction = Literal["created", "updated"]


def _age_key(record: UserRecord) -> tuple[datetime, str]:
    created = record.created_at or datetime.max.replace(tzinfo=timezone.utc)
    return created, record.id


class UserDirectory(ABC):
    """Storage-agnostic access to user records.

    Implementations provide the five primitive operations; lookups by email or
    customer id and the find-or-create policy live here.
    """

    @abstractmethod
    async def find_one(self, where: Predicate) -> UserRecord | None:
        """Return the first record matching ``where``, if any."""

    @abstractmethod
    async def list_records(
        self,
        where: Predicate | None = None,
        sort: Sequence[Sort] = (),
        max_records: int | None = None,
    ) -> list[UserRecord]:
        """Return every matching record, following store pagination."""

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> UserRecord: ...

    @abstractmethod
    async def update(self, record_id: str, fields: Mapping[str, Any]) -> UserRecord: ...

    @abstractmethod
    async def delete(self, record_id: str) -> None: ...

    async def aclose(self) -> None:
        return None

    async def find_by_email(self, email: str) -> UserRecord | None:
        return await self.find_one(Eq(UserField.EMAIL, normalize_email(email), ignore_case=True))

    async def find_by_customer_id(self, customer_id: str) -> UserRecord | None:
        return await self.find_one(Eq(UserField.STRIPE_CUSTOMER_ID, customer_id))

    async def upsert_by_email(
        self,
        email: str,
        *,
        create_fields: Mapping[str, Any],
        update_fields: Mapping[str, Any],
    ) -> tuple[UpsertAction, UserRecord]:
        """Update the record for ``email`` or create it.

        The store has no uniqueness constraint, so creation is optimistic: after
        creating, all records for the email are re-read.  If a concurrent writer
        created one too, the oldest record wins, ours is removed and the update
        is applied to the winner instead.
        """
        existing = await self.find_by_email(email)
        if existing is not None:
            return "updated", await self.update(existing.id, update_fields)

        created = await self.create(create_fields)
        matches = await self.list_records(
            Eq(UserField.EMAIL, normalize_email(email), ignore_case=True)
        )
        if len(matches) <= 1:
            return "created", created

        winner = min(matches, key=_age_key)
        if winner.id == created.id:
            return "created", created

        logger.warning(
            "Concurrent create for %s detected; keeping record %s, removing %s",
            normalize_email(email),
            winner.id,
            created.id,
        )
        await self.delete(created.id)
        return "updated", await self.update(winner.id, update_fields)
