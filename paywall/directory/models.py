"""User record as stored in the directory."""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from paywall.directory.fields import UserField, _parse_timestamp, format_timestamp, to_utc
from paywall.errors import DirectoryError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str | None) -> str:
    """Trim and lowercase an email; the directory key is case-insensitive."""
    return (email or "").strip().lower()


class UserRecord(BaseModel):
    """One row of the Users table.

    Columns that are not part of the known schema (``customFields`` written by
    the admin API) are kept as pydantic extras.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    email: str = Field("", alias=UserField.EMAIL.value)
    plan: str | None = Field(None, alias=UserField.PLAN.value)
    status: str | None = Field(None, alias=UserField.STATUS.value)
    stripe_customer_id: str | None = Field(None, alias=UserField.STRIPE_CUSTOMER_ID.value)
    subscription_id: str | None = Field(None, alias=UserField.SUBSCRIPTION_ID.value)
    current_period_end: datetime | None = Field(None, alias=UserField.CURRENT_PERIOD_END.value)
    created_at: datetime | None = Field(None, alias=UserField.CREATED_AT.value)
    updated_at: datetime | None = Field(None, alias=UserField.UPDATED_AT.value)

    @field_validator("current_period_end", "created_at", "updated_at", mode="before")
    @classmethod
    def _drop_unparseable(cls, value: Any) -> Any:
        # Hand-edited cells can hold free text; treat those as unset.
        if value is None or value == "" or isinstance(value, datetime):
            return value or None
        parsed = _parse_timestamp(value)
        if parsed is None:
            logger.warning("Ignoring unparseable directory timestamp %r", value)
        return parsed

    @field_validator("current_period_end", "created_at", "updated_at", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None

    @classmethod
    def from_airtable(cls, record: Mapping[str, Any]) -> "UserRecord":
        """Build from an Airtable record ``{"id": ..., "fields": {...}}``.

        Rows that still do not fit the schema raise ``DirectoryError``.
        """
        try:
            return cls.model_validate({**record.get("fields", {}), "id": record["id"]})
        except ValidationError as e:
            logger.error(
                "Directory record %s does not match the user schema: %s",
                record.get("id"),
                e.errors(include_url=False),
            )
            raise DirectoryError("User directory returned a malformed record") from e

    @property
    def custom_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def has_access(self, now: datetime) -> bool:
        """Active status with a period end still in the future."""
        return (
            self.status == "active"
            and self.current_period_end is not None
            and self.current_period_end > to_utc(now)
        )


def encode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Serialize a column mapping for the store (datetimes become ISO strings)."""
    encoded: dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, datetime):
            value = format_timestamp(value)
        encoded[str(name)] = value
    return encoded
