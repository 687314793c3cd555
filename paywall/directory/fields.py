"""Column names and typed filter predicates for the user table.

Predicates compile to Airtable formulas with every literal escaped, so user
supplied values never end up spliced into formula text.  They can also be
evaluated against a raw ``fields`` mapping, which keeps alternative directory
backends honest about the same semantics.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


class UserField(StrEnum):
    """Column names of the Users table."""

    EMAIL = "Email"
    PLAN = "Plan"
    STATUS = "Status"
    STRIPE_CUSTOMER_ID = "StripeCustomerId"
    SUBSCRIPTION_ID = "SubscriptionId"
    CURRENT_PERIOD_END = "CurrentPeriodEnd"
    CREATED_AT = "CreatedAt"
    UPDATED_AT = "UpdatedAt"


def quote(value: str) -> str:
    """Return ``value`` as a double-quoted Airtable formula string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def field_ref(field: str) -> str:
    return "{" + str(field).replace("}", "\\}") + "}"


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, the format Airtable returns."""
    return to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return to_utc(value)
    if not value:
        return None
    try:
        return to_utc(datetime.fromisoformat(str(value)))
    except ValueError:
        return None


class Predicate:
    """Base class for filter predicates."""

    def to_formula(self) -> str:
        raise NotImplementedError

    def matches(self, fields: Mapping[str, Any]) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Eq(Predicate):
    """``field == value``; ``ignore_case`` lowercases both sides."""

    field: str
    value: str
    ignore_case: bool = False

    def to_formula(self) -> str:
        if self.ignore_case:
            return f"LOWER({field_ref(self.field)}) = {quote(self.value.lower())}"
        return f"{field_ref(self.field)} = {quote(self.value)}"

    def matches(self, fields: Mapping[str, Any]) -> bool:
        actual = fields.get(self.field)
        if actual is None:
            return False
        if self.ignore_case:
            return str(actual).lower() == self.value.lower()
        return str(actual) == self.value


@dataclass(frozen=True)
class OnOrAfter(Predicate):
    """Timestamp column is at or after ``when``."""

    field: str
    when: datetime

    def to_formula(self) -> str:
        return (
            f"NOT(IS_BEFORE({field_ref(self.field)}, "
            f"DATETIME_PARSE({quote(format_timestamp(self.when))})))"
        )

    def matches(self, fields: Mapping[str, Any]) -> bool:
        actual = _parse_timestamp(fields.get(self.field))
        return actual is not None and actual >= to_utc(self.when)


@dataclass(frozen=True)
class Before(Predicate):
    """Timestamp column is strictly before ``when``."""

    field: str
    when: datetime

    def to_formula(self) -> str:
        return (
            f"IS_BEFORE({field_ref(self.field)}, "
            f"DATETIME_PARSE({quote(format_timestamp(self.when))}))"
        )

    def matches(self, fields: Mapping[str, Any]) -> bool:
        actual = _parse_timestamp(fields.get(self.field))
        return actual is not None and actual < to_utc(self.when)


@dataclass(frozen=True)
class And(Predicate):
    clauses: tuple[Predicate, ...]

    def to_formula(self) -> str:
        if len(self.clauses) == 1:
            return self.clauses[0].to_formula()
        return "AND(" + ", ".join(c.to_formula() for c in self.clauses) + ")"

    def matches(self, fields: Mapping[str, Any]) -> bool:
        return all(c.matches(fields) for c in self.clauses)


def all_of(*clauses: Predicate | None) -> Predicate | None:
    """Combine the non-empty clauses, or return None when there are none."""
    present = tuple(c for c in clauses if c is not None)
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return And(present)


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = False
