"""User directory: the external table that mirrors subscription state.

Import the pieces from here so routers and services do not depend on which
backend is in use.
"""

from paywall.directory.airtable import AirtableDirectory
from paywall.directory.base import UserDirectory
from paywall.directory.fields import And, Before, Eq, OnOrAfter, Sort, UserField, all_of
from paywall.directory.models import UserRecord, encode_fields, normalize_email, utc_now

__all__ = [
    "AirtableDirectory",
    "And",
    "Before",
    "Eq",
    "OnOrAfter",
    "Sort",
    "UserDirectory",
    "UserField",
    "UserRecord",
    "all_of",
    "encode_fields",
    "normalize_email",
    "utc_now",
]
