"""Customer data sanitization for log output.

Provides :func:`sanitize_for_logs` which redacts personal data
(phone numbers, delivery addresses, delivery notes, coordinates) from
data structures before they are written to the audit log.  Ids,
statuses and amounts are preserved.
"""

from __future__ import annotations

from typing import Any

# Keys whose values identify or locate a customer
PII_FIELDS = frozenset(
    {
        "phone",
        "delivery_address",
        "delivery_notes",
        "coordinates",
        "delivery_latitude",
        "delivery_longitude",
    }
)


def mask_phone(phone: str) -> str:
    """Keep only the last two digits of *phone*."""
    digits = [c for c in phone if c.isdigit()]
    if len(digits) <= 2:
        return "[REDACTED]"
    return "*" * (len(digits) - 2) + "".join(digits[-2:])


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively sanitize personal data in *data*.

    Handles dicts (known PII keys are redacted, phone numbers masked)
    and lists/tuples.  Other values pass through unchanged.
    """
    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if value is None or key not in PII_FIELDS:
                result[key] = sanitize_for_logs(value)
            elif key == "phone" and isinstance(value, str):
                result[key] = mask_phone(value)
            else:
                result[key] = "[REDACTED]"
        return result

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    return data
