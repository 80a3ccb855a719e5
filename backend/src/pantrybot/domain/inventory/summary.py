"""Compact inventory summary used as LLM context."""

import math
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from typing import Any

EXPIRING_WITHIN_DAYS = 3
SECONDS_PER_DAY = 24 * 60 * 60


def _field(item: Any, *names: str) -> Any:
    for name in names:
        value = item.get(name) if isinstance(item, Mapping) else getattr(item, name, None)
        if value is not None:
            return value
    return None


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    # Stored dates without an offset are UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def build_inventory_summary(
    items: Iterable[Any] | None,
    now: datetime | None = None,
) -> str:
    """Summarize items as counts per location plus what expires soon.

    Items are mappings or objects exposing ``name``, ``location`` and
    ``expiration_date`` (or ``expirationDate``). Already expired items count
    as expiring.
    """
    items = list(items or [])
    if not items:
        return "Inventory is empty."

    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    by_location: dict[str, int] = {}
    expiring: list[str] = []
    for item in items:
        location = _field(item, "location") or "other"
        by_location[location] = by_location.get(location, 0) + 1

        expires_at = _as_datetime(_field(item, "expiration_date", "expirationDate"))
        if expires_at is None:
            continue
        days_until = math.ceil((expires_at - now).total_seconds() / SECONDS_PER_DAY)
        if days_until <= EXPIRING_WITHIN_DAYS:
            expiring.append(str(_field(item, "name")))

    summary = f"Total items: {len(items)}\n"
    summary += "By location: " + ", ".join(
        f"{location}({count})" for location, count in by_location.items()
    )
    if expiring:
        summary += f"\n\nExpiring within {EXPIRING_WITHIN_DAYS} days: {', '.join(expiring)}"
    return summary
