"""Row conversion helpers shared by Supabase adapters."""

from datetime import UTC, datetime


def parse_datetime(value: object) -> datetime:
    """Parse an ISO timestamp, treating naive values as UTC."""
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_optional_datetime(value: object) -> datetime | None:
    """Parse an ISO timestamp if present."""
    return parse_datetime(value) if value else None


def iso(value: datetime | None) -> str | None:
    """Format a timestamp for a Supabase column."""
    return value.isoformat() if value else None
