from datetime import datetime, timezone


def _parse(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_registration_open(event: dict, now: datetime | None = None) -> bool:
    """An event takes registrations while active and before its registration deadline, if any."""
    if not event.get("is_active"):
        return False
    deadline = event.get("registration_deadline")
    if not deadline:
        return True
    now = now or datetime.now(timezone.utc)
    return _parse(deadline) > now
