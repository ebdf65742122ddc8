from datetime import datetime, timezone
from dateutil import parser


def utcnow():
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value):
    """Parse a client supplied date. Raises ValueError on anything unparseable."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Date is not valid")
    try:
        parsed = parser.isoparse(value)
    except ValueError:
        try:
            parsed = parser.parse(value)
        except (ValueError, OverflowError) as exc:
            raise ValueError("Date is not valid") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
