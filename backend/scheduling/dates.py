from datetime import date, datetime, time

from backend.core.errors import InvalidDateError, PastDateError

END_OF_DAY = time(23, 59, 59, 999000)


def parse_appointment_date(value: str | datetime | date) -> datetime:
    """Parse an ISO-8601 instant into the naive wall-clock time the store keeps.

    Offset-aware values are converted to the server's local time; naive values
    are taken as already being local.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        try:
            moment = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidDateError('Invalid date format') from exc
    else:
        raise InvalidDateError('Invalid date format')

    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def parse_day(value: str | datetime | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    return parse_appointment_date(value).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    return datetime.combine(day, time.min), datetime.combine(day, END_OF_DAY)


def ensure_future(moment: datetime, now: datetime | None = None) -> None:
    if moment <= (now or datetime.now()):
        raise PastDateError('Appointment date must be in the future')
