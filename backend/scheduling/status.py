"""Appointment status state machine."""

from backend.core.errors import InvalidStatusError, InvalidStatusTransitionError
from backend.models.appointment import AppointmentStatus

# Single-letter codes sent by older clients.
LEGACY_STATUS_CODES = {
    'P': AppointmentStatus.PENDING.value,
    'C': AppointmentStatus.CONFIRMED.value,
    'X': AppointmentStatus.CANCELLED.value,
}

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


def parse_status(value: str | AppointmentStatus) -> AppointmentStatus:
    if isinstance(value, AppointmentStatus):
        return value
    normalized = str(value).strip()
    try:
        return AppointmentStatus(LEGACY_STATUS_CODES.get(normalized, normalized.lower()))
    except ValueError as exc:
        raise InvalidStatusError(
            'Invalid status',
            details={'validStatuses': [status.value for status in AppointmentStatus]},
        ) from exc


def is_terminal(status: AppointmentStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def validate_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    if not can_transition(current, target):
        if is_terminal(current):
            message = f'Cannot change the status of a {current.value} appointment'
        else:
            message = f'Cannot change appointment status from {current.value} to {target.value}'
        raise InvalidStatusTransitionError(
            message,
            details={
                'currentStatus': current.value,
                'allowedStatuses': sorted(status.value for status in ALLOWED_TRANSITIONS[current]),
            },
        )
