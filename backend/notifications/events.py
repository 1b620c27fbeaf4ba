"""Domain events raised by the scheduler and delivered after commit."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AppointmentConfirmed:
    appointment_id: int
    patient_user_id: int


class EventQueue:
    """Collects events during a request; the HTTP layer drains it once the write has committed."""

    def __init__(self) -> None:
        self._events: list = []

    def publish(self, event) -> None:
        self._events.append(event)

    def drain(self) -> list:
        events, self._events = self._events, []
        return events

    def __len__(self) -> int:
        return len(self._events)
