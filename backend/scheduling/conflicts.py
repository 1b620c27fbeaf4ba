"""Conflict detection for proposed appointment times.

A proposed time conflicts with any active appointment of the same patient or
the same dentist whose time lies within the conflict window, boundaries
included. The query is assembled from the small predicates below so each
rule can be exercised on its own.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from backend.core import config
from backend.models.appointment import Appointment, AppointmentStatus


@dataclass(frozen=True)
class ConflictWindow:
    start: datetime
    end: datetime

    @classmethod
    def around(cls, moment: datetime, minutes: int | None = None) -> 'ConflictWindow':
        span = timedelta(minutes=config.CONFLICT_WINDOW_MINUTES if minutes is None else minutes)
        return cls(start=moment - span, end=moment + span)


@dataclass(frozen=True)
class ConflictResult:
    conflict: bool
    conflicting_appointment: Appointment | None = None

    def details(self) -> dict | None:
        appointment = self.conflicting_appointment
        if appointment is None:
            return None
        return {
            'existingAppointmentId': appointment.id,
            'existingAppointmentDate': appointment.appointment_date.isoformat(),
            'existingPatientId': appointment.patient_user_id,
            'existingDentistId': appointment.dentist_user_id,
            'message': f'Appointments must be more than {config.CONFLICT_WINDOW_MINUTES} minutes apart',
        }


def in_window(window: ConflictWindow) -> ColumnElement:
    return Appointment.appointment_date.between(window.start, window.end)


def is_active() -> ColumnElement:
    return Appointment.status != AppointmentStatus.CANCELLED.value


def for_party(patient_id: int, dentist_id: int) -> ColumnElement:
    return or_(
        Appointment.dentist_user_id == dentist_id,
        Appointment.patient_user_id == patient_id,
    )


def excluding(appointment_id: int) -> ColumnElement:
    return Appointment.id != appointment_id


def conflict_predicate(
    window: ConflictWindow,
    patient_id: int,
    dentist_id: int,
    exclude_appointment_id: int | None = None,
) -> ColumnElement:
    clauses = [is_active(), for_party(patient_id, dentist_id), in_window(window)]
    if exclude_appointment_id is not None:
        clauses.append(excluding(exclude_appointment_id))
    return and_(*clauses)


def check_conflict(
    db: Session,
    proposed_time: datetime,
    patient_id: int,
    dentist_id: int,
    exclude_appointment_id: int | None = None,
) -> ConflictResult:
    """Return the earliest active appointment that clashes with ``proposed_time``, if any."""
    window = ConflictWindow.around(proposed_time)
    existing = (
        db.query(Appointment)
        .filter(conflict_predicate(window, patient_id, dentist_id, exclude_appointment_id))
        .order_by(Appointment.appointment_date.asc(), Appointment.id.asc())
        .first()
    )
    return ConflictResult(conflict=existing is not None, conflicting_appointment=existing)
