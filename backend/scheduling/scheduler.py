"""Appointment scheduler.

Creation runs an ordered validation pipeline (required fields, date format,
future date, party and service existence, conflict check) and commits the new
appointment in the same transaction that performed the checks. Updates are
partial and re-run the date checks only when a new date is supplied.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from backend.core.errors import (
    ClinicError,
    InternalError,
    MissingFieldsError,
    NotFoundError,
    SchedulingConflictError,
)
from backend.models.appointment import Appointment, AppointmentStatus
from backend.models.service import Service
from backend.models.user import User
from backend.notifications.events import AppointmentConfirmed, EventQueue
from backend.scheduling.conflicts import check_conflict
from backend.scheduling.dates import ensure_future, parse_appointment_date
from backend.scheduling.status import parse_status, validate_transition

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = 'Appointment conflict: Time slot already booked or too close to another appointment'


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _lock_parties(db: Session, patient_id: int, dentist_id: int) -> dict[int, User]:
    # Row locks in id order serialise concurrent bookings for the same party.
    users = (
        db.query(User)
        .filter(User.id.in_({patient_id, dentist_id}))
        .order_by(User.id.asc())
        .with_for_update()
        .all()
    )
    return {user.id: user for user in users}


def _ensure_no_conflict(
    db: Session,
    when: datetime,
    patient_id: int,
    dentist_id: int,
    exclude_appointment_id: int | None = None,
) -> None:
    result = check_conflict(db, when, patient_id, dentist_id, exclude_appointment_id)
    if result.conflict:
        logger.info(
            'Rejected %s for patient %s / dentist %s: clashes with appointment %s',
            when.isoformat(),
            patient_id,
            dentist_id,
            result.conflicting_appointment.id,
        )
        raise SchedulingConflictError(CONFLICT_MESSAGE, details=result.details())


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = (
        db.query(Appointment)
        .options(
            joinedload(Appointment.patient),
            joinedload(Appointment.dentist),
            joinedload(Appointment.service),
        )
        .filter(Appointment.id == appointment_id)
        .first()
    )
    if appointment is None:
        raise NotFoundError('Appointment not found')
    return appointment


def create_appointment(
    db: Session,
    *,
    date,
    patient_id: int | None,
    dentist_id: int | None,
    service_id: int | None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    required = {
        'appointmentDate': date,
        'patientUserId': patient_id,
        'dentistUserId': dentist_id,
        'serviceId': service_id,
    }
    missing = [name for name, value in required.items() if _is_missing(value)]
    if missing:
        raise MissingFieldsError(
            'Appointment date, patient ID, dentist ID, and service ID are required',
            details={'missing': missing},
        )

    when = parse_appointment_date(date)
    ensure_future(when, now)

    try:
        parties = _lock_parties(db, patient_id, dentist_id)
        service = db.get(Service, service_id)
        if patient_id not in parties or dentist_id not in parties or service is None:
            raise NotFoundError(
                'Patient, dentist, or service not found',
                details={
                    'patientFound': patient_id in parties,
                    'dentistFound': dentist_id in parties,
                    'serviceFound': service is not None,
                },
            )

        _ensure_no_conflict(db, when, patient_id, dentist_id)

        appointment = Appointment(
            appointment_date=when,
            patient_user_id=patient_id,
            dentist_user_id=dentist_id,
            service_id=service_id,
            notes=notes,
            status=AppointmentStatus.PENDING.value,
        )
        db.add(appointment)
        db.commit()
    except ClinicError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error creating appointment')
        raise InternalError('Error creating appointment') from exc

    logger.info('Created appointment %s at %s', appointment.id, when.isoformat())
    return get_appointment(db, appointment.id)


def update_appointment(
    db: Session,
    appointment_id: int,
    *,
    date=None,
    status: str | AppointmentStatus | None = None,
    service_id: int | None = None,
    notes: str | None = None,
    events: EventQueue | None = None,
    now: datetime | None = None,
) -> Appointment:
    """Apply the supplied fields; ``None`` leaves a field unchanged.

    A move into ``confirmed`` publishes ``AppointmentConfirmed`` on ``events``
    once the change is committed.
    """
    appointment = get_appointment(db, appointment_id)
    previous_status = parse_status(appointment.status)

    new_date = None
    if not _is_missing(date):
        new_date = parse_appointment_date(date)
        ensure_future(new_date, now)

    new_status = None
    if not _is_missing(status):
        new_status = parse_status(status)
        validate_transition(previous_status, new_status)

    try:
        if service_id is not None and db.get(Service, service_id) is None:
            raise NotFoundError('Service not found')

        if new_date is not None:
            _lock_parties(db, appointment.patient_user_id, appointment.dentist_user_id)
            _ensure_no_conflict(
                db,
                new_date,
                appointment.patient_user_id,
                appointment.dentist_user_id,
                exclude_appointment_id=appointment.id,
            )
            appointment.appointment_date = new_date
        if new_status is not None:
            appointment.status = new_status.value
        if service_id is not None:
            appointment.service_id = service_id
        if notes is not None:
            appointment.notes = notes or None

        db.commit()
    except ClinicError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error updating appointment %s', appointment_id)
        raise InternalError('Error updating appointment') from exc

    if new_status == AppointmentStatus.CONFIRMED and previous_status != AppointmentStatus.CONFIRMED:
        if events is not None:
            events.publish(
                AppointmentConfirmed(
                    appointment_id=appointment.id,
                    patient_user_id=appointment.patient_user_id,
                )
            )

    return get_appointment(db, appointment_id)


def delete_appointment(db: Session, appointment_id: int) -> None:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError('Appointment not found')
    try:
        db.delete(appointment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error deleting appointment') from exc
    logger.info('Deleted appointment %s', appointment_id)
