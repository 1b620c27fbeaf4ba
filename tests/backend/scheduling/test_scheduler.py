from datetime import datetime

import pytest

from backend.core.errors import (
    InvalidDateError,
    InvalidStatusError,
    InvalidStatusTransitionError,
    MissingFieldsError,
    NotFoundError,
    PastDateError,
    SchedulingConflictError,
)
from backend.models.appointment import Appointment
from backend.notifications.events import AppointmentConfirmed, EventQueue
from backend.scheduling import scheduler
from backend.services.roles import RoleKind

NOW = datetime(2025, 5, 1, 8, 0)


def _create(db, patient, dentist, service, when='2025-06-01T10:00:00', **overrides):
    fields = {
        'date': when,
        'patient_id': patient.id,
        'dentist_id': dentist.id,
        'service_id': service.id,
        'notes': None,
        'now': NOW,
    }
    fields.update(overrides)
    return scheduler.create_appointment(db, **fields)


def test_create_appointment_persists_pending_appointment(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service, notes='First visit')

    assert appointment.id is not None
    assert appointment.status == 'pending'
    assert appointment.appointment_date == datetime(2025, 6, 1, 10, 0)
    assert appointment.notes == 'First visit'
    assert appointment.patient.email == patient.email
    assert appointment.dentist.email == dentist.email
    assert appointment.service.description == 'Cleaning'


def test_create_appointment_requires_all_fields(db) -> None:
    with pytest.raises(MissingFieldsError) as exception_info:
        scheduler.create_appointment(db, date='   ', patient_id=1, dentist_id=None, service_id=3, now=NOW)

    assert exception_info.value.status_code == 400
    assert exception_info.value.details == {'missing': ['appointmentDate', 'dentistUserId']}


def test_create_appointment_rejects_unparseable_date(db, dentist, patient, service) -> None:
    with pytest.raises(InvalidDateError):
        _create(db, patient, dentist, service, when='next tuesday')


@pytest.mark.parametrize('when', ['2025-05-01T08:00:00', '2025-04-30T10:00:00'])
def test_create_appointment_rejects_past_or_current_dates(db, dentist, patient, service, when: str) -> None:
    with pytest.raises(PastDateError):
        _create(db, patient, dentist, service, when=when)

    assert db.query(Appointment).count() == 0


def test_date_checks_run_before_existence_checks(db) -> None:
    with pytest.raises(PastDateError):
        scheduler.create_appointment(
            db, date='2020-01-01T10:00:00', patient_id=998, dentist_id=999, service_id=997, now=NOW
        )


def test_create_appointment_reports_missing_parties(db, dentist, service) -> None:
    with pytest.raises(NotFoundError) as exception_info:
        scheduler.create_appointment(
            db,
            date='2025-06-01T10:00:00',
            patient_id=12345,
            dentist_id=dentist.id,
            service_id=service.id,
            now=NOW,
        )

    assert exception_info.value.status_code == 404
    assert exception_info.value.details == {'patientFound': False, 'dentistFound': True, 'serviceFound': True}


def test_create_appointment_rejects_conflicting_time(db, dentist, patient, add_user, service) -> None:
    first = _create(db, patient, dentist, service)
    other_patient = add_user(RoleKind.PATIENT, 'other@clinic.example')

    with pytest.raises(SchedulingConflictError) as exception_info:
        _create(db, other_patient, dentist, service, when='2025-06-01T10:45:00')

    assert exception_info.value.status_code == 400
    assert exception_info.value.message == scheduler.CONFLICT_MESSAGE
    assert exception_info.value.details['existingAppointmentId'] == first.id
    assert db.query(Appointment).count() == 1


def test_create_appointment_accepts_time_just_outside_window(db, dentist, patient, service) -> None:
    _create(db, patient, dentist, service)

    second = _create(db, patient, dentist, service, when='2025-06-01T11:00:01')

    assert second.appointment_date == datetime(2025, 6, 1, 11, 0, 1)


def test_update_appointment_applies_partial_changes(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service, notes='Bring x-rays')

    updated = scheduler.update_appointment(db, appointment.id, notes='Bring previous x-rays', now=NOW)

    assert updated.notes == 'Bring previous x-rays'
    assert updated.status == 'pending'
    assert updated.appointment_date == datetime(2025, 6, 1, 10, 0)


def test_update_appointment_with_empty_notes_clears_them(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service, notes='Remove me')

    updated = scheduler.update_appointment(db, appointment.id, notes='', now=NOW)

    assert updated.notes is None


def test_update_appointment_can_move_near_its_own_slot(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)

    updated = scheduler.update_appointment(db, appointment.id, date='2025-06-01T10:30:00', now=NOW)

    assert updated.appointment_date == datetime(2025, 6, 1, 10, 30)


def test_update_appointment_rejects_move_into_another_slot(db, dentist, patient, service) -> None:
    _create(db, patient, dentist, service)
    second = _create(db, patient, dentist, service, when='2025-06-01T13:00:00')

    with pytest.raises(SchedulingConflictError):
        scheduler.update_appointment(db, second.id, date='2025-06-01T10:59:00', now=NOW)

    db.expire_all()
    assert db.get(Appointment, second.id).appointment_date == datetime(2025, 6, 1, 13, 0)


def test_update_appointment_rejects_past_date(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)

    with pytest.raises(PastDateError):
        scheduler.update_appointment(db, appointment.id, date='2025-04-01T10:00:00', now=NOW)


def test_update_appointment_rejects_unknown_status(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)

    with pytest.raises(InvalidStatusError) as exception_info:
        scheduler.update_appointment(db, appointment.id, status='rescheduled', now=NOW)

    assert 'confirmed' in exception_info.value.details['validStatuses']


def test_update_appointment_enforces_status_transitions(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)
    scheduler.update_appointment(db, appointment.id, status='cancelled', now=NOW)

    with pytest.raises(InvalidStatusTransitionError) as exception_info:
        scheduler.update_appointment(db, appointment.id, status='confirmed', now=NOW)

    assert exception_info.value.details == {'currentStatus': 'cancelled', 'allowedStatuses': []}


def test_update_appointment_rejects_unknown_service(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)

    with pytest.raises(NotFoundError):
        scheduler.update_appointment(db, appointment.id, service_id=4242, now=NOW)


def test_update_appointment_returns_not_found_when_missing(db) -> None:
    with pytest.raises(NotFoundError) as exception_info:
        scheduler.update_appointment(db, 999, notes='nothing', now=NOW)

    assert exception_info.value.message == 'Appointment not found'


def test_confirming_an_appointment_publishes_event(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)
    events = EventQueue()

    scheduler.update_appointment(db, appointment.id, status='confirmed', events=events, now=NOW)

    assert events.drain() == [AppointmentConfirmed(appointment_id=appointment.id, patient_user_id=patient.id)]


def test_reconfirming_does_not_publish_again(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)
    scheduler.update_appointment(db, appointment.id, status='confirmed', now=NOW)
    events = EventQueue()

    scheduler.update_appointment(db, appointment.id, status='confirmed', events=events, now=NOW)

    assert len(events) == 0


def test_other_status_changes_publish_nothing(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)
    events = EventQueue()

    scheduler.update_appointment(db, appointment.id, status='cancelled', events=events, now=NOW)

    assert len(events) == 0


def test_cancelled_slot_can_be_rebooked(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)
    scheduler.update_appointment(db, appointment.id, status='cancelled', now=NOW)

    rebooked = _create(db, patient, dentist, service)

    assert rebooked.id != appointment.id


def test_delete_appointment_removes_row(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)

    scheduler.delete_appointment(db, appointment.id)

    assert db.get(Appointment, appointment.id) is None


def test_delete_appointment_returns_not_found_when_missing(db) -> None:
    with pytest.raises(NotFoundError):
        scheduler.delete_appointment(db, 404)


def test_single_letter_confirm_code_publishes_event(db, dentist, patient, service) -> None:
    appointment = _create(db, patient, dentist, service)
    events = EventQueue()

    updated = scheduler.update_appointment(db, appointment.id, status='C', events=events, now=NOW)

    assert updated.status == 'confirmed'
    assert len(events) == 1
