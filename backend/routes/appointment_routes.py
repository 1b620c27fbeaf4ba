from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import AliasChoices, Field, field_validator
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_catalog, get_current_user
from backend.core import config
from backend.database import get_db
from backend.models.appointment import Appointment
from backend.models.user import User
from backend.notifications.dispatcher import dispatch_events
from backend.notifications.events import EventQueue
from backend.routes.common import CamelModel, envelope
from backend.scheduling import scheduler, visibility
from backend.services.roles import RoleCatalog

router = APIRouter(tags=['appointments'])


def _clean_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(CamelModel):
    appointment_date: str | None = Field(
        default=None,
        validation_alias=AliasChoices('appointmentDate', 'appointment_date', 'date'),
    )
    patient_user_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices('patientUserId', 'patient_user_id', 'patientId'),
    )
    dentist_user_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices('dentistUserId', 'dentist_user_id', 'dentistId'),
    )
    service_id: int | None = Field(default=None, validation_alias=AliasChoices('serviceId', 'service_id'))
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _clean_notes(value) or None


class UpdateAppointmentRequest(CamelModel):
    appointment_date: str | None = Field(
        default=None,
        validation_alias=AliasChoices('appointmentDate', 'appointment_date', 'date'),
    )
    status: str | None = None
    service_id: int | None = Field(default=None, validation_alias=AliasChoices('serviceId', 'service_id'))
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _clean_notes(value)


class PatientSummary(CamelModel):
    user_id: int
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    gender: str | None = None


class DentistSummary(CamelModel):
    user_id: int
    first_name: str
    last_name: str
    email: str


class ServiceSummary(CamelModel):
    service_id: int
    description: str


class AppointmentResponse(CamelModel):
    appointment_id: int
    appointment_date: datetime
    patient_user_id: int
    dentist_user_id: int
    service_id: int
    status: str
    notes: str | None = None
    patient: PatientSummary | None = None
    dentist: DentistSummary | None = None
    service: ServiceSummary | None = None


def summarize_patient(user: User | None) -> PatientSummary | None:
    if user is None:
        return None
    return PatientSummary(
        user_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone=user.phone,
        gender=user.gender,
    )


def summarize_dentist(user: User | None) -> DentistSummary | None:
    if user is None:
        return None
    return DentistSummary(user_id=user.id, first_name=user.first_name, last_name=user.last_name, email=user.email)


def serialize_appointment(appointment: Appointment) -> AppointmentResponse:
    service = appointment.service
    return AppointmentResponse(
        appointment_id=appointment.id,
        appointment_date=appointment.appointment_date,
        patient_user_id=appointment.patient_user_id,
        dentist_user_id=appointment.dentist_user_id,
        service_id=appointment.service_id,
        status=appointment.status,
        notes=appointment.notes,
        patient=summarize_patient(appointment.patient),
        dentist=summarize_dentist(appointment.dentist),
        service=ServiceSummary(service_id=service.id, description=service.description) if service else None,
    )


@router.post('', status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    appointment = scheduler.create_appointment(
        db,
        date=data.appointment_date,
        patient_id=data.patient_user_id,
        dentist_id=data.dentist_user_id,
        service_id=data.service_id,
        notes=data.notes,
    )
    return envelope(serialize_appointment(appointment))


@router.get('')
def list_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    catalog: RoleCatalog = Depends(get_catalog),
):
    appointments = visibility.list_appointments_for_user(db, current_user.id, catalog)
    return envelope([serialize_appointment(appointment) for appointment in appointments])


@router.get('/date/{date}/user/{user_id}')
def list_appointments_by_date_and_user(
    date: str,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    appointments = visibility.list_appointments_by_date_and_user(db, date, user_id)
    return envelope([serialize_appointment(appointment) for appointment in appointments])


@router.get('/{appointment_id}')
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(serialize_appointment(scheduler.get_appointment(db, appointment_id)))


@router.put('/{appointment_id}')
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    events = EventQueue()
    appointment = scheduler.update_appointment(
        db,
        appointment_id,
        date=data.appointment_date,
        status=data.status,
        service_id=data.service_id,
        notes=data.notes,
        events=events,
    )
    dispatch_events(events, background_tasks)
    return envelope(serialize_appointment(appointment))


@router.delete('/{appointment_id}')
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    scheduler.delete_appointment(db, appointment_id)
    return envelope(message='Appointment deleted successfully')
