"""Which appointments a user may list.

Dentists see the appointments where they are the dentist, patients the ones
where they are the patient. Any other role sees nothing and gets an error.
"""

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, joinedload

from backend.core.errors import InvalidRoleError, MissingFieldsError, NotFoundError
from backend.models.appointment import Appointment
from backend.scheduling.dates import day_bounds, parse_day
from backend.services.identity import find_role_for_user, find_user_by_id
from backend.services.roles import RoleCatalog, RoleKind


def _with_parties(db: Session) -> Query:
    return db.query(Appointment).options(
        joinedload(Appointment.patient),
        joinedload(Appointment.dentist),
        joinedload(Appointment.service),
    )


def _chronological(query: Query) -> Query:
    return query.order_by(Appointment.appointment_date.asc(), Appointment.id.asc())


def visible_to(kind: RoleKind | None, user_id: int):
    if kind == RoleKind.DENTIST:
        return Appointment.dentist_user_id == user_id
    if kind == RoleKind.PATIENT:
        return Appointment.patient_user_id == user_id
    raise InvalidRoleError('Invalid user role')


def list_appointments_for_user(db: Session, user_id: int, catalog: RoleCatalog) -> list[Appointment]:
    if find_user_by_id(db, user_id) is None:
        raise NotFoundError('User not found')

    role_id = find_role_for_user(db, user_id)
    if role_id is None:
        raise InvalidRoleError('User role not found')

    predicate = visible_to(catalog.kind_for(role_id), user_id)
    return _chronological(_with_parties(db).filter(predicate)).all()


def list_appointments_by_date_and_user(db: Session, day, user_id: int | None) -> list[Appointment]:
    if day is None or user_id is None or (isinstance(day, str) and not day.strip()):
        raise MissingFieldsError('Date and userId are required')

    start, end = day_bounds(parse_day(day))
    query = _with_parties(db).filter(
        or_(Appointment.patient_user_id == user_id, Appointment.dentist_user_id == user_id),
        Appointment.appointment_date.between(start, end),
    )
    return _chronological(query).all()
