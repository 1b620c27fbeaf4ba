"""Service catalog: bookable procedures."""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import ConflictError, InternalError, NotFoundError, ValidationError
from backend.models.appointment import Appointment
from backend.models.service import Service

logger = logging.getLogger(__name__)

REFERENCED_SERVICE_MESSAGE = 'Cannot delete service. This service has scheduled appointments'


def find_service_by_id(db: Session, service_id: int) -> Service | None:
    return db.get(Service, service_id)


def get_service(db: Session, service_id: int) -> Service:
    service = find_service_by_id(db, service_id)
    if service is None:
        raise NotFoundError('Service not found')
    return service


def list_services(db: Session) -> list[Service]:
    return db.query(Service).order_by(Service.date_created.desc(), Service.id.desc()).all()


def _clean_description(description: str | None) -> str:
    if not description or not description.strip():
        raise ValidationError('Description is required')
    return description.strip()


def create_service(db: Session, description: str | None) -> Service:
    now = datetime.now()
    service = Service(description=_clean_description(description), date_created=now, date_updated=now)
    try:
        db.add(service)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error creating service') from exc
    db.refresh(service)
    return service


def update_service(db: Session, service_id: int, description: str | None) -> Service:
    service = get_service(db, service_id)
    service.description = _clean_description(description)
    service.date_updated = datetime.now()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error updating service') from exc
    db.refresh(service)
    return service


def delete_service(db: Session, service_id: int) -> None:
    service = get_service(db, service_id)

    referenced = db.query(Appointment.id).filter(Appointment.service_id == service.id).first()
    if referenced is not None:
        raise ConflictError(REFERENCED_SERVICE_MESSAGE)

    try:
        db.delete(service)
        db.commit()
    except IntegrityError as exc:
        # An appointment may have been booked between the check and the delete.
        db.rollback()
        raise ConflictError(REFERENCED_SERVICE_MESSAGE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error deleting service') from exc
    logger.info('Deleted service %s', service_id)
