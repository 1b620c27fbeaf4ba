"""Delivers queued domain events outside the request that raised them.

Delivery is best-effort: failures are logged and never reach the caller or
undo the change that produced the event.
"""

import logging
from typing import Callable

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session, sessionmaker

from backend.database import SessionLocal
from backend.models.appointment import Appointment
from backend.models.user import User
from backend.notifications.mailer import send_appointment_confirmation
from backend.notifications.events import AppointmentConfirmed, EventQueue

logger = logging.getLogger(__name__)

ConfirmationSender = Callable[[Appointment, User], object]


def deliver_event(
    event,
    session_factory: sessionmaker | Callable[[], Session] = SessionLocal,
    sender: ConfirmationSender | None = None,
) -> None:
    if not isinstance(event, AppointmentConfirmed):
        logger.warning('No handler for event %r', event)
        return

    send = sender or send_appointment_confirmation
    try:
        db = session_factory()
        try:
            appointment = db.get(Appointment, event.appointment_id)
            patient = db.get(User, event.patient_user_id)
            if appointment is None or patient is None:
                logger.warning('Confirmation for appointment %s skipped: record no longer exists', event.appointment_id)
                return
            send(appointment, patient)
        finally:
            db.close()
    except Exception:
        logger.exception('Error sending confirmation email for appointment %s', event.appointment_id)


def dispatch_events(
    queue: EventQueue,
    background_tasks: BackgroundTasks,
    session_factory: sessionmaker | Callable[[], Session] = SessionLocal,
    sender: ConfirmationSender | None = None,
) -> int:
    events = queue.drain()
    for event in events:
        background_tasks.add_task(deliver_event, event, session_factory, sender)
    return len(events)
