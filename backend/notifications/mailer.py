import logging
import smtplib
from email.message import EmailMessage

from backend.core import config
from backend.models.appointment import Appointment
from backend.models.user import User

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    return bool(config.SMTP_HOST and config.SMTP_FROM)


def send_email(to: str, subject: str, text: str, html: str | None = None) -> bool:
    if not smtp_configured():
        logger.warning('Email to %s skipped: SMTP_HOST and SMTP_FROM are not configured.', to)
        return False

    message = EmailMessage()
    message['From'] = config.SMTP_FROM
    message['To'] = to
    message['Subject'] = subject
    message.set_content(text)
    if html:
        message.add_alternative(html, subtype='html')

    smtp_class = smtplib.SMTP_SSL if config.SMTP_SECURE else smtplib.SMTP
    with smtp_class(config.SMTP_HOST, config.SMTP_PORT, timeout=config.DATABASE_TIMEOUT_SECONDS) as client:
        if config.SMTP_STARTTLS and not config.SMTP_SECURE:
            client.starttls()
        if config.SMTP_USER:
            client.login(config.SMTP_USER, config.SMTP_PASS)
        client.send_message(message)

    logger.info('Email sent to %s: %s', to, subject)
    return True


def send_appointment_confirmation(appointment: Appointment, patient: User) -> bool:
    when = appointment.appointment_date.strftime('%A, %B %d, %Y at %I:%M %p')
    subject = 'Appointment Confirmation'
    text = f'Your appointment has been confirmed for {when}.'
    html = f"""
        <h2>Appointment Confirmation</h2>
        <p>Dear {patient.first_name} {patient.last_name},</p>
        <p>Your appointment has been confirmed for {when}.</p>
        <p>Please arrive 15 minutes before your scheduled time.</p>
        <p>If you need to cancel or reschedule, please contact us at least 24 hours in advance.</p>
        <p>Best regards,<br>{config.CLINIC_NAME}</p>
    """
    return send_email(patient.email, subject, text, html)
