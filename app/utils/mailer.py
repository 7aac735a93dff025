from flask_mail import Message
from flask import current_app
from app.extensions import mail


def send_email(to, subject, body, html=None):
    """Send a plain-text (and optional HTML) mail; returns False when skipped."""
    sender = current_app.config.get("MAIL_DEFAULT_SENDER")
    recipients = [to] if isinstance(to, str) else list(to)

    # the school's own mailbox never gets copies
    recipients = [r for r in recipients if r and r != sender]
    if not recipients:
        current_app.logger.info(f"Skipped email '{subject}': no recipients")
        return False

    msg = Message(subject=subject, recipients=recipients, sender=sender)
    msg.body = body
    if html:
        msg.html = html

    try:
        mail.send(msg)
    except Exception as e:
        current_app.logger.error(f"Failed to send email '{subject}' to {recipients}: {e}")
        raise

    current_app.logger.info(f"Email '{subject}' sent to {', '.join(recipients)}")
    return True
