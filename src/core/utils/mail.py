import smtplib
import logging
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from ..config import settings

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, body: str) -> bool:
    """Send a plain-text mail through the configured SMTP relay.

    Runs as a background task, so failures are logged and reported through
    the return value instead of raised.
    """
    if not settings.MAIL_ENABLED:
        logger.debug("Mail disabled, skipping '%s' to %s", subject, to)
        return False

    msg = MIMEMultipart()
    msg["From"] = settings.EMAIL_SENDER
    msg["To"] = to
    msg["Subject"] = subject
    msg.attach(MIMEText(body, "plain"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(settings.EMAIL_SENDER, to, msg.as_string())
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send '%s' to %s", subject, to)
        return False
    return True


def send_verification_email(email: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL}/verify-email?token={token}"
    body = f"""
    Hello,

    Please confirm your email address by opening the link below:

    {link}
    """
    return send_email(email, "Verify your email", body)


def send_password_reset_email(email: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    body = f"""
    Hello,

    A password reset was requested for your account. Use the link below to choose a new password:

    {link}

    If you did not request this, you can ignore this message.
    """
    return send_email(email, "Reset your password", body)


def send_login_notification(email: str) -> bool:
    now = datetime.now()
    body = f"""
    Hello,

    A new login to your account ({email}) was recorded on {now:%Y-%m-%d} at {now:%H:%M:%S}.
    """
    return send_email(email, "Login Notification", body)
