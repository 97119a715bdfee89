import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from utils.logger import get_logger
from settings.config import settings

logger = get_logger("Email_Service")

VERIFICATION_SUBJECT = "Email Verification"
PASSWORD_RESET_SUBJECT = "Password Reset Request"

def _send(to_email: str, subject: str, body: str) -> bool:
    if not settings.SMTP_HOST:
        logger.warning("SMTP not configured, email not sent", extra={"email": to_email})
        return False
    try:
        msg = MIMEMultipart()
        msg["From"] = settings.FROM_EMAIL
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT)
        server.starttls()
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.sendmail(settings.FROM_EMAIL, to_email, msg.as_string())
        server.quit()
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email", exc_info=e)
        return False

def send_verification_email(to_email: str, code: str) -> bool:
    """
    Sends the registration verification code
    """
    body = f"""
    Hi,

    Your verification code is: {code}

    This code will expire in {settings.VERIFICATION_CODE_TTL_MINUTES} minutes.

    If you did not sign up, ignore this email.
    """
    sent = _send(to_email, VERIFICATION_SUBJECT, body)
    if sent:
        logger.info("Verification email sent", extra={"email": to_email})
    return sent

def send_password_reset_email(to_email: str, code: str) -> bool:
    body = f"""
    Hi,

    Your password reset code is: {code}

    This code will expire in {settings.VERIFICATION_CODE_TTL_MINUTES} minutes.
    """
    sent = _send(to_email, PASSWORD_RESET_SUBJECT, body)
    if sent:
        logger.info("Password reset email sent", extra={"email": to_email})
    return sent
