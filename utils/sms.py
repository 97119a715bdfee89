from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("SMS_Service")

_client = None

def _get_client():
    global _client
    if _client is None:
        if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
            return None
        _client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
    return _client

def _send(phone_number: str, body: str, allow_whatsapp: bool = False) -> bool:
    client = _get_client()
    if client is None:
        logger.warning("Twilio credentials are not configured, SMS not sent")
        return False

    # WhatsApp first when configured, regular SMS as the fallback
    if allow_whatsapp and settings.TWILIO_WHATSAPP_NUMBER and phone_number.startswith("+"):
        try:
            result = client.messages.create(
                from_=settings.TWILIO_WHATSAPP_NUMBER,
                to=f"whatsapp:{phone_number}",
                body=body,
            )
            logger.info(f"WhatsApp message sent to {phone_number}: {result.sid}")
            return True
        except TwilioRestException:
            logger.warning(f"WhatsApp failed for {phone_number}, falling back to SMS")

    try:
        result = client.messages.create(
            from_=settings.TWILIO_FROM_NUMBER,
            to=phone_number,
            body=body,
        )
        logger.info(f"SMS sent to {phone_number}: {result.sid}")
        return True
    except TwilioRestException as e:
        logger.error(f"Failed to send SMS to {phone_number}", exc_info=e)
        return False

def send_verification_sms(phone_number: str, code: str) -> bool:
    message = f"Your verification code is: {code}. Valid for {settings.VERIFICATION_CODE_TTL_MINUTES} minutes."
    return _send(phone_number, message, allow_whatsapp=True)

def send_password_reset_sms(phone_number: str, code: str) -> bool:
    message = f"Your password reset code is: {code}. Valid for {settings.VERIFICATION_CODE_TTL_MINUTES} minutes."
    return _send(phone_number, message)
