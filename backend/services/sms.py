import logging
import requests

from core.config import settings

logger = logging.getLogger(__name__)

AT_BASE_URL = (
    "https://api.africastalking.com/version1/messaging"
    if settings.AFRICASTALKING_USERNAME != "sandbox"
    else "https://api.sandbox.africastalking.com/version1/messaging"
)


def normalize_phone_number(phone_number: str) -> str:
    """Driver phones are stored as 10 local digits; the gateway wants E.164."""
    normalized = phone_number.strip().replace(" ", "").replace("-", "")
    if normalized.startswith("+"):
        return normalized
    country_digits = settings.SMS_COUNTRY_CODE.lstrip("+")
    if normalized.startswith("0"):
        normalized = normalized[1:]
    if len(normalized) > 10 and normalized.startswith(country_digits):
        return f"+{normalized}"
    return f"{settings.SMS_COUNTRY_CODE}{normalized}"


def send_sms(phone_number: str, message: str) -> dict:
    headers = {
        "apiKey": settings.AFRICASTALKING_API_KEY,
        "Accept": "application/json",
        "Content-Type": "application/x-www-form-urlencoded",
    }
    data = {
        "username": settings.AFRICASTALKING_USERNAME,
        "to": normalize_phone_number(phone_number),
        "message": message,
    }
    if settings.AFRICASTALKING_SENDER_ID:
        data["from"] = settings.AFRICASTALKING_SENDER_ID

    try:
        resp = requests.post(AT_BASE_URL, headers=headers, data=data, timeout=15)
        logger.info("AT response: %s %s", resp.status_code, resp.text)

        # Accept 200 or 201 as success
        if resp.status_code not in (200, 201):
            return {
                "status": "failed",
                "error": f"HTTP {resp.status_code}",
                "raw": resp.text,
            }

        res = resp.json()
        recipients = res.get("SMSMessageData", {}).get("Recipients", [])
        return {
            "status": recipients[0].get("status") if recipients else "failed",
            "messageId": recipients[0].get("messageId") if recipients else None,
            "raw": res,
        }
    except requests.RequestException as e:
        logger.error("AT error: %s", e)
        raise
