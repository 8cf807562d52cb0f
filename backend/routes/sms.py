import logging
import requests
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from services.sms import send_sms
from utils.security import Principal, admin_required

router = APIRouter(tags=["SMS"])
logger = logging.getLogger(__name__)


# --- Request Model ---
class SMSRequest(BaseModel):
    phone_number: str
    message: str


# --- Endpoint ---
@router.post("/send-sms")
def send_sms_endpoint(req: SMSRequest, admin: Principal = Depends(admin_required)):
    try:
        result = send_sms(req.phone_number, req.message)
    except requests.RequestException as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)
        )
    # Mark as success only if status is not "failed"
    success = result.get("status") != "failed"
    return {"success": success, "result": result}
