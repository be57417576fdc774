"""Admin email endpoints. Provider failures surface as 502."""

import logging

from fastapi import APIRouter, Depends

from .. import models, schemas
from ..auth import get_current_admin
from ..email_service import email_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["email"])


@router.post("/send")
def send_email(
    message: schemas.EmailSend,
    admin: models.AdminUser = Depends(get_current_admin),
):
    result = email_service.send_custom_email(message.to, message.subject, message.html, message.text)
    logger.info("Admin %s sent email to %s (sent=%s)", admin.username, message.to, result.get("sent"))
    return {"success": True, "data": result}


@router.get("/status")
def email_status(admin: models.AdminUser = Depends(get_current_admin)):
    return {"success": True, "data": email_service.status()}


@router.post("/test")
def send_test_email(
    request: schemas.EmailTest,
    admin: models.AdminUser = Depends(get_current_admin),
):
    result = email_service.send_test_email(request.to)
    return {"success": True, "data": result}
