import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from spendwise.config import settings
from spendwise.database.postgres_db import get_db as get_session
from spendwise.models.schemas import OtpRequest, OtpVerify, MessageResponse
from spendwise.services.otp import MailSender, OtpDeliveryError, OtpService, get_mail_sender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/otp", tags=["otp"])
pages_router = APIRouter(tags=["pages"])

# Unauthenticated endpoints that send mail; limit per client address
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

CONFIRM_EMAIL_PAGE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Email Confirmed</title>
    <style>
      body { font-family: sans-serif; text-align: center; padding: 48px 16px; color: #333; }
      h1 { color: #4CAF50; }
    </style>
  </head>
  <body>
    <h1>Email Confirmed!</h1>
    <p>Your email address has been verified. You can return to the SpendWise app and sign in.</p>
  </body>
</html>
"""


def _delivery_failed() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to send OTP"
    )


@router.post("/send", response_model=MessageResponse)
@limiter.limit(settings.OTP_RATE_LIMIT)
async def send_otp(
    request: Request,
    payload: OtpRequest,
    session: Session = Depends(get_session),
    mailer: MailSender = Depends(get_mail_sender),
):
    service = OtpService(session, mailer)
    try:
        service.issue(payload.email)
    except OtpDeliveryError:
        session.rollback()
        raise _delivery_failed()
    session.commit()
    return {"message": "OTP sent successfully"}


@router.post("/verify", response_model=MessageResponse)
@limiter.limit(settings.OTP_RATE_LIMIT)
async def verify_otp(
    request: Request,
    payload: OtpVerify,
    session: Session = Depends(get_session),
    mailer: MailSender = Depends(get_mail_sender),
):
    service = OtpService(session, mailer)
    if not service.verify(payload.email, payload.otp):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OTP"
        )
    session.commit()
    return {"message": "OTP verified successfully"}


@router.post("/resend", response_model=MessageResponse)
@limiter.limit(settings.OTP_RATE_LIMIT)
async def resend_otp(
    request: Request,
    payload: OtpRequest,
    session: Session = Depends(get_session),
    mailer: MailSender = Depends(get_mail_sender),
):
    service = OtpService(session, mailer)
    try:
        service.resend(payload.email)
    except OtpDeliveryError:
        session.rollback()
        raise _delivery_failed()
    session.commit()
    return {"message": "OTP resent successfully"}


@pages_router.get("/confirm_email", response_class=HTMLResponse)
async def confirm_email():
    return HTMLResponse(content=CONFIRM_EMAIL_PAGE)
