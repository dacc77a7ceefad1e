"""
E-mail Verification Routes

POST /auth/send-verification - Send a verification link to an address
POST /auth/verify-email - Verify a token and confirm the account's e-mail
GET /auth/verify-email?token= - Same, for links clicked from the e-mail (redirects)

Accounts themselves are managed by the hosted auth provider.
"""

from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import RedirectResponse

from prepcoach.core.config import get_settings
from prepcoach.services.auth_admin_client import get_auth_admin_client
from prepcoach.services.email_service import get_email_service, TokenVerificationError
from prepcoach.schemas.schemas import (
    SendVerificationRequest, VerifyEmailRequest, VerifyEmailResponse, MessageResponse
)
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["E-mail Verification"])


def _redirect(query: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.app_url.rstrip('/')}/auth/verify?{query}", status_code=307)


@router.post("/send-verification", response_model=MessageResponse)
async def send_verification(request: SendVerificationRequest):
    """
    Issue a new verification token and e-mail it.

    Only one pending token per address: a second request while one is
    still valid is rejected with 429.
    """
    email = request.email
    email_service = get_email_service()

    if email_service.has_pending_verification(email):
        raise HTTPException(
            status_code=429,
            detail="A verification email was already sent recently. Please wait before requesting another."
        )

    try:
        confirmed = get_auth_admin_client().is_email_confirmed(email)
    except httpx.HTTPError as e:
        logger.warning(f"Could not check confirmation state for {email}: {e}")
        confirmed = False
    if confirmed:
        raise HTTPException(status_code=400, detail="Email is already verified. You can sign in directly.")

    email_service.invalidate_existing_tokens(email)
    token = email_service.generate_verification_token(email)

    if not email_service.send_verification_email(email, token):
        raise HTTPException(status_code=500, detail="Failed to send verification email. Please try again.")

    return MessageResponse(message="Verification email sent successfully. Please check your inbox.")


def _confirm_account(email: str) -> None:
    """Raises HTTPException 404 when the account is unknown, 500 on provider errors."""
    admin = get_auth_admin_client()
    try:
        user = admin.find_user_by_email(email)
    except httpx.HTTPError as e:
        logger.error(f"Error fetching users from auth provider: {e}")
        raise HTTPException(status_code=500, detail="Failed to verify email")

    if not user:
        raise HTTPException(status_code=404, detail="User not found. Please register first.")

    try:
        admin.confirm_email(user["id"])
    except httpx.HTTPError as e:
        logger.error(f"Error confirming email for {email}: {e}")
        raise HTTPException(status_code=500, detail="Failed to confirm email")


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(request: VerifyEmailRequest):
    try:
        email = get_email_service().verify_token(request.token)
    except TokenVerificationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _confirm_account(email)
    return VerifyEmailResponse(message="Email verified successfully! You can now sign in.", email=email)


@router.get("/verify-email")
async def verify_email_link(token: Optional[str] = Query(None)):
    """Link target from the verification e-mail; always redirects to the app."""
    if not token:
        return _redirect("error=missing-token")

    try:
        email = get_email_service().verify_token(token)
    except TokenVerificationError as e:
        return _redirect(f"error={quote(str(e))}")

    try:
        _confirm_account(email)
    except HTTPException as e:
        return _redirect("error=user-not-found" if e.status_code == 404 else "error=verification-failed")

    return _redirect("success=true")
