"""Profile, password and email verification endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from src.core.config import constants, settings
from src.domain.update_models import PasswordChange, ProfileUpdate
from src.domain.user import User
from src.interface.session import require_user
from src.models.service_models import MessageResponse
from src.services import user_service


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile")
async def get_profile(user: User = Depends(require_user)) -> User:
    return user


@router.put("/profile")
async def update_profile(request: ProfileUpdate, user: User = Depends(require_user)) -> User:
    """Change name, email or theme."""
    return await user_service.update_profile(user_id=user.id, request=request)


@router.put("/password")
async def change_password(request: PasswordChange, user: User = Depends(require_user)) -> MessageResponse:
    """Change the password after re-checking the current one."""
    await user_service.change_password(user_id=user.id, request=request)
    return MessageResponse(message="Password updated successfully")


@router.post("/verify-email")
async def request_email_verification(user: User = Depends(require_user)) -> MessageResponse:
    """Email a one-hour confirmation link to the current address."""
    await user_service.request_email_verification(user_id=user.id)
    return MessageResponse(message="Verification email sent")


@router.get("/verify-email/confirm", response_model=None)
async def confirm_email_verification(token: str = "") -> MessageResponse | RedirectResponse:
    """Follow a verification link. Needs no session, the token identifies the user."""
    await user_service.confirm_email_verification(token=token)
    if settings.frontend_base_url:
        return RedirectResponse(
            f"{settings.frontend_base_url.rstrip('/')}/settings?verified=1", status_code=constants.HTTP_FOUND
        )
    return MessageResponse(message="Email verified successfully")
