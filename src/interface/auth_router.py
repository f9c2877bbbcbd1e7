"""Registration, login and logout endpoints."""

from fastapi import APIRouter, Depends, Response, status

from src.core.rate_limiter import check_auth_rate_limit
from src.domain.create_models import UserCreate, UserLogin
from src.domain.user import User
from src.interface.session import clear_session_cookie, require_user, set_session_cookie
from src.models.service_models import AuthResponse, MessageResponse
from src.services import user_service


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(check_auth_rate_limit)])
async def register(request: UserCreate, response: Response) -> AuthResponse:
    """Create an account and log it in."""
    user = await user_service.register_user(request=request)
    set_session_cookie(response, user.id)
    return AuthResponse(message="User registered successfully", user=user)


@router.post("/login", dependencies=[Depends(check_auth_rate_limit)])
async def login(request: UserLogin, response: Response) -> AuthResponse:
    """Start a session for valid credentials."""
    user = await user_service.authenticate(email=request.email, password=request.password)
    set_session_cookie(response, user.id)
    return AuthResponse(message="Logged in successfully", user=user)


@router.post("/logout")
async def logout(response: Response) -> MessageResponse:
    """End the current session. Succeeds without one too."""
    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me")
async def me(user: User = Depends(require_user)) -> User:
    """The logged-in user."""
    return user
