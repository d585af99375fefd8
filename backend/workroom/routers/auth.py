"""Auth endpoints."""
import logging

from fastapi import APIRouter, Depends, Response, status

from ..auth import create_access_token, get_current_user
from ..config import settings
from ..database import get_store
from ..models import User
from ..schemas import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TenantResponse,
    TokenResponse,
    UserResponse,
)
from ..store import DirectoryStore
from ..use_cases.accounts import (
    authenticate_use_case,
    change_password_use_case,
    register_tenant_use_case,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, store: DirectoryStore = Depends(get_store)):
    """Register a company workspace and its admin."""
    tenant, admin = register_tenant_use_case(
        store=store,
        company_name=payload.company_name,
        industry=payload.industry,
        admin_name=payload.admin_name,
        username=payload.username,
        password=payload.password,
    )
    return RegisterResponse(
        tenant=TenantResponse.model_validate(tenant),
        admin=UserResponse.model_validate(admin),
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, response: Response, store: DirectoryStore = Depends(get_store)):
    """Login with username and password."""
    _set_no_store(response)
    user, tenant = authenticate_use_case(
        store=store,
        username=payload.username,
        password=payload.password,
        tenant_id=payload.tenant_id,
    )
    logger.info("User %s logged in to tenant %s", user.id, tenant.id)
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
        tenant=TenantResponse.model_validate(tenant),
    )


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    change_password_use_case(
        store=store,
        current_user=current_user,
        current_password=payload.current_password,
        new_password=payload.new_password,
        confirm_password=payload.confirm_password,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
