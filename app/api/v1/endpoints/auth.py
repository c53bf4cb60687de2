from fastapi import APIRouter

from app.core.common_deps import AuthServiceDep, CurrentUserDep
from app.schemas.responses import CurrentUserResponse
from app.schemas.user import LoginRequest, Token

router = APIRouter()


@router.post("/login", response_model=Token)
async def login(login_data: LoginRequest, auth_service: AuthServiceDep):
    result = await auth_service.login(login_data)

    return {"access_token": result["access_token"], "token_type": result["token_type"]}


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(current_user: CurrentUserDep):
    return CurrentUserResponse(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        role=current_user.role.value,
        establishment_id=current_user.establishment_id,
        is_active=current_user.is_active,
    )
