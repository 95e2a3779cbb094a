from fastapi import APIRouter, Depends, status

from furioso.core.auth_middleware import get_current_active_user
from furioso.deps import get_user_service
from furioso.schemas.user import User as UserSchema, UserCreate, UserRegistrationResponse
from furioso.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    response_model=UserRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_user(
    request: UserCreate,
    user_service: UserService = Depends(get_user_service),
) -> UserRegistrationResponse:
    """
    회원 가입 - 사용자 생성과 가입 보너스 지급을 함께 처리

    HTTP Status:
        201: 가입 완료 (access_token 포함)
        409: 이미 가입된 이메일
        422: 입력값 오류
    """
    return user_service.register_user(request)


@router.get("/me", response_model=UserSchema)
def get_me(current_user: UserSchema = Depends(get_current_active_user)) -> UserSchema:
    """내 정보 조회"""
    return current_user
