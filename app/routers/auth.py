from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status

from app.core.deps import get_auth_service, get_current_user
from app.models.user import AuthResponse, ImageResponse, UserInDB, UserPublic, UserSignIn, UserSignUp, UserUpdate
from app.services.auth import AuthService

router = APIRouter()


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def sign_up(body: UserSignUp, auth: AuthService = Depends(get_auth_service)):
    return auth.sign_up(body.name, body.email, body.password, body.profile_image_url)


@router.post("/signin", response_model=AuthResponse)
def sign_in(body: UserSignIn, auth: AuthService = Depends(get_auth_service)):
    return auth.sign_in(body.email, body.password)


@router.get("/me", response_model=UserPublic)
def get_me(user: UserInDB = Depends(get_current_user)):
    """Current user profile, password hash omitted"""
    return UserPublic.from_db(user)


@router.put("/me", response_model=AuthResponse)
def update_me(
    body: UserUpdate,
    user: UserInDB = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.update_user(user.user_id, body)


@router.post("/upload-image", response_model=ImageResponse)
def upload_image(
    image: Optional[UploadFile] = File(None),
    auth: AuthService = Depends(get_auth_service),
):
    """Upload a profile image before sign-up; the returned URL goes into the sign-up body."""
    data = image.file.read() if image else None
    url = auth.upload_image(data, image.content_type if image else None)
    return ImageResponse(image_url=url)


@router.put("/update-image", response_model=ImageResponse)
def update_image(
    image: Optional[UploadFile] = File(None),
    user: UserInDB = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    data = image.file.read() if image else None
    url = auth.update_profile_image(user.user_id, data, image.content_type if image else None)
    return ImageResponse(image_url=url)
