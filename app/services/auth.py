import logging
from datetime import datetime
from typing import Optional

from app.core.config import Settings
from app.core.errors import AppError, AuthError, NotFoundError, StoreError, ValidationError
from app.core.security import MAX_PASSWORD_BYTES, create_access_token, get_password_hash, verify_password
from app.db.dynamo import UserStore
from app.models.user import AuthResponse, UserInDB, UserPublic, UserUpdate
from app.utils.image_storage import ALLOWED_CONTENT_TYPES, ImageStorage

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Sign-up, sign-in and profile management on top of the user store."""

    def __init__(self, users: UserStore, settings: Settings, images: ImageStorage):
        self._users = users
        self._images = images
        self.settings = settings

    def sign_up(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        profile_image_url: Optional[str] = None,
    ) -> AuthResponse:
        if not name or not name.strip() or not email or not password:
            raise ValidationError()

        user = UserInDB(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=self._hash(password),
            profile_image_url=profile_image_url,
        )
        # The store rejects a taken email atomically (ConflictError)
        self._users.create(user)
        logger.info(f"User signed up: {user.email}")
        return self._auth_response(user)

    def sign_in(self, email: Optional[str], password: Optional[str]) -> AuthResponse:
        if not email or not password:
            raise ValidationError()

        user = self._users.get_by_email(normalize_email(email))
        if not user:
            logger.warning(f"Sign-in for unknown email: {email}")
            raise NotFoundError("No User Found", status_code=400)

        if not verify_password(password, user.password_hash):
            logger.warning(f"Invalid password for user: {email}")
            raise AuthError("Invalid Credentials")

        logger.info(f"Sign-in successful for user: {user.email}")
        return self._auth_response(user)

    def get_current_user(self, user_id: str) -> UserInDB:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User Not Found")
        return user

    def update_user(self, user_id: str, patch: UserUpdate) -> AuthResponse:
        user = self.get_current_user(user_id)
        previous_email = user.email
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)

        if "name" in changes:
            if not changes["name"].strip():
                raise ValidationError("Name Cannot Be Empty")
            user.name = changes["name"].strip()
        if "email" in changes:
            # A taken email surfaces as ConflictError from the store
            user.email = normalize_email(changes["email"])
        if "password" in changes:
            if not changes["password"]:
                raise ValidationError("Password Cannot Be Empty")
            user.password_hash = self._hash(changes["password"])
        if "profile_image_url" in changes:
            user.profile_image_url = changes["profile_image_url"]

        user.updated_at = datetime.utcnow().isoformat(timespec="seconds")
        self._users.update(user, previous_email)
        logger.info(f"Updated profile of user {user_id}")
        return self._auth_response(user)

    def upload_image(self, data: Optional[bytes], content_type: Optional[str]) -> str:
        if not data:
            raise ValidationError("No File Uploaded")
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Only .jpeg .jpg and .png formats are allowed")
        return self._images.upload(data, content_type)

    def update_profile_image(
        self,
        user_id: str,
        data: Optional[bytes],
        content_type: Optional[str],
    ) -> Optional[str]:
        """Replace the user's profile image; without a file the current URL is returned."""
        user = self.get_current_user(user_id)
        if not data:
            return user.profile_image_url

        previous_url = user.profile_image_url
        new_url = self.upload_image(data, content_type)
        user.profile_image_url = new_url
        user.updated_at = datetime.utcnow().isoformat(timespec="seconds")
        try:
            self._users.update(user, user.email)
        except AppError:
            # The profile still points at the previous image
            self._discard_image(new_url)
            raise

        self._discard_image(previous_url)
        return new_url

    def _discard_image(self, url: Optional[str]) -> None:
        try:
            self._images.delete(url)
        except StoreError:
            logger.warning(f"Left orphaned image behind: {url}")

    def _hash(self, password: str) -> str:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError("Password Too Long")
        return get_password_hash(password, self.settings.BCRYPT_ROUNDS)

    def _auth_response(self, user: UserInDB) -> AuthResponse:
        return AuthResponse(
            id=user.user_id,
            user=UserPublic.from_db(user),
            token=create_access_token(user.user_id, self.settings),
        )
