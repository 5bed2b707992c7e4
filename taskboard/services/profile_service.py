"""Profile settings: display name and avatar upload."""
import logging
import uuid
from typing import Optional

from taskboard.config import Settings, settings as default_settings
from taskboard.core.exceptions import NotFoundError, ValidationError
from taskboard.integrations.auth import AuthGateway
from taskboard.integrations.storage import StorageGateway
from taskboard.integrations.supabase import SupabaseGateway
from taskboard.schemas.profile import Profile
from taskboard.services.task_store import TaskDataStore

logger = logging.getLogger(__name__)


class ProfileService:
    """Writes profile changes to the backend and refreshes the store's profile snapshot."""

    def __init__(
        self,
        gateway: SupabaseGateway,
        storage: StorageGateway,
        auth: AuthGateway,
        store: TaskDataStore,
        config: Settings = default_settings,
    ):
        self.gateway = gateway
        self.storage = storage
        self.auth = auth
        self.store = store
        self.config = config

    @staticmethod
    def build_avatar_path(user_id: str, filename: str) -> str:
        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
        return f"{user_id}-{uuid.uuid4().hex}.{extension}"

    def validate_avatar(self, data: bytes, content_type: Optional[str]) -> None:
        if len(data) > self.config.AVATAR_MAX_BYTES:
            limit_mb = self.config.AVATAR_MAX_BYTES // (1024 * 1024)
            raise ValidationError(f"File size must be less than {limit_mb}MB")
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("File must be an image")

    async def _profile_or_404(self, user_id: str) -> Profile:
        await self.store.refresh_profiles()
        profile = self.store.profiles.get(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    async def upload_avatar(
        self,
        user_id: str,
        access_token: str,
        filename: str,
        data: bytes,
        content_type: Optional[str],
    ) -> Profile:
        """Store the image, point the profile and auth metadata at its public URL."""
        self.validate_avatar(data, content_type)

        path = self.build_avatar_path(user_id, filename)
        public_url = await self.storage.upload(
            self.config.AVATAR_BUCKET,
            path,
            data,
            content_type,
            access_token=access_token,
        )
        logger.info("Uploaded avatar for %s to %s", user_id, path)

        updated = await self.gateway.update(
            self.config.PROFILES_TABLE,
            user_id,
            {"avatar_url": public_url},
            access_token=access_token,
        )
        if updated is None:
            raise NotFoundError("Profile not found")

        await self.auth.update_user_metadata(access_token, {"avatar_url": public_url})
        return await self._profile_or_404(user_id)

    async def update_full_name(self, user_id: str, access_token: str, full_name: str) -> Profile:
        updated = await self.gateway.update(
            self.config.PROFILES_TABLE,
            user_id,
            {"full_name": full_name},
            access_token=access_token,
        )
        if updated is None:
            raise NotFoundError("Profile not found")
        await self.auth.update_user_metadata(access_token, {"full_name": full_name})
        return await self._profile_or_404(user_id)
