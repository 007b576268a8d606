from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """
    Read-through cache policy.

    MEDIA_STALE_AFTER_HOURS unset means every get-by-id refreshes from AniList.
    """

    stale_after_hours: float | None = Field(default=None, alias="MEDIA_STALE_AFTER_HOURS", ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def stale_after(self) -> timedelta | None:
        if self.stale_after_hours is None:
            return None
        return timedelta(hours=self.stale_after_hours)
