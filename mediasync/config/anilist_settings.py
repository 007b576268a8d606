from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnilistHttpSettings(BaseSettings):
    """
    Loads the AniList GraphQL endpoint and transport timeout from .env.
    """

    anilist_api_url: str = Field(default="https://graphql.anilist.co", alias="ANILIST_API_URL")
    anilist_timeout_s: float = Field(default=10.0, alias="ANILIST_TIMEOUT_SECONDS", gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )
