from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class MediaDbSettings(BaseSettings):
    """
    Connection settings for the media cache database.

    MEDIA_DATABASE_URL wins when set (any SQLAlchemy URL, e.g. sqlite:///media.db).
    Otherwise the URL is assembled from the MEDIA_DB_* parts for PostgreSQL.
    """

    database_url: str | None = Field(default=None, alias="MEDIA_DATABASE_URL")

    db_user: str | None = Field(default=None, alias="MEDIA_DB_USER")
    db_password: str | None = Field(default=None, alias="MEDIA_DB_PASSWORD")
    db_host: str = Field(default="localhost", alias="MEDIA_DB_HOST")
    db_port: int = Field(default=5432, alias="MEDIA_DB_PORT")
    db_name: str = Field(default="media", alias="MEDIA_DB_NAME")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,  # Allows us to still use db_user=xxx in Python code
    )

    @property
    def url(self) -> str:
        if self.database_url:
            return self.database_url

        if not self.db_user or self.db_password is None:
            raise ValueError("MEDIA_DB_USER and MEDIA_DB_PASSWORD are required without MEDIA_DATABASE_URL")

        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"
