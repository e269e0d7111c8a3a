from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    DATA_DIR: Path = Field(Path("data"), description="Directory holding the workspace database")
    DB_NAME: str = Field("boardide.db", description="SQLite file name inside DATA_DIR")

    STORAGE_PREFIX: str = Field("EditorStorage:", description="Key prefix for stored documents")
    OPEN_FILE_KEY: str = Field(
        "editorOpenFileId",
        description="Key used to hand the next document to open over to the editor page"
    )
    SHARE_PARAM_NAME: str = Field("data", description="Query parameter carrying a share token")

    AUTOSAVE_DELAY_MS: int = Field(2000, ge=0, description="Autosave debounce window")
    SUPPORTED_BOARD_VERSIONS: List[str] = Field(
        default_factory=lambda: ["0.3.1", "0.3.0", "0.2.4"],
        description="Rendering library releases the editor can load, newest first"
    )
    BOARD_LIBRARY_URL: str = Field(
        "https://cdn.jsdelivr.net/npm/board-lib@{version}/dist/board.min.js",
        description="Download location of a library release"
    )
    LIBRARY_TIMEOUT_SECONDS: float = Field(15.0, description="Library download timeout")

    DEFAULT_EXTENSION: str = Field(".js", description="Extension added to exported names without one")
    MAX_RECENT_FILES: int = Field(5, description="Entries shown in the home page recent list")
    MAX_CONTENT_BYTES: int = Field(512 * 1024, description="Largest document accepted by the store")
    STORAGE_QUOTA_BYTES: int = Field(
        5 * 1024 * 1024,
        description="Capacity of the key-value store (0 disables the limit)"
    )

    ALERT_DURATION_MS: int = Field(3000, description="Default lifetime of a notification")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    @field_validator("SUPPORTED_BOARD_VERSIONS")
    @classmethod
    def _at_least_one_version(cls, value: List[str]) -> List[str]:
        versions = [v.strip() for v in value if v and v.strip()]
        if not versions:
            raise ValueError("SUPPORTED_BOARD_VERSIONS must list at least one version")
        return versions

    @property
    def newest_board_version(self) -> str:
        return self.SUPPORTED_BOARD_VERSIONS[0]

    @property
    def db_url(self) -> str:
        return f"sqlite:///{self.DATA_DIR / self.DB_NAME}"

# Singleton instance
settings = Settings()
