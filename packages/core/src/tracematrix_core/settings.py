"""Tracker connection settings loaded from the environment."""

from pydantic import field_validator
from pydantic_settings import BaseSettings

from tracematrix_core.errors import ConfigurationError


class Settings(BaseSettings):
    """GitHub tracker settings loaded from environment variables."""

    GITHUB_TOKEN: str = ""
    GITHUB_OWNER: str = ""
    GITHUB_REPO: str = ""
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT_SECONDS: float = 30.0

    @field_validator("GITHUB_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def repository(self) -> str:
        return f"{self.GITHUB_OWNER}/{self.GITHUB_REPO}"

    def require_repository(self) -> tuple[str, str]:
        """Return (owner, repo) or raise ConfigurationError if either is unset."""
        missing = [
            name
            for name, value in (("GITHUB_OWNER", self.GITHUB_OWNER), ("GITHUB_REPO", self.GITHUB_REPO))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing tracker configuration: {', '.join(missing)} must be set"
            )
        return self.GITHUB_OWNER, self.GITHUB_REPO

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
