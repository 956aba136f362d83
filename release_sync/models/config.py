"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from release_sync import __version__

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TREE_ASSET = "tree.txt"
DEFAULT_ARCHIVE_ASSET = "data.zip"
DEFAULT_USER_AGENT = f"release-sync/{__version__}"

_REPOSITORY_REGEX = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_SHA256_REGEX = re.compile(r"^[0-9a-fA-F]{64}$")


class SyncConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Release source
    repository: str
    api_url: str = DEFAULT_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: int = 60

    # Assets
    tree_asset: str = DEFAULT_TREE_ASSET
    archive_asset: str = DEFAULT_ARCHIVE_ASSET
    archive_sha256: str = ""

    # Installation
    install_dir: str
    chunk_size: int = 65536

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    @field_validator("repository")
    @classmethod
    def validate_repository(cls, v: str) -> str:
        """Ensures the repository is given as 'owner/name'."""
        if not _REPOSITORY_REGEX.match(v):
            raise ValueError(
                f"Repository must be given as 'owner/name', but got: '{v}'."
            )
        return v

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("API URL must start with http:// or https://.")
        return v.rstrip("/")

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        # Release hosts reject requests without an identifying agent.
        if not v:
            raise ValueError("User agent cannot be empty.")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 1 or v > 3600:
            raise ValueError("Request timeout must be between 1 and 3600 seconds.")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        """Keeps the streaming buffer bounded."""
        if v < 1024 or v > 8 * 1024 * 1024:
            raise ValueError("Chunk size must be between 1 KB and 8 MB.")
        return v

    @field_validator("archive_sha256")
    @classmethod
    def validate_checksum(cls, v: str) -> str:
        if v and not _SHA256_REGEX.match(v):
            raise ValueError("Archive checksum must be a 64-character SHA-256 hex digest.")
        return v.lower()

    @field_validator("install_dir")
    @classmethod
    def validate_install_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Installation directory cannot be empty.")
        return v

    @model_validator(mode="after")
    def validate_asset_names(self) -> "SyncConfig":
        """Checks that the two required assets are distinct, plain file names."""
        for name in (self.tree_asset, self.archive_asset):
            if not name or "/" in name or "\\" in name:
                raise ValueError(f"Invalid asset name: '{name}'.")
        if self.tree_asset == self.archive_asset:
            raise ValueError("Tree manifest and archive must be different assets.")
        return self

    @property
    def release_url(self) -> str:
        """The 'latest release' resource of the configured repository."""
        return f"{self.api_url}/repos/{self.repository}/releases/latest"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
