"""
Pydantic models for cluster and instance configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from es_provision.exceptions import ConfigurationError
from es_provision.models.artifact import Version

DEFAULT_DOWNLOAD_TIMEOUT = 600.0


def check_version(v: str) -> str:
    """Ensures the version can be parsed as major.minor.patch."""
    try:
        Version.parse(v)
    except ConfigurationError as e:
        raise ValueError(str(e)) from e
    return v


class ClusterConfig(BaseModel):
    """Settings shared by every instance of a cluster. Immutable per run."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    version: str
    flavour: str = ""
    download_url: str | None = None
    path_conf: Path | None = None

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        return check_version(v)

    @field_validator("download_url", "path_conf", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treats blank strings coming from INI files or CLI flags as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def parsed_version(self) -> Version:
        return Version.parse(self.version)


class InstanceConfig(BaseModel):
    """One managed instance; ``base_dir`` is its final installation root."""

    model_config = ConfigDict(frozen=True)

    base_dir: Path
    cluster: ClusterConfig
    instance_id: int = 0


class ProvisionSettings(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    version: str
    flavour: str = ""
    download_url: str = ""
    path_conf: str = ""
    repository_dir: str = ""
    download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT
    instance_count: int = 1

    # Internal field not loaded from the INI file
    config_path: str = Field(..., repr=False)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        return check_version(v)

    @field_validator("download_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensures downloads are always bounded."""
        if v <= 0:
            raise ValueError("Download timeout must be a positive number of seconds.")
        return v

    @field_validator("instance_count")
    @classmethod
    def validate_instance_count(cls, v: int) -> int:
        """Ensures a reasonable number of instances."""
        if v < 1 or v > 32:
            raise ValueError("Instance count must be between 1 and 32.")
        return v

    def cluster_config(self) -> ClusterConfig:
        """Builds the immutable per-run cluster configuration."""
        return ClusterConfig(
            version=self.version,
            flavour=self.flavour,
            download_url=self.download_url,
            path_conf=self.path_conf,
        )

    def repository_path(self) -> Path:
        """The artifact repository root, defaulting next to the config file."""
        if self.repository_dir:
            return Path(self.repository_dir).expanduser()
        return Path(self.config_path) / "repository"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return {key for key in cls.model_fields if key != "config_path"}
