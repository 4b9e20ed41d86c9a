"""
Manages loading and validation of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from es_provision.exceptions import ConfigurationError
from es_provision.models.config import DEFAULT_DOWNLOAD_TIMEOUT, ProvisionSettings

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser()

    def load_config(
        self, cli_options: dict[str, Any] | None = None
    ) -> ProvisionSettings:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing file is not an error as long as the CLI supplies a version.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated ProvisionSettings object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
                config_from_file = self._get_config_as_dict()
            except (configparser.Error, ValueError) as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e
        else:
            log.debug(f"No configuration file at '{self.config_file_path}'.")

        if cli_options:
            config_from_file.update(
                {k: v for k, v in cli_options.items() if v is not None}
            )

        if not config_from_file.get("version"):
            raise ConfigurationError(
                "No Elasticsearch version configured. Pass --es-version or run "
                "'es-provision init <VERSION>' first."
            )

        try:
            config_dir = self.config_file_path.parent
            return ProvisionSettings(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser()
        config["DEFAULT"] = {}

        defaults = ProvisionSettings.model_construct(
            version="", download_timeout=DEFAULT_DOWNLOAD_TIMEOUT, instance_count=1
        )
        for key in sorted(ProvisionSettings.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            if value is None:
                continue
            # configparser uses % for interpolation, so we must escape it
            config["DEFAULT"][key] = str(value).replace("%", "%%")

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        return {
            "version": section.get("version", ""),
            "flavour": section.get("flavour", ""),
            "download_url": section.get("download_url", ""),
            "path_conf": section.get("path_conf", ""),
            "repository_dir": section.get("repository_dir", ""),
            "download_timeout": section.getfloat(
                "download_timeout", DEFAULT_DOWNLOAD_TIMEOUT
            ),
            "instance_count": section.getint("instance_count", 1),
        }

    def load_repository_path(self) -> Path:
        """Returns the repository root without requiring a complete configuration."""
        repository_dir = ""
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
                repository_dir = self._parser["DEFAULT"].get("repository_dir", "")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e
        if repository_dir.strip():
            return Path(repository_dir.strip()).expanduser()
        return self.config_file_path.parent / "repository"
