import pytest
from pydantic import ValidationError

from es_provision.exceptions import ConfigurationError
from es_provision.models.config import ClusterConfig, ProvisionSettings
from es_provision.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "es-provision" / "config.ini"


def test_cli_options_are_enough_without_a_file(config_file):
    settings = ConfigManager(config_file).load_config({"version": "7.1.0"})

    assert settings.version == "7.1.0"
    assert settings.flavour == ""
    assert settings.instance_count == 1
    assert settings.repository_path() == config_file.parent / "repository"


def test_saved_config_round_trips_templates(config_file):
    manager = ConfigManager(config_file)
    manager.save_new_config(
        {
            "version": "7.1.0",
            "flavour": "default",
            "download_url": "https://mirror.local/es/%s",
        }
    )

    settings = ConfigManager(config_file).load_config()

    assert settings.flavour == "default"
    assert settings.download_url == "https://mirror.local/es/%s"
    assert settings.cluster_config().download_url == "https://mirror.local/es/%s"


def test_cli_options_override_the_file(config_file):
    ConfigManager(config_file).save_new_config({"version": "6.8.0"})

    settings = ConfigManager(config_file).load_config(
        {"version": "7.1.0", "flavour": None}
    )

    assert settings.version == "7.1.0"


def test_blank_optional_settings_become_unset(config_file):
    ConfigManager(config_file).save_new_config({"version": "6.8.0"})

    cluster = ConfigManager(config_file).load_config().cluster_config()

    assert cluster.download_url is None
    assert cluster.path_conf is None


@pytest.mark.parametrize(
    "options",
    [
        {},
        {"version": "latest"},
        {"version": "7.1.0", "instance_count": 0},
        {"version": "7.1.0", "download_timeout": 0},
    ],
)
def test_invalid_settings_raise_configuration_error(config_file, options):
    with pytest.raises(ConfigurationError):
        ConfigManager(config_file).load_config(options)


def test_unparseable_file_is_a_configuration_error(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("[DEFAULT]\ndownload_url = https://mirror/%s\n")

    with pytest.raises(ConfigurationError):
        ConfigManager(config_file).load_config()


def test_repository_path_without_full_config(config_file, tmp_path):
    assert ConfigManager(config_file).load_repository_path() == (
        config_file.parent / "repository"
    )
    ConfigManager(config_file).save_new_config(
        {"version": "7.1.0", "repository_dir": str(tmp_path / "cache")}
    )
    assert ConfigManager(config_file).load_repository_path() == tmp_path / "cache"


@pytest.mark.parametrize("model", [ClusterConfig, ProvisionSettings])
def test_both_models_share_version_validation(model):
    extra = {"config_path": "."} if model is ProvisionSettings else {}

    assert model(version="7.1.0-SNAPSHOT", **extra).version == "7.1.0-SNAPSHOT"
    with pytest.raises(ValidationError, match="7.x"):
        model(version="7.x", **extra)
