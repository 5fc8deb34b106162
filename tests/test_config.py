import pytest
from pydantic import ValidationError

from edgedeploy.config import DEFAULT_API_HOST, DeploySettings
from edgedeploy.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "DEPLOY_API_HOST",
        "DEPLOY_API_TOKEN",
        "DEPLOY_ORGANIZATION_ID",
        "DEPLOY_BUILD_TIMEOUT_SECONDS",
        "DOMAIN_VERIFICATION_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = DeploySettings(_env_file=None)

    assert settings.host == DEFAULT_API_HOST
    assert settings.token is None
    assert settings.organization_id is None
    assert settings.DEPLOY_BUILD_TIMEOUT_SECONDS == 600
    assert settings.DOMAIN_VERIFICATION_TIMEOUT_SECONDS == 600
    assert settings.DOMAIN_VERIFICATION_POLL_INTERVAL_SECONDS == 20


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("DEPLOY_API_HOST", "https://deploy.internal.test/v1/")
    monkeypatch.setenv("DEPLOY_API_TOKEN", "env-token")
    monkeypatch.setenv("DEPLOY_ORGANIZATION_ID", "FFFFFFFF-0000-0000-0000-000000000001")

    settings = DeploySettings(_env_file=None)

    assert settings.host == "https://deploy.internal.test/v1"
    assert settings.require_token() == "env-token"
    assert settings.require_organization_id() == "ffffffff-0000-0000-0000-000000000001"


def test_explicit_values_win_over_environment(monkeypatch):
    monkeypatch.setenv("DEPLOY_API_TOKEN", "env-token")

    settings = DeploySettings(_env_file=None, DEPLOY_API_TOKEN="explicit-token")

    assert settings.token == "explicit-token"


def test_env_file_is_read(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("DEPLOY_API_TOKEN=file-token\nDEPLOY_BUILD_TIMEOUT_SECONDS=120\n")

    settings = DeploySettings(_env_file=env_file)

    assert settings.token == "file-token"
    assert settings.DEPLOY_BUILD_TIMEOUT_SECONDS == 120


def test_missing_values_raise_config_error():
    settings = DeploySettings(_env_file=None, DEPLOY_API_TOKEN="  ")

    with pytest.raises(ConfigError, match="DEPLOY_API_TOKEN"):
        settings.require_token()
    with pytest.raises(ConfigError, match="DEPLOY_ORGANIZATION_ID"):
        settings.require_organization_id()


@pytest.mark.parametrize(
    "overrides",
    [
        {"DEPLOY_ORGANIZATION_ID": "not-a-uuid"},
        {"DEPLOY_API_HOST": "ftp://api.example.test"},
        {"DOMAIN_VERIFICATION_TIMEOUT_SECONDS": 0},
        {"DEPLOY_STATUS_POLL_INTERVAL_SECONDS": -1},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        DeploySettings(_env_file=None, **overrides)
