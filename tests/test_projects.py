import pytest

from conftest import ORG_ID, PROJECT_ID, api_error
from edgedeploy.config import DeploySettings
from edgedeploy.core.projects import ProjectManager
from edgedeploy.errors import ConfigError, InvalidIdentifierError, ReadFailedError, SubmissionFailedError


def test_create_project_in_configured_organization(fake_client, org_settings):
    manager = ProjectManager(client=fake_client, settings=org_settings)

    state = manager.create(name="my-project", description="Landing pages")

    assert fake_client.calls == [("create_project", ORG_ID, "my-project", "Landing pages")]
    assert state.id == PROJECT_ID
    assert state.name == "my-project"
    assert state.updated_at == "2024-03-01T12:00:00Z"


def test_create_project_lets_the_server_pick_a_name(fake_client, org_settings):
    state = ProjectManager(client=fake_client, settings=org_settings).create()

    assert state.name == "generated-name-42"


def test_rename_and_read_project(fake_client, org_settings):
    manager = ProjectManager(client=fake_client, settings=org_settings)

    assert manager.rename(PROJECT_ID, "renamed").name == "renamed"
    assert manager.read(PROJECT_ID).name == "my-project"


def test_delete_project_validates_identifier(fake_client, org_settings):
    with pytest.raises(InvalidIdentifierError, match="Could not parse project ID nope"):
        ProjectManager(client=fake_client, settings=org_settings).delete("nope")

    assert fake_client.calls == []


def test_project_errors_are_wrapped(fake_client, org_settings):
    fake_client.errors["get_project"] = api_error(404)
    fake_client.errors["update_project"] = api_error(409)

    manager = ProjectManager(client=fake_client, settings=org_settings)
    with pytest.raises(ReadFailedError, match=f"Unable to Read Project {PROJECT_ID}"):
        manager.read(PROJECT_ID)
    with pytest.raises(SubmissionFailedError, match="status code 409"):
        manager.rename(PROJECT_ID, "taken")


def test_organization_lookup(fake_client, org_settings):
    organization = ProjectManager(client=fake_client, settings=org_settings).organization()

    assert organization.id == ORG_ID
    assert organization.name == "Acme"


def test_organization_comes_from_the_environment(fake_client, monkeypatch):
    monkeypatch.setenv("DEPLOY_ORGANIZATION_ID", ORG_ID.upper())

    state = ProjectManager(client=fake_client, settings=DeploySettings(_env_file=None)).create(name="site")

    assert fake_client.calls == [("create_project", ORG_ID, "site", None)]
    assert state.name == "site"


def test_missing_organization_fails_before_any_request(fake_client):
    manager = ProjectManager(client=fake_client, settings=DeploySettings(_env_file=None))

    with pytest.raises(ConfigError, match="Organization ID is required"):
        manager.create(name="site")
    with pytest.raises(ConfigError, match="DEPLOY_ORGANIZATION_ID"):
        manager.organization()

    assert fake_client.calls == []
