from __future__ import annotations

import logging
from typing import Optional

from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.config import DeploySettings, settings as default_settings
from edgedeploy.core.identifiers import parse_uuid
from edgedeploy.errors import ApiRequestError, ReadFailedError, SubmissionFailedError
from edgedeploy.models import Organization, ProjectState

logger = logging.getLogger(__name__)


class ProjectManager:
    def __init__(self, *, client: DeployApiClient, settings: DeploySettings | None = None) -> None:
        self.client = client
        self.settings = settings or default_settings

    def organization(self) -> Organization:
        organization_id = self.settings.require_organization_id()
        try:
            return self.client.get_organization(organization_id)
        except ApiRequestError as exc:
            raise ReadFailedError(f"Unable to Read Organization {organization_id}", cause=exc) from exc

    def create(self, *, name: Optional[str] = None, description: Optional[str] = None) -> ProjectState:
        organization_id = self.settings.require_organization_id()
        try:
            project = self.client.create_project(organization_id, name=name, description=description)
        except ApiRequestError as exc:
            raise SubmissionFailedError(f"Unable to Create Project {name or ''}".rstrip(), cause=exc) from exc
        logger.info("Project created", extra={"project_id": project.id, "project_name": project.name})
        return ProjectState.from_project(project)

    def read(self, project_id: str) -> ProjectState:
        project_uuid = parse_uuid(project_id, kind="project")
        try:
            project = self.client.get_project(project_uuid)
        except ApiRequestError as exc:
            raise ReadFailedError(f"Unable to Read Project {project_uuid}", cause=exc) from exc
        return ProjectState.from_project(project)

    def rename(self, project_id: str, name: str) -> ProjectState:
        project_uuid = parse_uuid(project_id, kind="project")
        try:
            project = self.client.update_project(project_uuid, name=name)
        except ApiRequestError as exc:
            raise SubmissionFailedError(f"Unable to Update Project {project_uuid}", cause=exc) from exc
        logger.info("Project renamed", extra={"project_id": project.id, "project_name": project.name})
        return ProjectState.from_project(project)

    def delete(self, project_id: str) -> None:
        project_uuid = parse_uuid(project_id, kind="project")
        try:
            self.client.delete_project(project_uuid)
        except ApiRequestError as exc:
            raise SubmissionFailedError(f"Unable to Delete Project {project_uuid}", cause=exc) from exc
        logger.info("Project deleted", extra={"project_id": project_uuid})
