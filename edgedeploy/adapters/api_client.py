from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from edgedeploy.config import DeploySettings, settings as default_settings
from edgedeploy.errors import (
    TRACE_ID_HEADER,
    ApiRequestError,
    ApiResponseError,
    ApiTransportError,
)
from edgedeploy.models import (
    BuildLogLine,
    CreateDeploymentRequest,
    Deployment,
    Domain,
    Organization,
    Project,
)

logger = logging.getLogger(__name__)

_BUILD_LOGS_ADAPTER = TypeAdapter(list[BuildLogLine])


class DeployApiClient:
    """Thin synchronous client for the deployment control-plane API."""

    def __init__(
        self,
        *,
        settings: DeploySettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        resolved = settings or default_settings
        self.base_url = resolved.host
        self.token = resolved.require_token()
        self.timeout_seconds = float(resolved.DEPLOY_REQUEST_TIMEOUT_SECONDS)
        self.build_timeout_seconds = max(self.timeout_seconds, float(resolved.DEPLOY_BUILD_TIMEOUT_SECONDS))
        self._transport = transport

    # Organization and projects

    def get_organization(self, organization_id: str) -> Organization:
        body = self._request("GET", f"/organizations/{organization_id}")
        return self._parse_model(Organization, body, context="get_organization")

    def create_project(
        self,
        organization_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        payload: dict[str, Any] = {}
        if name is not None:
            payload["name"] = name
        if description is not None:
            payload["description"] = description
        body = self._request("POST", f"/organizations/{organization_id}/projects", json_payload=payload)
        return self._parse_model(Project, body, context="create_project")

    def get_project(self, project_id: str) -> Project:
        body = self._request("GET", f"/projects/{project_id}")
        return self._parse_model(Project, body, context="get_project")

    def update_project(self, project_id: str, *, name: str) -> Project:
        body = self._request("PATCH", f"/projects/{project_id}", json_payload={"name": name})
        return self._parse_model(Project, body, context="update_project")

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"/projects/{project_id}", expect_body=False)

    # Deployments

    def create_deployment(self, project_id: str, request: CreateDeploymentRequest) -> Deployment:
        body = self._request(
            "POST",
            f"/projects/{project_id}/deployments",
            json_payload=request.to_payload(),
        )
        return self._parse_model(Deployment, body, context="create_deployment")

    def get_deployment(self, deployment_id: str) -> Deployment:
        body = self._request("GET", f"/deployments/{deployment_id}")
        return self._parse_model(Deployment, body, context="get_deployment")

    def get_build_logs(self, deployment_id: str) -> list[BuildLogLine]:
        # Responds only once the build has finished.
        body = self._request(
            "GET",
            f"/deployments/{deployment_id}/build_logs",
            timeout=self.build_timeout_seconds,
        )
        try:
            return _BUILD_LOGS_ADAPTER.validate_python(body)
        except ValidationError as exc:
            raise ApiRequestError(f"API payload validation failed for get_build_logs: {exc}") from exc

    # Domains

    def create_domain(self, organization_id: str, *, domain: str) -> Domain:
        body = self._request(
            "POST",
            f"/organizations/{organization_id}/domains",
            json_payload={"domain": domain},
        )
        return self._parse_model(Domain, body, context="create_domain")

    def get_domain(self, domain_id: str) -> Domain:
        body = self._request("GET", f"/domains/{domain_id}")
        return self._parse_model(Domain, body, context="get_domain")

    def delete_domain(self, domain_id: str) -> None:
        self._request("DELETE", f"/domains/{domain_id}", expect_body=False)

    def update_domain_association(self, domain_id: str, *, deployment_id: Optional[str]) -> None:
        self._request(
            "PATCH",
            f"/domains/{domain_id}",
            json_payload={"deploymentId": deployment_id},
            expect_body=False,
        )

    def verify_domain(self, domain_id: str) -> None:
        self._request("POST", f"/domains/{domain_id}/verify", expect_body=False)

    def provision_certificates(self, domain_id: str) -> None:
        self._request("POST", f"/domains/{domain_id}/certificates/provision", expect_body=False)

    # Plumbing

    def _client(self, *, timeout: float) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=self._transport,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_payload: dict[str, Any] | None = None,
        expect_body: bool = True,
        timeout: float | None = None,
    ) -> Any:
        try:
            with self._client(timeout=self.timeout_seconds if timeout is None else timeout) as client:
                resp = client.request(
                    method=method,
                    url=path,
                    json=json_payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            raise ApiTransportError(f"API request {method} {path} failed: {exc}") from exc

        logger.debug(
            "API request completed",
            extra={"method": method, "path": path, "status_code": resp.status_code},
        )
        if resp.status_code >= 400:
            self._raise_request_error(resp)

        if not expect_body:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiRequestError(f"API returned non-JSON payload for {method} {path}") from exc

    def _raise_request_error(self, resp: httpx.Response) -> None:
        trace_id = resp.headers.get(TRACE_ID_HEADER) or None
        raise ApiResponseError(status_code=resp.status_code, body=resp.text, trace_id=trace_id)

    def _parse_model(self, model_cls: type[BaseModel], payload: Any, *, context: str):
        if not isinstance(payload, dict):
            raise ApiRequestError(f"API returned non-object JSON payload for {context}")
        try:
            return model_cls.model_validate(payload)
        except ValidationError as exc:
            raise ApiRequestError(f"API payload validation failed for {context}: {exc}") from exc
