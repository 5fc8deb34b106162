import os
import sys
from pathlib import Path
from typing import Optional

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

for _name in list(os.environ):
    if _name.startswith(("DEPLOY_", "DOMAIN_VERIFICATION_")):
        del os.environ[_name]

from edgedeploy.config import DeploySettings  # noqa: E402
from edgedeploy.errors import ApiResponseError  # noqa: E402
from edgedeploy.models import BuildLogLine, Deployment, Domain, Organization, Project  # noqa: E402

ORG_ID = "00000000-0000-0000-0000-000000000001"
PROJECT_ID = "11111111-1111-1111-1111-111111111111"
DEPLOYMENT_ID = "dep-abc123"
DOMAIN_ID = "22222222-2222-2222-2222-222222222222"
OTHER_DOMAIN_ID = "33333333-3333-3333-3333-333333333333"
TIMESTAMP = "2024-03-01T12:00:00Z"

FULL_DNS_RECORDS = [
    {"type": "A", "name": "@", "content": "34.120.54.55"},
    {"type": "AAAA", "name": "@", "content": "2600:1901:0:6d85::"},
    {"type": "CNAME", "name": "_acme-challenge", "content": "example.com.acme.deno.dev."},
]


def api_error(status_code: int = 500, body: str = "boom", trace_id: Optional[str] = "ray-123") -> ApiResponseError:
    return ApiResponseError(status_code=status_code, body=body, trace_id=trace_id)


def make_domain(
    domain_id: str = DOMAIN_ID,
    *,
    name: str = "example.com",
    dns_records: Optional[list[dict]] = None,
    provisioning_status: Optional[dict] = None,
) -> Domain:
    payload = {
        "id": domain_id,
        "organizationId": ORG_ID,
        "domain": name,
        "token": "verify-token",
        "isValidated": False,
        "dnsRecords": FULL_DNS_RECORDS if dns_records is None else dns_records,
        "createdAt": TIMESTAMP,
        "updatedAt": TIMESTAMP,
    }
    if provisioning_status is not None:
        payload["provisioningStatus"] = provisioning_status
    return Domain.model_validate(payload)


class FakeClock:
    """Stands in for ``time.monotonic``; ``sleep`` advances it instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeDeployClient:
    def __init__(self) -> None:
        self.errors: dict[str, Exception] = {}
        self.association_errors: dict[str, Exception] = {}
        self.verify_outcomes: list[Optional[Exception]] = []
        self.deployment_statuses: list[str] = ["success"]
        self.build_logs = [BuildLogLine(level="info", message="Build succeeded")]
        self.domains: dict[str, Domain] = {}
        self.created_requests: list = []
        self.association_calls: list[tuple[str, Optional[str]]] = []
        self.associated: dict[str, Optional[str]] = {}
        self.verify_calls: list[str] = []
        self.calls: list[tuple] = []

    def _maybe_fail(self, name: str) -> None:
        if name in self.errors:
            raise self.errors[name]

    def _deployment(self, status: str) -> Deployment:
        bound = [domain_id for domain_id, dep in self.associated.items() if dep == DEPLOYMENT_ID]
        return Deployment.model_validate(
            {
                "id": DEPLOYMENT_ID,
                "projectId": PROJECT_ID,
                "status": status,
                "domains": bound,
                "createdAt": TIMESTAMP,
                "updatedAt": TIMESTAMP,
            }
        )

    # Deployments

    def create_deployment(self, project_id, request):
        self._maybe_fail("create_deployment")
        self.created_requests.append((project_id, request))
        return self._deployment("pending")

    def get_build_logs(self, deployment_id):
        self._maybe_fail("get_build_logs")
        return list(self.build_logs)

    def get_deployment(self, deployment_id):
        self._maybe_fail("get_deployment")
        self.calls.append(("get_deployment", deployment_id))
        status = self.deployment_statuses.pop(0) if len(self.deployment_statuses) > 1 else self.deployment_statuses[0]
        return self._deployment(status)

    # Domains

    def update_domain_association(self, domain_id, *, deployment_id):
        self.association_calls.append((domain_id, deployment_id))
        if domain_id in self.association_errors:
            raise self.association_errors[domain_id]
        self.associated[domain_id] = deployment_id

    def verify_domain(self, domain_id):
        self.verify_calls.append(domain_id)
        outcome = self.verify_outcomes.pop(0) if self.verify_outcomes else None
        if outcome is not None:
            raise outcome

    def create_domain(self, organization_id, *, domain):
        self._maybe_fail("create_domain")
        self.calls.append(("create_domain", organization_id, domain))
        return make_domain(OTHER_DOMAIN_ID, name=domain)

    def get_domain(self, domain_id):
        self._maybe_fail("get_domain")
        return self.domains.get(domain_id) or make_domain(domain_id)

    def delete_domain(self, domain_id):
        self._maybe_fail("delete_domain")
        self.calls.append(("delete_domain", domain_id))

    def provision_certificates(self, domain_id):
        self._maybe_fail("provision_certificates")
        self.calls.append(("provision_certificates", domain_id))

    # Projects

    def get_organization(self, organization_id):
        self._maybe_fail("get_organization")
        return Organization(id=organization_id, name="Acme")

    def _project(self, project_id: str, name: str) -> Project:
        return Project.model_validate(
            {"id": project_id, "name": name, "createdAt": TIMESTAMP, "updatedAt": TIMESTAMP}
        )

    def create_project(self, organization_id, *, name=None, description=None):
        self._maybe_fail("create_project")
        self.calls.append(("create_project", organization_id, name, description))
        return self._project(PROJECT_ID, name or "generated-name-42")

    def get_project(self, project_id):
        self._maybe_fail("get_project")
        return self._project(project_id, "my-project")

    def update_project(self, project_id, *, name):
        self._maybe_fail("update_project")
        return self._project(project_id, name)

    def delete_project(self, project_id):
        self._maybe_fail("delete_project")
        self.calls.append(("delete_project", project_id))


@pytest.fixture()
def fake_client() -> FakeDeployClient:
    return FakeDeployClient()


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def org_settings() -> DeploySettings:
    return DeploySettings(_env_file=None, DEPLOY_ORGANIZATION_ID=ORG_ID)
