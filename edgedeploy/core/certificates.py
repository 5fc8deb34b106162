from __future__ import annotations

import logging

from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.core.identifiers import parse_uuid
from edgedeploy.errors import (
    ApiRequestError,
    CertificateProvisioningError,
    ReadFailedError,
    SubmissionFailedError,
)
from edgedeploy.models import CertificateState, ProvisioningState

logger = logging.getLogger(__name__)


class CertificateProvisioner:
    def __init__(self, *, client: DeployApiClient) -> None:
        self.client = client

    def provision(self, domain_id: str) -> CertificateState:
        """Request TLS certificates for a verified domain and report the outcome.

        Raises ``CertificateProvisioningError`` unless the domain reports ``success``
        right after the request. The error carries the observed status.
        """
        domain_uuid = parse_uuid(domain_id, kind="domain")
        try:
            self.client.provision_certificates(domain_uuid)
        except ApiRequestError as exc:
            raise SubmissionFailedError(
                f"Unable to Provision Certificates for Domain {domain_uuid}",
                cause=exc,
                domain_id=domain_uuid,
            ) from exc
        logger.info("Certificate provisioning requested", extra={"domain_id": domain_uuid})

        state = self.read(domain_uuid)
        if state.provisioning_status != ProvisioningState.SUCCESS:
            raise CertificateProvisioningError(
                domain_id=domain_uuid,
                status=state.provisioning_status.value,
            )
        return state

    def read(self, domain_id: str) -> CertificateState:
        domain_uuid = parse_uuid(domain_id, kind="domain")
        try:
            domain = self.client.get_domain(domain_uuid)
        except ApiRequestError as exc:
            raise ReadFailedError(
                f"Unable to Get Provisioning Status of Domain {domain_uuid}",
                cause=exc,
                domain_id=domain_uuid,
            ) from exc
        status = domain.provisioning_status.state if domain.provisioning_status else ProvisioningState.UNKNOWN
        return CertificateState(domain_id=domain_uuid, provisioning_status=status)
