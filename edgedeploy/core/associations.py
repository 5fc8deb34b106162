from __future__ import annotations

import logging
from typing import Optional

from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.core.identifiers import parse_uuid
from edgedeploy.core.verification import DomainVerifier
from edgedeploy.errors import ApiRequestError, AssociationFailedError
from edgedeploy.models import AssociationState

logger = logging.getLogger(__name__)


class DomainAssociationManager:
    """Owns the domain -> deployment routing edge."""

    def __init__(self, *, client: DeployApiClient, verifier: DomainVerifier | None = None) -> None:
        self.client = client
        self.verifier = verifier or DomainVerifier(client=client)

    def associate(self, domain_id: str, deployment_id: Optional[str]) -> None:
        """Bind ``domain_id`` to ``deployment_id``; ``None`` clears the binding."""
        domain_uuid = parse_uuid(domain_id, kind="domain")
        try:
            self.client.update_domain_association(domain_uuid, deployment_id=deployment_id)
        except ApiRequestError as exc:
            if deployment_id:
                title = f"Unable to Associate the Domain {domain_uuid} with the Deployment {deployment_id}"
            else:
                title = f"Unable to Disassociate the Domain {domain_uuid}"
            raise AssociationFailedError(title, cause=exc, domain_id=domain_uuid) from exc
        logger.info(
            "Domain association updated",
            extra={"domain_id": domain_uuid, "deployment_id": deployment_id},
        )

    def disassociate(self, domain_id: str) -> None:
        self.associate(domain_id, None)

    # Standalone association records

    def create_association(self, domain_id: str, deployment_id: str) -> AssociationState:
        # Records ownership as verified/associated without binding a deployment.
        self.associate(domain_id, None)
        return AssociationState(
            domain_id=parse_uuid(domain_id, kind="domain"),
            deployment_id=deployment_id,
            verified=True,
        )

    def read_association(self, state: AssociationState) -> AssociationState:
        return state.model_copy(update={"verified": self.verifier.is_verified(state.domain_id)})

    def update_association(
        self,
        state: AssociationState,
        *,
        timeout_seconds: float | None = None,
    ) -> AssociationState:
        self.verifier.wait_until_verified(state.domain_id, timeout_seconds=timeout_seconds)
        return state.model_copy(update={"verified": True})

    def delete_association(self, state: AssociationState) -> None:
        logger.debug("Association record removed locally", extra={"domain_id": state.domain_id})
