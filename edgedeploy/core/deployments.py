from __future__ import annotations

import logging
import time
from typing import Optional

from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.config import DeploySettings, settings as default_settings
from edgedeploy.core.assets import PreparedAssets, prepare_assets
from edgedeploy.core.associations import DomainAssociationManager
from edgedeploy.core.identifiers import parse_uuid
from edgedeploy.core.verification import Clock, Sleep, poll_until
from edgedeploy.errors import (
    ApiRequestError,
    AssociationFailedError,
    DeploymentFailedError,
    DisassociationError,
    InvalidIdentifierError,
    LogsUnavailableError,
    ReadFailedError,
    SubmissionFailedError,
)
from edgedeploy.models import (
    CreateDeploymentRequest,
    Deployment,
    DeploymentPlan,
    DeploymentState,
    DeploymentStatus,
    UploadedAssetRecord,
)

logger = logging.getLogger(__name__)


class DeploymentReconciler:
    """Turns a desired deployment plan into a created, resolved and routed deployment.

    Deployments are immutable, so create and update run the same protocol:
    validate, prepare assets, submit, fetch build logs, resolve status,
    associate domains. Failures after submission never roll back the remote
    deployment; their messages carry its id instead.
    """

    def __init__(
        self,
        *,
        client: DeployApiClient,
        settings: DeploySettings | None = None,
        associations: DomainAssociationManager | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
    ) -> None:
        resolved = settings or default_settings
        self.client = client
        self.associations = associations or DomainAssociationManager(client=client)
        self.build_timeout_seconds = float(resolved.DEPLOY_BUILD_TIMEOUT_SECONDS)
        self.status_poll_interval_seconds = float(resolved.DEPLOY_STATUS_POLL_INTERVAL_SECONDS)
        self._clock = clock
        self._sleep = sleep

    def create(self, plan: DeploymentPlan) -> DeploymentState:
        return self.reconcile(plan)

    def update(self, plan: DeploymentPlan, current: DeploymentState) -> DeploymentState:
        return self.reconcile(plan, current=current)

    def reconcile(
        self,
        plan: DeploymentPlan,
        *,
        current: Optional[DeploymentState] = None,
    ) -> DeploymentState:
        title = f"Unable to Create Deployment for Project {plan.project_id}"

        project_id = parse_uuid(plan.project_id, kind="project")
        domain_ids = [parse_uuid(raw, kind="domain") for raw in plan.domain_ids]

        uploaded_cache = current.uploaded_assets if (current and plan.incremental_uploads) else None
        prepared = prepare_assets(plan.assets, uploaded_assets=uploaded_cache)

        request = CreateDeploymentRequest(
            entry_point_url=plan.entry_point_url,
            import_map_url=plan.import_map_url,
            lock_file_url=plan.lock_file_url,
            compiler_options=plan.compiler_options,
            assets=prepared.assets,
            env_vars=dict(plan.env_vars),
        )
        try:
            created = self.client.create_deployment(project_id, request)
        except ApiRequestError as exc:
            raise SubmissionFailedError(title, cause=exc) from exc
        deployment_id = created.id
        logger.info(
            "Deployment submitted",
            extra={
                "project_id": project_id,
                "deployment_id": deployment_id,
                "asset_count": len(prepared.assets),
                "reused_asset_count": prepared.reused,
            },
        )

        logs = self._fetch_build_logs(deployment_id)
        deployment = self._resolve_status(deployment_id)

        state = DeploymentState(
            deployment_id=deployment.id,
            project_id=project_id,
            status=deployment.status,
            domain_ids=domain_ids,
            entry_point_url=plan.entry_point_url,
            import_map_url=plan.import_map_url,
            lock_file_url=plan.lock_file_url,
            compiler_options=plan.compiler_options,
            env_vars=dict(plan.env_vars),
        ).overlay(deployment)

        if deployment.status != DeploymentStatus.SUCCESS:
            raise DeploymentFailedError(
                deployment_id=deployment_id,
                status=deployment.status.value,
                logs=logs,
            )

        state = state.model_copy(update={"uploaded_assets": self._uploaded_records(prepared, current)})

        if domain_ids:
            state = self._associate_domains(state, domain_ids)
        return state

    def read(self, state: DeploymentState) -> DeploymentState:
        return state.overlay(self._get_deployment(state.deployment_id))

    def delete(self, state: DeploymentState) -> None:
        """Deployments cannot be deleted remotely; release every associated domain instead."""
        failures: list[tuple[str, Exception]] = []
        for raw_domain_id in state.domain_ids:
            try:
                self.associations.disassociate(raw_domain_id)
            except (InvalidIdentifierError, AssociationFailedError) as exc:
                logger.warning(
                    "Failed to disassociate domain from deployment",
                    extra={"domain_id": raw_domain_id, "deployment_id": state.deployment_id},
                )
                failures.append((raw_domain_id, exc))
        if failures:
            raise DisassociationError(
                f"Unable to Disassociate Domains from the Deployment {state.deployment_id}",
                failures=failures,
                deployment_id=state.deployment_id,
            )

    def _fetch_build_logs(self, deployment_id: str) -> list[str]:
        try:
            lines = self.client.get_build_logs(deployment_id)
        except ApiRequestError as exc:
            raise LogsUnavailableError(
                "Deployment Initiated, but Failed to Get Build Logs",
                cause=exc,
                deployment_id=deployment_id,
            ) from exc
        return [line.render() for line in lines]

    def _get_deployment(self, deployment_id: str) -> Deployment:
        try:
            return self.client.get_deployment(deployment_id)
        except ApiRequestError as exc:
            raise ReadFailedError(
                "Failed to Get Deployment Details",
                cause=exc,
                deployment_id=deployment_id,
            ) from exc

    def _resolve_status(self, deployment_id: str) -> Deployment:
        deployment = self._get_deployment(deployment_id)
        if deployment.status != DeploymentStatus.PENDING:
            return deployment

        latest = {"deployment": deployment}

        def settled() -> bool:
            latest["deployment"] = self._get_deployment(deployment_id)
            return latest["deployment"].status != DeploymentStatus.PENDING

        logger.info("Waiting for deployment to settle", extra={"deployment_id": deployment_id})
        poll_until(
            settled,
            timeout_seconds=self.build_timeout_seconds,
            interval_seconds=self.status_poll_interval_seconds,
            clock=self._clock,
            sleep=self._sleep,
        )
        return latest["deployment"]

    def _uploaded_records(
        self,
        prepared: PreparedAssets,
        current: Optional[DeploymentState],
    ) -> dict[str, UploadedAssetRecord]:
        records = dict(current.uploaded_assets) if current else {}
        records.update(prepared.uploaded_records())
        return records

    def _associate_domains(self, state: DeploymentState, domain_ids: list[str]) -> DeploymentState:
        failures: list[tuple[str, Exception]] = []
        for domain_id in domain_ids:
            try:
                self.associations.associate(domain_id, state.deployment_id)
            except AssociationFailedError as exc:
                logger.warning(
                    "Failed to associate domain with deployment",
                    extra={"domain_id": domain_id, "deployment_id": state.deployment_id},
                )
                failures.append((domain_id, exc))

        # Pick up the authoritative domain list, including partial results.
        state = self.read(state)
        if failures:
            raise AssociationFailedError(
                f"Unable to Associate Domains with the Deployment {state.deployment_id}",
                failures=failures,
                state=state,
                deployment_id=state.deployment_id,
            )
        return state
