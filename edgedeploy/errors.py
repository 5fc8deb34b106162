from __future__ import annotations

from typing import Any

TRACE_ID_HEADER = "x-deno-ray"
UNKNOWN_TRACE_ID = "<unknown>"


class DeployError(RuntimeError):
    """Base class for every failure surfaced by edgedeploy."""


class ConfigError(DeployError):
    pass


class InvalidIdentifierError(DeployError):
    def __init__(self, *, kind: str, value: Any, reason: str) -> None:
        super().__init__(f"Could not parse {kind} ID {value}: {reason}")
        self.kind = kind
        self.value = value


# HTTP layer


class ApiRequestError(DeployError):
    status_code: int | None = None
    trace_id: str | None = None

    @property
    def detail(self) -> str:
        return str(self)


class ApiTransportError(ApiRequestError):
    pass


class ApiResponseError(ApiRequestError):
    def __init__(self, *, status_code: int, body: str, trace_id: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        self.trace_id = trace_id or UNKNOWN_TRACE_ID
        super().__init__(self.detail)

    @property
    def detail(self) -> str:
        return (
            f"API request errored with status code {self.status_code}.\n"
            f"Response body: {self.body}\n\n"
            f"Please contact the support team with the ID: {self.trace_id}."
        )


# Asset preparation


class AssetDiscoveryError(DeployError):
    pass


class AssetStatError(DeployError):
    pass


class AssetReadError(DeployError):
    pass


class LinkResolutionError(DeployError):
    pass


class RelativePathError(DeployError):
    pass


class NoAssetsFoundError(DeployError):
    def __init__(self) -> None:
        super().__init__("No assets are found. At least one asset is required.")


class MissingDnsRecordsError(DeployError):
    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"The DNS records obtained from API are missing {', '.join(missing)} records.")
        self.missing = missing


# Remote steps


class RemoteStepError(DeployError):
    """A remote call failed; the API diagnostic is kept as ``__cause__``."""

    def __init__(
        self,
        title: str,
        *,
        cause: Exception | None = None,
        deployment_id: str | None = None,
        domain_id: str | None = None,
        message: str | None = None,
    ) -> None:
        self.title = title
        self.deployment_id = deployment_id
        self.domain_id = domain_id
        self.status_code = getattr(cause, "status_code", None)
        self.trace_id = getattr(cause, "trace_id", None)
        detail = message
        if detail is None and cause is not None:
            detail = getattr(cause, "detail", None) or str(cause)
        if deployment_id and detail is not None:
            detail = f"Deployment ID: {deployment_id}, Error: {detail}"
        self.detail = detail or ""
        super().__init__(f"{title}\n{detail}" if detail else title)
        if cause is not None:
            self.__cause__ = cause


class SubmissionFailedError(RemoteStepError):
    pass


class ReadFailedError(RemoteStepError):
    pass


class LogsUnavailableError(RemoteStepError):
    pass


class AssociationFailedError(RemoteStepError):
    def __init__(
        self,
        title: str,
        *,
        failures: list[tuple[str, Exception]] | None = None,
        state: Any = None,
        **kwargs: Any,
    ) -> None:
        self.failures = list(failures or [])
        self.state = state
        if self.failures and "message" not in kwargs and kwargs.get("cause") is None:
            kwargs["message"] = "\n".join(
                f"Domain {domain_id}: {getattr(exc, 'detail', None) or exc}" for domain_id, exc in self.failures
            )
        super().__init__(title, **kwargs)


class DisassociationError(AssociationFailedError):
    pass


class DeploymentFailedError(DeployError):
    def __init__(self, *, deployment_id: str, status: str, logs: list[str]) -> None:
        self.deployment_id = deployment_id
        self.status = status
        self.logs = list(logs)
        joined = "\n".join(self.logs)
        super().__init__(
            "Deployment Failed\n"
            f"Deployment ID: {deployment_id}\n"
            f"Status: {status}\n\n"
            f"Build logs:\n{joined}\n"
        )


class VerificationTimeoutError(DeployError):
    def __init__(self, *, domain_id: str, timeout_seconds: float) -> None:
        self.domain_id = domain_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Unable to verify ownership of domain {domain_id}: timed out after {_format_duration(timeout_seconds)}"
        )


class DomainVerificationError(RemoteStepError):
    pass


class CertificateProvisioningError(DeployError):
    def __init__(self, *, domain_id: str, status: str, message: str | None = None) -> None:
        self.domain_id = domain_id
        self.status = status
        text = f"Unable to provision certificates for domain {domain_id}: provisioning status is {status}, expected success"
        if message:
            text = f"{text} ({message})"
        super().__init__(text)


def _format_duration(seconds: float) -> str:
    total = int(seconds)
    if total != seconds:
        return f"{seconds}s"
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes or hours:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return "".join(parts)
