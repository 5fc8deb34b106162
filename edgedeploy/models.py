from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def format_rfc3339(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    rendered = value.replace(microsecond=0).isoformat()
    if rendered.endswith("+00:00"):
        rendered = rendered[: -len("+00:00")] + "Z"
    return rendered


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Assets


class AssetKind(str, Enum):
    FILE = "file"
    SYMLINK = "symlink"


class FileEncoding(str, Enum):
    UTF8 = "utf-8"
    BASE64 = "base64"


class FileAsset(ApiModel):
    """A file entry: either inline content or a reference to a previously uploaded blob."""

    kind: Literal["file"] = "file"
    content: Optional[str] = None
    encoding: Optional[FileEncoding] = None
    git_sha1: Optional[str] = Field(default=None, alias="gitSha1")

    @model_validator(mode="after")
    def validate_payload(self) -> "FileAsset":
        if self.git_sha1 is not None:
            if self.content is not None:
                raise ValueError("a file asset carries either content or gitSha1, not both")
            return self
        if self.content is None:
            raise ValueError("a file asset requires content or gitSha1")
        if self.encoding is None:
            raise ValueError("a file asset with inline content requires an encoding")
        return self


class SymlinkAsset(ApiModel):
    kind: Literal["symlink"] = "symlink"
    target: str


Asset = Annotated[Union[FileAsset, SymlinkAsset], Field(discriminator="kind")]


class AssetSource(BaseModel):
    """A declared glob of local assets, placed under ``target`` in the runtime filesystem."""

    path: str
    pattern: str
    target: str = "."

    @field_validator("path", "pattern")
    @classmethod
    def validate_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("target")
    @classmethod
    def normalize_target(cls, value: str) -> str:
        cleaned = (value or "").strip()
        return cleaned or "."


class DiscoveredAsset(BaseModel):
    kind: AssetKind
    local_path: str
    runtime_path: str
    runtime_target_path: Optional[str] = None


class UploadedAssetRecord(BaseModel):
    path: str
    content_identity: str
    last_updated_at: str


# Deployments


class DeploymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class CompilerOptions(ApiModel):
    jsx: Optional[str] = None
    jsx_factory: Optional[str] = Field(default=None, alias="jsxFactory")
    jsx_fragment_factory: Optional[str] = Field(default=None, alias="jsxFragmentFactory")
    jsx_import_source: Optional[str] = Field(default=None, alias="jsxImportSource")


class CreateDeploymentRequest(ApiModel):
    entry_point_url: str = Field(alias="entryPointUrl")
    import_map_url: Optional[str] = Field(default=None, alias="importMapUrl")
    lock_file_url: Optional[str] = Field(default=None, alias="lockFileUrl")
    compiler_options: Optional[CompilerOptions] = Field(default=None, alias="compilerOptions")
    assets: Dict[str, Asset]
    env_vars: Dict[str, str] = Field(default_factory=dict, alias="envVars")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Deployment(ApiModel):
    id: str
    project_id: Optional[str] = Field(default=None, alias="projectId")
    status: DeploymentStatus
    domains: List[str] = Field(default_factory=list)
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("domains", mode="before")
    @classmethod
    def coerce_domains(cls, value: Any) -> Any:
        return [] if value is None else value


class BuildLogLine(ApiModel):
    level: str
    message: str

    def render(self) -> str:
        return f"[{self.level}] {self.message}"


class DeploymentPlan(BaseModel):
    project_id: str
    entry_point_url: str
    import_map_url: Optional[str] = None
    lock_file_url: Optional[str] = None
    compiler_options: Optional[CompilerOptions] = None
    assets: List[AssetSource] = Field(default_factory=list)
    env_vars: Dict[str, str] = Field(default_factory=dict)
    domain_ids: List[str] = Field(default_factory=list)
    incremental_uploads: bool = False

    @field_validator("entry_point_url")
    @classmethod
    def validate_entry_point(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("entry_point_url must be non-empty")
        return cleaned


class DeploymentState(BaseModel):
    deployment_id: str
    project_id: str
    status: DeploymentStatus
    domain_ids: List[str] = Field(default_factory=list)
    domains: List[str] = Field(default_factory=list)
    entry_point_url: Optional[str] = None
    import_map_url: Optional[str] = None
    lock_file_url: Optional[str] = None
    compiler_options: Optional[CompilerOptions] = None
    env_vars: Dict[str, str] = Field(default_factory=dict)
    uploaded_assets: Dict[str, UploadedAssetRecord] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def overlay(self, deployment: Deployment) -> "DeploymentState":
        return self.model_copy(
            update={
                "deployment_id": deployment.id,
                "status": deployment.status,
                "domains": list(deployment.domains),
                "created_at": format_rfc3339(deployment.created_at),
                "updated_at": format_rfc3339(deployment.updated_at),
            }
        )


# Domains


class DnsRecord(ApiModel):
    type: str
    name: str
    content: str


class DnsRecordInfo(BaseModel):
    name: str
    content: str


class ProvisioningState(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    MANUAL = "manual"
    UNKNOWN = "unknown"


class ProvisioningStatus(ApiModel):
    code: str
    message: Optional[str] = None

    @property
    def state(self) -> ProvisioningState:
        try:
            return ProvisioningState(self.code)
        except ValueError:
            return ProvisioningState.UNKNOWN


class Domain(ApiModel):
    id: str
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    domain: str
    token: str
    is_validated: Optional[bool] = Field(default=None, alias="isValidated")
    provisioning_status: Optional[ProvisioningStatus] = Field(default=None, alias="provisioningStatus")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    deployment_id: Optional[str] = Field(default=None, alias="deploymentId")
    dns_records: List[DnsRecord] = Field(default_factory=list, alias="dnsRecords")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class DomainState(BaseModel):
    id: str
    domain: str
    token: str
    dns_records: List[DnsRecord] = Field(default_factory=list)
    dns_record_a: DnsRecordInfo
    dns_record_aaaa: DnsRecordInfo
    dns_record_cname: DnsRecordInfo
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class VerificationState(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


class DomainVerificationState(BaseModel):
    domain_id: str
    verified: bool = False

    @property
    def state(self) -> VerificationState:
        return VerificationState.VERIFIED if self.verified else VerificationState.UNVERIFIED


class AssociationState(BaseModel):
    domain_id: str
    deployment_id: str
    verified: bool = False


class CertificateState(BaseModel):
    domain_id: str
    provisioning_status: ProvisioningState


# Projects


class Project(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class Organization(ApiModel):
    id: str
    name: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class ProjectState(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_project(cls, project: Project) -> "ProjectState":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            created_at=format_rfc3339(project.created_at),
            updated_at=format_rfc3339(project.updated_at),
        )
