from __future__ import annotations

import logging
from typing import Iterable

from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.config import DeploySettings, settings as default_settings
from edgedeploy.core.identifiers import parse_uuid
from edgedeploy.errors import (
    ApiRequestError,
    MissingDnsRecordsError,
    ReadFailedError,
    SubmissionFailedError,
)
from edgedeploy.models import DnsRecord, DnsRecordInfo, Domain, DomainState, format_rfc3339

logger = logging.getLogger(__name__)

_REQUIRED_RECORD_TYPES = ("A", "AAAA", "CNAME")


def split_dns_records(records: Iterable[DnsRecord]) -> dict[str, DnsRecordInfo]:
    """Pick the A, AAAA and CNAME records out of a domain's record list.

    The last record of each type wins. Raises ``MissingDnsRecordsError`` naming
    every required type that is absent.
    """
    by_type: dict[str, DnsRecordInfo] = {}
    for record in records:
        if record.type in _REQUIRED_RECORD_TYPES:
            by_type[record.type] = DnsRecordInfo(name=record.name, content=record.content)

    missing = [record_type for record_type in _REQUIRED_RECORD_TYPES if record_type not in by_type]
    if missing:
        raise MissingDnsRecordsError(missing)
    return by_type


def domain_state_from(domain: Domain) -> DomainState:
    split = split_dns_records(domain.dns_records)
    return DomainState(
        id=domain.id,
        domain=domain.domain,
        token=domain.token,
        dns_records=list(domain.dns_records),
        dns_record_a=split["A"],
        dns_record_aaaa=split["AAAA"],
        dns_record_cname=split["CNAME"],
        created_at=format_rfc3339(domain.created_at),
        updated_at=format_rfc3339(domain.updated_at),
    )


class DomainManager:
    """Custom domain lifecycle inside the configured organization."""

    def __init__(self, *, client: DeployApiClient, settings: DeploySettings | None = None) -> None:
        self.client = client
        self.settings = settings or default_settings

    def create(self, name: str) -> DomainState:
        title = f"Unable to Create Domain {name}"
        organization_id = self.settings.require_organization_id()
        try:
            domain = self.client.create_domain(organization_id, domain=name)
        except ApiRequestError as exc:
            raise SubmissionFailedError(title, cause=exc) from exc
        logger.info("Domain created", extra={"domain_id": domain.id, "domain": domain.domain})
        return domain_state_from(domain)

    def read(self, domain_id: str) -> DomainState:
        domain_uuid = parse_uuid(domain_id, kind="domain")
        try:
            domain = self.client.get_domain(domain_uuid)
        except ApiRequestError as exc:
            raise ReadFailedError(f"Unable to Read Domain {domain_uuid}", cause=exc, domain_id=domain_uuid) from exc
        return domain_state_from(domain)

    def replace(self, domain_id: str, name: str) -> DomainState:
        # A domain name cannot change in place; the replacement gets a new id.
        self.delete(domain_id)
        return self.create(name)

    def delete(self, domain_id: str) -> None:
        domain_uuid = parse_uuid(domain_id, kind="domain")
        try:
            self.client.delete_domain(domain_uuid)
        except ApiRequestError as exc:
            raise SubmissionFailedError(
                f"Unable to Delete Domain {domain_uuid}",
                cause=exc,
                domain_id=domain_uuid,
            ) from exc
        logger.info("Domain deleted", extra={"domain_id": domain_uuid})
