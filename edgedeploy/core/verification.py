from __future__ import annotations

import logging
import time
from typing import Callable

from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.config import DeploySettings, settings as default_settings
from edgedeploy.core.identifiers import parse_uuid
from edgedeploy.errors import (
    ApiResponseError,
    ApiTransportError,
    DomainVerificationError,
    VerificationTimeoutError,
)
from edgedeploy.models import DomainVerificationState

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], None]


def poll_until(
    check: Callable[[], bool],
    *,
    timeout_seconds: float,
    interval_seconds: float,
    clock: Clock = time.monotonic,
    sleep: Sleep = time.sleep,
) -> bool:
    """Call ``check`` once per interval until it returns True or the deadline passes.

    The first call happens after one interval. Returns False on timeout; never
    sleeps past the deadline.
    """
    deadline = clock() + timeout_seconds
    attempt = 0
    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        sleep(min(interval_seconds, remaining))
        if clock() >= deadline:
            return False
        attempt += 1
        if check():
            return True
        logger.debug("Poll attempt did not converge", extra={"attempt": attempt})


class DomainVerifier:
    def __init__(
        self,
        *,
        client: DeployApiClient,
        settings: DeploySettings | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
    ) -> None:
        resolved = settings or default_settings
        self.client = client
        self.default_timeout_seconds = float(resolved.DOMAIN_VERIFICATION_TIMEOUT_SECONDS)
        self.poll_interval_seconds = float(resolved.DOMAIN_VERIFICATION_POLL_INTERVAL_SECONDS)
        self._clock = clock
        self._sleep = sleep

    def is_verified(self, domain_id: str) -> bool:
        """Single ownership check; an error response means not (yet) verified."""
        domain_uuid = parse_uuid(domain_id, kind="domain")
        try:
            self.client.verify_domain(domain_uuid)
        except ApiResponseError as exc:
            logger.debug(
                "Domain ownership not verified",
                extra={"domain_id": domain_uuid, "status_code": exc.status_code},
            )
            return False
        except ApiTransportError as exc:
            raise DomainVerificationError(
                f"Unable to verify ownership of domain {domain_uuid}",
                cause=exc,
                domain_id=domain_uuid,
            ) from exc
        return True

    def check(self, domain_id: str) -> DomainVerificationState:
        return DomainVerificationState(domain_id=domain_id, verified=self.is_verified(domain_id))

    def wait_until_verified(
        self,
        domain_id: str,
        *,
        timeout_seconds: float | None = None,
    ) -> DomainVerificationState:
        domain_uuid = parse_uuid(domain_id, kind="domain")
        timeout = float(self.default_timeout_seconds if timeout_seconds is None else timeout_seconds)
        logger.info(
            "Waiting for domain ownership verification",
            extra={"domain_id": domain_uuid, "timeout_seconds": timeout},
        )
        verified = poll_until(
            lambda: self.is_verified(domain_uuid),
            timeout_seconds=timeout,
            interval_seconds=self.poll_interval_seconds,
            clock=self._clock,
            sleep=self._sleep,
        )
        if not verified:
            raise VerificationTimeoutError(domain_id=domain_uuid, timeout_seconds=timeout)
        logger.info("Domain ownership verified", extra={"domain_id": domain_uuid})
        return DomainVerificationState(domain_id=domain_uuid, verified=True)
