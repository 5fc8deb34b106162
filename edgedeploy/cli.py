from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.config import DeploySettings
from edgedeploy.core.assets import discover_assets
from edgedeploy.core.certificates import CertificateProvisioner
from edgedeploy.core.deployments import DeploymentReconciler
from edgedeploy.core.verification import DomainVerifier
from edgedeploy.errors import AssociationFailedError, DeployError
from edgedeploy.models import AssetSource, DeploymentPlan, DeploymentState

logger = logging.getLogger("edgedeploy.cli")


def _build_client() -> DeployApiClient:
    return DeployApiClient(settings=DeploySettings())


def _load_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _emit(payload: Any, output: Optional[str] = None) -> None:
    rendered = json.dumps(payload, indent=2, sort_keys=True)
    if output:
        Path(output).write_text(rendered + "\n", encoding="utf-8")
        logger.info("Wrote %s", output)
    else:
        print(rendered)


def cmd_assets(args: argparse.Namespace) -> int:
    source = AssetSource(path=args.path, pattern=args.pattern, target=args.target)
    discovered = discover_assets(source)
    _emit({path: asset.model_dump(mode="json") for path, asset in discovered.items()})
    return 0


def cmd_deploy(args: argparse.Namespace) -> int:
    plan = DeploymentPlan.model_validate(_load_json(args.plan))
    current = DeploymentState.model_validate(_load_json(args.state)) if args.state else None
    reconciler = DeploymentReconciler(client=_build_client())
    try:
        state = reconciler.reconcile(plan, current=current)
    except AssociationFailedError as exc:
        # The deployment exists; keep what succeeded before reporting.
        if exc.state is not None:
            _emit(exc.state.model_dump(mode="json"), args.output)
        raise
    _emit(state.model_dump(mode="json"), args.output)
    return 0


def cmd_verify_domain(args: argparse.Namespace) -> int:
    verifier = DomainVerifier(client=_build_client())
    state = verifier.wait_until_verified(args.domain_id, timeout_seconds=args.timeout)
    _emit({"domain_id": state.domain_id, "state": state.state.value})
    return 0


def cmd_provision_certificates(args: argparse.Namespace) -> int:
    provisioner = CertificateProvisioner(client=_build_client())
    state = provisioner.provision(args.domain_id)
    _emit(state.model_dump(mode="json"))
    return 0


def cmd_undeploy(args: argparse.Namespace) -> int:
    state = DeploymentState.model_validate(_load_json(args.state))
    DeploymentReconciler(client=_build_client()).delete(state)
    logger.info("Released %d domain(s) from deployment %s", len(state.domain_ids), state.deployment_id)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="edgedeploy", description="Deploy local assets to the edge platform.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    assets = subparsers.add_parser("assets", help="List the assets a glob would deploy.")
    assets.add_argument("path", help="Root directory to search.")
    assets.add_argument("pattern", help="Glob pattern relative to the root, e.g. '**/*.{ts,json}'.")
    assets.add_argument("--target", default=".", help="Runtime directory the assets are placed under.")
    assets.set_defaults(func=cmd_assets)

    deploy = subparsers.add_parser("deploy", help="Create a deployment from a plan file.")
    deploy.add_argument("plan", help="Path to the deployment plan JSON.")
    deploy.add_argument("--state", help="Previous deployment state JSON (enables asset reuse).")
    deploy.add_argument("--output", help="Write the resulting state here instead of stdout.")
    deploy.set_defaults(func=cmd_deploy)

    verify = subparsers.add_parser("verify-domain", help="Wait until domain ownership is verified.")
    verify.add_argument("domain_id")
    verify.add_argument("--timeout", type=float, default=None, help="Seconds to wait before giving up.")
    verify.set_defaults(func=cmd_verify_domain)

    provision = subparsers.add_parser("provision-certificates", help="Provision TLS certificates for a domain.")
    provision.add_argument("domain_id")
    provision.set_defaults(func=cmd_provision_certificates)

    undeploy = subparsers.add_parser("undeploy", help="Release every domain bound to a deployment.")
    undeploy.add_argument("state", help="Deployment state JSON.")
    undeploy.set_defaults(func=cmd_undeploy)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (DeployError, ValidationError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
