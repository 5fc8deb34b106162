from __future__ import annotations

import base64
import hashlib
import logging
import os
from datetime import datetime, timezone
from typing import Iterable, Mapping

from edgedeploy.core.paths import encode_path, iter_matches, runtime_join
from edgedeploy.errors import (
    AssetDiscoveryError,
    AssetReadError,
    LinkResolutionError,
    NoAssetsFoundError,
    RelativePathError,
)
from edgedeploy.models import (
    Asset,
    AssetKind,
    AssetSource,
    DiscoveredAsset,
    FileAsset,
    FileEncoding,
    SymlinkAsset,
    UploadedAssetRecord,
    format_rfc3339,
)

logger = logging.getLogger(__name__)


def content_identity(content: bytes) -> str:
    """Git blob object id: sha1 over ``b"blob <len>\\0" + content``."""
    digest = hashlib.sha1()
    digest.update(b"blob %d\x00" % len(content))
    digest.update(content)
    return digest.hexdigest()


def discover_assets(source: AssetSource) -> dict[str, DiscoveredAsset]:
    discovered: dict[str, DiscoveredAsset] = {}
    for match in iter_matches(source.path, source.pattern):
        local_path = str(match.path)
        relpath = _relative_to(local_path, source.path)
        runtime_path = runtime_join(source.target, relpath)

        runtime_target_path = None
        kind = AssetKind.FILE
        if match.is_symlink:
            kind = AssetKind.SYMLINK
            try:
                linked_to = os.path.realpath(local_path, strict=True)
            except OSError as exc:
                raise LinkResolutionError(
                    f"Failed to get the destination path of {local_path}: {exc}"
                ) from exc
            target_relpath = _relative_to(linked_to, os.path.realpath(source.path))
            runtime_target_path = runtime_join(source.target, target_relpath)

        discovered[runtime_path] = DiscoveredAsset(
            kind=kind,
            local_path=local_path,
            runtime_path=runtime_path,
            runtime_target_path=runtime_target_path,
        )
    return discovered


def _relative_to(path: str, root: str) -> str:
    try:
        return os.path.relpath(path, root).replace(os.sep, "/")
    except ValueError as exc:
        raise RelativePathError(f"Failed to get the relative path of {path} from {root}: {exc}") from exc


def read_asset_bytes(local_path: str) -> bytes:
    try:
        with open(local_path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise AssetReadError(f"Could not read file content for {local_path}: {exc}") from exc


def encode_file_content(content: bytes) -> FileAsset:
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        return FileAsset(
            content=base64.b64encode(content).decode("ascii"),
            encoding=FileEncoding.BASE64,
        )
    return FileAsset(content=text, encoding=FileEncoding.UTF8)


def encode_asset(
    discovered: DiscoveredAsset,
    *,
    uploaded_assets: Mapping[str, UploadedAssetRecord] | None = None,
) -> tuple[Asset, str | None]:
    """Build the wire asset for one discovered entry.

    Returns the asset and, for files, its content identity. When the identity is
    present in ``uploaded_assets`` the file is sent as a ``gitSha1`` reference.
    """
    if discovered.kind == AssetKind.SYMLINK:
        if not discovered.runtime_target_path:
            raise LinkResolutionError(f"Symlink {discovered.local_path} has no resolved target")
        return SymlinkAsset(target=encode_path(discovered.runtime_target_path)), None

    content = read_asset_bytes(discovered.local_path)
    identity = content_identity(content)
    if uploaded_assets and identity in uploaded_assets:
        return FileAsset(git_sha1=identity), identity
    return encode_file_content(content), identity


class PreparedAssets:
    def __init__(self) -> None:
        self.assets: dict[str, Asset] = {}
        self.identities: dict[str, str] = {}
        self.reused: int = 0

    def uploaded_records(self, *, now: datetime | None = None) -> dict[str, UploadedAssetRecord]:
        stamp = format_rfc3339(now or datetime.now(timezone.utc))
        return {
            identity: UploadedAssetRecord(path=path, content_identity=identity, last_updated_at=stamp)
            for path, identity in self.identities.items()
        }


def prepare_assets(
    sources: Iterable[AssetSource],
    *,
    uploaded_assets: Mapping[str, UploadedAssetRecord] | None = None,
) -> PreparedAssets:
    """Discover and encode every declared asset; any failure aborts the whole pass."""
    prepared = PreparedAssets()
    owners: dict[str, AssetSource] = {}
    for source in sources:
        for runtime_path, discovered in discover_assets(source).items():
            wire_path = encode_path(runtime_path)
            if wire_path in prepared.assets:
                other = owners[wire_path]
                raise AssetDiscoveryError(
                    f"Asset path {runtime_path} is declared more than once "
                    f"({other.path}/{other.pattern} and {source.path}/{source.pattern})"
                )
            asset, identity = encode_asset(discovered, uploaded_assets=uploaded_assets)
            prepared.assets[wire_path] = asset
            owners[wire_path] = source
            if identity is not None:
                prepared.identities[runtime_path] = identity
                if isinstance(asset, FileAsset) and asset.git_sha1:
                    prepared.reused += 1

    if not prepared.assets:
        raise NoAssetsFoundError()

    logger.debug(
        "Prepared deployment assets",
        extra={"asset_count": len(prepared.assets), "reused_count": prepared.reused},
    )
    return prepared
