from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from palace3d.core.errors import AssetLoadError
from palace3d.schemas.contracts import LoadedModel
from palace3d.utils.glb import read_glb

logger = logging.getLogger(__name__)


class AssetLoader(ABC):
    @abstractmethod
    def load(self, path: str | Path) -> LoadedModel:
        raise NotImplementedError


class GlbAssetLoader(AssetLoader):
    def load(self, path: str | Path) -> LoadedModel:
        path = Path(path)
        try:
            payload, _ = read_glb(path.read_bytes())
        except (OSError, ValueError) as exc:
            raise AssetLoadError(f"failed to load 3D model from {path}: {exc}") from exc

        asset = payload.get("asset") or {}
        version = str(asset.get("version", ""))
        if not version.startswith("2."):
            raise AssetLoadError(f"unsupported glTF version {version!r} in {path}")

        model = LoadedModel(
            path=str(path),
            version=version,
            generator=str(asset.get("generator", "")),
            scene_count=len(payload.get("scenes") or []),
            node_count=len(payload.get("nodes") or []),
            mesh_count=len(payload.get("meshes") or []),
        )
        logger.debug(f"Parsed {path.name}: {model.node_count} nodes, {model.mesh_count} meshes")
        return model
