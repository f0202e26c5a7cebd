from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from palace3d.core.errors import StorageError
from palace3d.core.settings import settings
from palace3d.schemas.contracts import GeneratedAsset
from palace3d.utils.timestamps import MODEL_PREFIX, MODEL_SUFFIX, model_file_name

logger = logging.getLogger(__name__)


class ModelStore:
    """Writes generated GLB payloads under ``<persistent_dir>/3DModels``.

    Names have one-second resolution; a second write in the same second
    replaces the first.
    """

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root) if root is not None else settings.models_dir

    def path_for(self, now: datetime | None = None) -> Path:
        return self.root / model_file_name(now)

    def save(self, payload: bytes, now: datetime | None = None) -> GeneratedAsset:
        now = now or datetime.now()
        path = self.path_for(now)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as exc:
            logger.error(f"Error saving GLB file to {path}: {exc}")
            raise StorageError(f"could not write {path}: {exc}") from exc
        logger.info(f"Saved GLB file to: {path}")
        return GeneratedAsset(path=str(path), size_bytes=len(payload), created_at=now)

    def list_models(self) -> list[Path]:
        if not self.root.exists():
            return []
        return sorted(
            (p for p in self.root.glob(f"{MODEL_PREFIX}*{MODEL_SUFFIX}") if p.is_file()),
            reverse=True,
        )
