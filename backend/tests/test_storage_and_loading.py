import re
from pathlib import Path

import pytest

from fakes import FIXED_NOW
from palace3d.core.errors import AssetLoadError, StorageError
from palace3d.services.asset_loader import GlbAssetLoader
from palace3d.services.model_store import ModelStore
from palace3d.utils.glb import build_glb, looks_like_glb, placeholder_glb, read_glb


def test_save_creates_directory_and_timestamped_file(tmp_path: Path):
    store = ModelStore(tmp_path / "3DModels")
    asset = store.save(b"glb", FIXED_NOW)
    path = Path(asset.path)
    assert path == tmp_path / "3DModels" / "3d_model_20240101_120000.glb"
    assert path.read_bytes() == b"glb"
    assert asset.size_bytes == 3
    assert re.fullmatch(r"3d_model_\d{8}_\d{6}\.glb", path.name)


def test_same_second_save_overwrites(tmp_path: Path):
    store = ModelStore(tmp_path)
    store.save(b"first", FIXED_NOW)
    asset = store.save(b"second", FIXED_NOW)
    assert Path(asset.path).read_bytes() == b"second"
    assert len(store.list_models()) == 1


def test_save_into_unwritable_root_is_io_failure(tmp_path: Path):
    blocker = tmp_path / "3DModels"
    blocker.write_text("not a directory")
    with pytest.raises(StorageError):
        ModelStore(blocker).save(b"glb", FIXED_NOW)


def test_list_models_ignores_other_files(tmp_path: Path):
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "3d_model_20240101_120000.glb").write_bytes(b"a")
    (tmp_path / "3d_model_20240102_120000.glb").write_bytes(b"b")
    names = [p.name for p in ModelStore(tmp_path).list_models()]
    assert names == ["3d_model_20240102_120000.glb", "3d_model_20240101_120000.glb"]


def test_placeholder_glb_is_readable():
    data = placeholder_glb()
    payload, blob = read_glb(data)
    assert looks_like_glb(data)
    assert payload["asset"]["version"] == "2.0"
    assert len(blob) == 36


def test_read_glb_rejects_bad_magic():
    with pytest.raises(ValueError):
        read_glb(b"not a glb file at all, definitely not")


def test_loader_summarises_model(tmp_path: Path):
    path = tmp_path / "model.glb"
    path.write_bytes(placeholder_glb(generator="test"))
    model = GlbAssetLoader().load(path)
    assert model.version == "2.0"
    assert model.generator == "test"
    assert (model.scene_count, model.node_count, model.mesh_count) == (1, 1, 1)


def test_loader_rejects_corrupt_file(tmp_path: Path):
    path = tmp_path / "model.glb"
    path.write_bytes(b"<html>error</html>")
    with pytest.raises(AssetLoadError):
        GlbAssetLoader().load(path)


def test_loader_rejects_gltf_1(tmp_path: Path):
    path = tmp_path / "model.glb"
    path.write_bytes(build_glb({"asset": {"version": "1.0"}}))
    with pytest.raises(AssetLoadError):
        GlbAssetLoader().load(path)


def test_loader_missing_file(tmp_path: Path):
    with pytest.raises(AssetLoadError):
        GlbAssetLoader().load(tmp_path / "missing.glb")
