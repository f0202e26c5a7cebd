"""Minimal binary glTF (GLB) container reading and writing."""
from __future__ import annotations

import json
import struct
from typing import Any, Dict, Tuple

GLTF_MAGIC = 0x46546C67
JSON_CHUNK_TYPE = 0x4E4F534A
BIN_CHUNK_TYPE = 0x004E4942


def align4(value: int) -> int:
    return (value + 3) & ~3


def looks_like_glb(data: bytes) -> bool:
    if len(data) < 20:
        return False
    magic, version, total_length = struct.unpack_from("<III", data, 0)
    if magic != GLTF_MAGIC or version != 2:
        return False
    return 0 < total_length <= len(data)


def build_glb(payload: Dict[str, Any], binary_blob: bytes = b"") -> bytes:
    json_bytes = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    json_bytes += b" " * (align4(len(json_bytes)) - len(json_bytes))
    if binary_blob:
        binary_blob += b"\x00" * (align4(len(binary_blob)) - len(binary_blob))

    total_length = 12 + 8 + len(json_bytes)
    if binary_blob:
        total_length += 8 + len(binary_blob)

    out = bytearray()
    out += struct.pack("<III", GLTF_MAGIC, 2, total_length)
    out += struct.pack("<II", len(json_bytes), JSON_CHUNK_TYPE)
    out += json_bytes
    if binary_blob:
        out += struct.pack("<II", len(binary_blob), BIN_CHUNK_TYPE)
        out += binary_blob
    return bytes(out)


def read_glb(data: bytes) -> Tuple[Dict[str, Any], bytes]:
    if len(data) < 20:
        raise ValueError("GLB too small")

    magic, version, total_length = struct.unpack_from("<III", data, 0)
    if magic != GLTF_MAGIC:
        raise ValueError("Invalid GLB magic")
    if version != 2:
        raise ValueError(f"Unsupported GLB version: {version}")
    if total_length > len(data):
        raise ValueError("GLB truncated")

    offset = 12
    json_chunk: bytes | None = None
    bin_chunk = b""
    while offset + 8 <= total_length:
        chunk_len, chunk_type = struct.unpack_from("<II", data, offset)
        offset += 8
        chunk_end = offset + chunk_len
        if chunk_end > total_length:
            raise ValueError("GLB chunk exceeds file size")
        chunk_data = data[offset:chunk_end]
        offset = chunk_end

        if chunk_type == JSON_CHUNK_TYPE and json_chunk is None:
            json_chunk = chunk_data
        elif chunk_type == BIN_CHUNK_TYPE and not bin_chunk:
            bin_chunk = chunk_data

    if json_chunk is None:
        raise ValueError("GLB missing JSON chunk")

    payload = json.loads(json_chunk.decode("utf-8").rstrip(" \t\r\n\x00"))
    if not isinstance(payload, dict):
        raise ValueError("GLB JSON root is not an object")
    return payload, bin_chunk


def placeholder_glb(generator: str = "palace3d-mock") -> bytes:
    """Single-triangle model, enough for any glTF 2.0 loader to accept."""
    positions = struct.pack("<9f", 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0)
    payload = {
        "asset": {"version": "2.0", "generator": generator},
        "scene": 0,
        "scenes": [{"nodes": [0]}],
        "nodes": [{"mesh": 0}],
        "meshes": [{"primitives": [{"attributes": {"POSITION": 0}}]}],
        "buffers": [{"byteLength": len(positions)}],
        "bufferViews": [{"buffer": 0, "byteOffset": 0, "byteLength": len(positions)}],
        "accessors": [
            {
                "bufferView": 0,
                "componentType": 5126,
                "count": 3,
                "type": "VEC3",
                "min": [0.0, 0.0, 0.0],
                "max": [1.0, 1.0, 0.0],
            }
        ],
    }
    return build_glb(payload, positions)
