from __future__ import annotations

from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from palace3d.core.errors import MissingInputError


class CaptureSource(ABC):
    """Provides the most recent captured frame as encoded image bytes."""

    @abstractmethod
    def latest_frame(self) -> bytes | None:
        raise NotImplementedError


class FileCaptureSource(CaptureSource):
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def latest_frame(self) -> bytes | None:
        if not self.path.is_file():
            return None
        return self.path.read_bytes()


class BytesCaptureSource(CaptureSource):
    def __init__(self, data: bytes | None):
        self.data = data

    def latest_frame(self) -> bytes | None:
        return self.data or None


class PlaceholderCaptureSource(CaptureSource):
    """Flat grey frame for running without a camera."""

    def __init__(self, size: int = 256):
        self.size = size

    def latest_frame(self) -> bytes | None:
        img = Image.new("RGBA", (self.size, self.size), (128, 128, 128, 255))
        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()


def to_readable_png(raw: bytes) -> bytes:
    """Re-encode any decodable frame as an RGBA PNG."""
    try:
        with Image.open(BytesIO(raw)) as im:
            rgba = im.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise MissingInputError(f"captured frame is not a readable image: {exc}") from exc
    buf = BytesIO()
    rgba.save(buf, format="PNG")
    return buf.getvalue()
