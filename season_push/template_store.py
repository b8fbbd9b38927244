"""
Grayscale reference image store.

Every reference image is decoded once and kept for the life of the store.
Lookups hand out the same read-only array, so detectors can share templates
without copying and nobody can scribble on them.

Usage:
    store = TemplateStore(template_dir)
    tpl = store.load("tpl_end_confirm_gray.png")   # decoded on first call
    tpl is store.load("tpl_end_confirm_gray.png")  # True - cached

    store.close()  # drop all images at shutdown
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class TemplateLoadError(RuntimeError):
    """A reference image is missing or cannot be decoded. Fatal at startup."""


def decode_gray(data: bytes, key: str = "<bytes>") -> np.ndarray:
    """
    Decode PNG/JPEG/BMP bytes into a read-only single-channel uint8 array.

    Raises:
        TemplateLoadError: If the bytes are empty or not a decodable image
    """
    if not data:
        raise TemplateLoadError(f"Template is empty: {key}")

    buf = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buf, cv2.IMREAD_GRAYSCALE)
    if image is None or image.size == 0:
        raise TemplateLoadError(f"Template decode failed: {key}")

    image.setflags(write=False)
    return image


class TemplateStore:
    """Owning, keyed container of decoded grayscale templates."""

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else None
        self._images: Dict[str, np.ndarray] = {}
        self._lock = threading.Lock()

    def resolve(self, name: str | Path) -> Path:
        """
        Resolve a template name to a file path.

        An existing path is used as-is (handy while tuning), otherwise the
        file name is looked up inside template_dir.
        """
        if not str(name).strip():
            raise ValueError("template path/name is empty")

        path = Path(name)
        if path.is_file():
            return path
        if self.template_dir is None:
            return path
        return self.template_dir / path.name

    def get_or_add(self, key: str, loader: Callable[[], np.ndarray]) -> np.ndarray:
        """
        Return the image stored under key, calling loader only if absent.

        The first successful load wins; concurrent callers for the same key
        get the same array. A failing loader stores nothing.
        """
        with self._lock:
            image = self._images.get(key)
            if image is not None:
                return image

            image = loader()
            if not image.flags.writeable:
                stored = image
            else:
                stored = image.copy()
                stored.setflags(write=False)
            self._images[key] = stored
            return stored

    def load(self, name: str | Path) -> np.ndarray:
        """
        Load a template from disk (grayscale), cached by resolved path.

        Raises:
            TemplateLoadError: If the file is missing or undecodable
        """
        path = self.resolve(name)
        key = str(path)

        def _read() -> np.ndarray:
            if not path.is_file():
                raise TemplateLoadError(f"Template not found: {path}")
            # np.fromfile + imdecode copes with non-ASCII install paths on Windows
            data = np.fromfile(str(path), dtype=np.uint8).tobytes()
            image = decode_gray(data, key)
            logger.info(f"[TEMPLATE] Loaded {path.name} ({image.shape[1]}x{image.shape[0]})")
            return image

        return self.get_or_add(key, _read)

    def add_bytes(self, key: str, data: bytes) -> np.ndarray:
        """Register an already-read bitmap (e.g. bundled with the executable)."""
        return self.get_or_add(key, lambda: decode_gray(data, key))

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._images

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)

    def close(self) -> None:
        """Release every stored image."""
        with self._lock:
            self._images.clear()
