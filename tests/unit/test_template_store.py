"""
Unit tests for season_push/template_store.py.

Covers decoding, caching (insert-if-absent), read-only arrays, path
resolution and the fatal load errors.
"""
from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock

import cv2
import numpy as np
import pytest

from conftest import make_template, write_png
from season_push.template_store import TemplateLoadError, TemplateStore, decode_gray


class TestLoad:
    """Loading from disk."""

    def test_loads_grayscale(self, tmp_path: Path) -> None:
        template = make_template(7)
        write_png(tmp_path / "tpl.png", template)
        image = TemplateStore(tmp_path).load("tpl.png")
        assert image.shape == template.shape
        assert np.array_equal(image, template)

    def test_color_png_is_converted_to_gray(self, tmp_path: Path) -> None:
        color = np.zeros((10, 12, 3), dtype=np.uint8)
        color[:, :, 2] = 255
        write_png(tmp_path / "red.png", color)
        image = TemplateStore(tmp_path).load("red.png")
        assert image.ndim == 2
        assert image.shape == (10, 12)

    def test_loaded_image_is_read_only(self, tmp_path: Path) -> None:
        write_png(tmp_path / "tpl.png", make_template(7))
        image = TemplateStore(tmp_path).load("tpl.png")
        with pytest.raises(ValueError):
            image[0, 0] = 1

    def test_second_load_returns_same_array(self, tmp_path: Path) -> None:
        write_png(tmp_path / "tpl.png", make_template(7))
        store = TemplateStore(tmp_path)
        assert store.load("tpl.png") is store.load("tpl.png")
        assert len(store) == 1

    def test_existing_path_wins_over_template_dir(self, tmp_path: Path) -> None:
        other = write_png(tmp_path / "elsewhere" / "tpl.png", make_template(8))
        store = TemplateStore(tmp_path / "templates")
        assert np.array_equal(store.load(other), make_template(8))

    def test_path_name_resolved_inside_template_dir(self, tmp_path: Path) -> None:
        write_png(tmp_path / "templates" / "tpl.png", make_template(9))
        store = TemplateStore(tmp_path / "templates")
        assert store.resolve("Assets\\..\\missing/tpl.png") == tmp_path / "templates" / "tpl.png"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(TemplateLoadError, match="not found"):
            TemplateStore(tmp_path).load("missing.png")

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        (tmp_path / "bad.png").write_bytes(b"not a png at all")
        with pytest.raises(TemplateLoadError, match="decode failed"):
            TemplateStore(tmp_path).load("bad.png")

    def test_failed_load_is_not_cached(self, tmp_path: Path) -> None:
        store = TemplateStore(tmp_path)
        with pytest.raises(TemplateLoadError):
            store.load("late.png")
        write_png(tmp_path / "late.png", make_template(3))
        assert store.load("late.png").shape == (16, 24)

    def test_empty_name_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            TemplateStore(tmp_path).load("  ")


class TestBytesAndCache:
    """add_bytes / get_or_add / close."""

    def test_add_bytes_decodes(self) -> None:
        ok, buf = cv2.imencode(".png", make_template(4))
        assert ok
        image = TemplateStore().add_bytes("embedded/tpl.png", buf.tobytes())
        assert np.array_equal(image, make_template(4))

    def test_decode_empty_bytes_raises(self) -> None:
        with pytest.raises(TemplateLoadError, match="empty"):
            decode_gray(b"", "x.png")

    def test_first_insert_wins(self) -> None:
        store = TemplateStore()
        first = store.get_or_add("k", lambda: make_template(1))
        second_loader = MagicMock(return_value=make_template(2))
        assert store.get_or_add("k", second_loader) is first
        second_loader.assert_not_called()

    def test_concurrent_loads_call_loader_once(self) -> None:
        store = TemplateStore()
        loader = MagicMock(side_effect=lambda: make_template(1))
        results = []

        def worker() -> None:
            results.append(store.get_or_add("shared", loader))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert loader.call_count == 1
        assert all(r is results[0] for r in results)

    def test_close_releases_everything(self) -> None:
        store = TemplateStore()
        store.get_or_add("a", lambda: make_template(1))
        store.get_or_add("b", lambda: make_template(2))
        store.close()
        assert len(store) == 0
        assert "a" not in store
