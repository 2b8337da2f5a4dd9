"""모델 로딩 + 모델 파일 관리 테스트."""

import sys
from contextlib import contextmanager
from types import SimpleNamespace

import httpx
import pytest

from clipocr.ocr.base import ModelLoadError
from clipocr.ocr.models import (
    MODEL_FILES,
    ModelHandle,
    ensure_models,
    get_model_dir,
    load_model,
    load_model_file,
    models_available,
)


class FakeSession:
    def __init__(self, shape):
        self.shape = shape

    def get_inputs(self):
        return [SimpleNamespace(name="x", shape=self.shape)]

    def get_outputs(self):
        return [SimpleNamespace(name="y")]

    def run(self, output_names, feeds):
        return [feeds["x"] * 2]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("CLIPOCR_MODEL_PATH", raising=False)


class TestModelHandle:
    def test_run_uses_first_input_and_output(self):
        handle = ModelHandle(FakeSession([1, 1, "h", "w"]), name="fake")
        assert handle.input_names == ["x"]
        assert handle.output_names == ["y"]
        assert handle.run(3) == 6

    def test_fixed_input_size(self):
        assert ModelHandle(FakeSession([1, 1, 800, 600])).fixed_input_size() == (800, 600)
        assert ModelHandle(FakeSession([1, 1, "h", "w"])).fixed_input_size() is None
        assert ModelHandle(FakeSession([1, 64])).fixed_input_size() is None


class TestLoadModel:
    def test_empty_bytes(self):
        with pytest.raises(ModelLoadError, match="비어 있습니다"):
            load_model(b"")

    def test_garbage_bytes(self):
        with pytest.raises(ModelLoadError, match="로드할 수 없습니다"):
            load_model(b"\x00\x01 definitely not onnx", name="garbage.onnx")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ModelLoadError, match="읽을 수 없습니다"):
            load_model_file(tmp_path / "nope.onnx")

    def test_missing_onnxruntime(self, monkeypatch):
        """onnxruntime 미설치도 ModelLoadError로 보고한다."""
        monkeypatch.setitem(sys.modules, "onnxruntime", None)
        with pytest.raises(ModelLoadError, match="onnxruntime"):
            load_model(b"model bytes", name="det.onnx")


class TestModelDir:
    def test_explicit_dir_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CLIPOCR_MODEL_PATH", "/somewhere/else")
        assert get_model_dir(str(tmp_path)) == tmp_path

    def test_env_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CLIPOCR_MODEL_PATH", str(tmp_path))
        assert get_model_dir() == tmp_path

    def test_default_dir(self):
        assert get_model_dir().name == "models"

    def test_models_available(self, tmp_path):
        assert not models_available(str(tmp_path))
        for fname in MODEL_FILES:
            (tmp_path / fname).write_bytes(b"x")
        assert models_available(str(tmp_path))

    def test_models_available_custom_names(self, tmp_path):
        (tmp_path / "det.onnx").write_bytes(b"x")
        assert not models_available(str(tmp_path), ["det.onnx", "rec.onnx"])
        (tmp_path / "rec.onnx").write_bytes(b"x")
        assert models_available(str(tmp_path), ["det.onnx", "rec.onnx"])
        assert not models_available(str(tmp_path))


class TestEnsureModels:
    def test_existing_models(self, tmp_path):
        for fname in MODEL_FILES:
            (tmp_path / fname).write_bytes(b"x")
        assert ensure_models(str(tmp_path)) == tmp_path

    def test_missing_without_url(self, tmp_path):
        assert ensure_models(str(tmp_path)) is None

    def test_download(self, tmp_path, monkeypatch):
        requested = []

        @contextmanager
        def fake_stream(method, url, **kwargs):
            requested.append(url)
            yield SimpleNamespace(
                raise_for_status=lambda: None,
                iter_bytes=lambda chunk_size: iter([b"onnx", b"bytes"]),
            )

        monkeypatch.setattr(httpx, "stream", fake_stream)
        target = tmp_path / "models"

        assert ensure_models(str(target), url_base="https://example.com/m/") == target
        assert requested == [
            "https://example.com/m/text-detection.onnx",
            "https://example.com/m/text-recognition.onnx",
        ]
        assert (target / "text-detection.onnx").read_bytes() == b"onnxbytes"

    def test_download_failure_removes_partial(self, tmp_path, monkeypatch):
        @contextmanager
        def failing_stream(method, url, **kwargs):
            def chunks(chunk_size):
                yield b"partial"
                raise httpx.ReadError("connection reset")

            yield SimpleNamespace(raise_for_status=lambda: None, iter_bytes=chunks)

        monkeypatch.setattr(httpx, "stream", failing_stream)

        assert ensure_models(str(tmp_path), url_base="https://example.com") is None
        for fname in MODEL_FILES:
            assert not (tmp_path / fname).exists()

    def test_download_only_missing_custom_files(self, tmp_path, monkeypatch):
        requested = []

        @contextmanager
        def fake_stream(method, url, **kwargs):
            requested.append(url)
            yield SimpleNamespace(
                raise_for_status=lambda: None,
                iter_bytes=lambda chunk_size: iter([b"rec"]),
            )

        monkeypatch.setattr(httpx, "stream", fake_stream)
        (tmp_path / "det.onnx").write_bytes(b"det")

        result = ensure_models(
            str(tmp_path), url_base="https://example.com/m",
            model_files=["det.onnx", "rec.onnx"],
        )

        assert result == tmp_path
        assert requested == ["https://example.com/m/rec.onnx"]
        assert (tmp_path / "rec.onnx").read_bytes() == b"rec"
