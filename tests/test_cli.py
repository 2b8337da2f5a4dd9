"""CLI 테스트.

더미 엔진을 주입해 stdout 출력과 종료 코드를 검증한다.
"""

import pytest
from PIL import Image

from clipocr.__main__ import main
from clipocr.ocr.base import BaseOcrEngine, EngineDetectionError, LineRegion, WordRegion


class FixedTextEngine(BaseOcrEngine):
    """고정된 줄을 인식 결과로 돌려주는 더미 엔진."""
    engine_id = "fixed"
    display_name = "Fixed"

    def __init__(self, texts, fail_detect=False):
        self.texts = texts
        self.fail_detect = fail_detect
        self.called = False

    def is_available(self):
        return True

    def prepare_input(self, image_tensor):
        self.called = True
        return image_tensor

    def detect_words(self, prepared):
        if self.fail_detect:
            raise EngineDetectionError("단어 탐지 실패: 모델 가중치 손상")
        return [WordRegion.from_bbox([0, i * 10, 10, i * 10 + 5]) for i in range(len(self.texts))]

    def find_text_lines(self, prepared, words):
        return [LineRegion(words=[w]) for w in words]

    def recognize_text(self, prepared, lines):
        return list(self.texts)


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "test.png"
    Image.new("RGB", (40, 20), "white").save(path)
    return path


class TestCli:
    def test_prints_filtered_lines(self, image_path, capsys):
        engine = FixedTextEngine(["Hello", "a", None, "World"])

        code = main(["--image", str(image_path)], engine=engine)

        assert code == 0
        assert capsys.readouterr().out.splitlines() == ["Hello", "World"]

    def test_empty_clipboard(self, monkeypatch, capsys):
        monkeypatch.setattr("clipocr.clipboard.ImageGrab.grabclipboard", lambda: None)
        engine = FixedTextEngine(["Hello"])

        code = main([], engine=engine)

        assert code == 0
        assert capsys.readouterr().out.strip() == "클립보드에 이미지가 없습니다"
        assert engine.called is False

    def test_missing_image_file(self, tmp_path, capsys):
        code = main(["--image", str(tmp_path / "nope.png")], engine=FixedTextEngine([]))
        assert code == 0
        assert "이미지를 읽을 수 없습니다" in capsys.readouterr().out

    def test_engine_failure(self, image_path, capsys):
        engine = FixedTextEngine(["Hello"], fail_detect=True)

        code = main(["--image", str(image_path)], engine=engine)

        captured = capsys.readouterr()
        assert code == 1
        assert captured.out == ""
        assert "오류: 단어 탐지 실패" in captured.err

    def test_missing_models_is_error(self, image_path, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("CLIPOCR_MODEL_URL", raising=False)
        monkeypatch.setenv("CLIPOCR_CONFIG", str(tmp_path / "none.yaml"))

        code = main(["--image", str(image_path), "--model-dir", str(tmp_path / "models")])

        assert code == 1
        assert "모델 파일을 찾을 수 없습니다" in capsys.readouterr().err
