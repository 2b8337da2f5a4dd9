"""픽셀 소스(클립보드/파일) 테스트.

실제 클립보드 대신 ImageGrab.grabclipboard를 monkeypatch한다.
"""

import pytest
from PIL import Image

from clipocr.clipboard import ClipboardImageSource, FileImageSource
from clipocr.ocr.base import NoImageAvailable


def patch_clipboard(monkeypatch, func):
    monkeypatch.setattr("clipocr.clipboard.ImageGrab.grabclipboard", func)


class TestClipboardImageSource:
    def test_image_in_clipboard(self, monkeypatch):
        patch_clipboard(monkeypatch, lambda: Image.new("RGB", (30, 20), "red"))

        buf = ClipboardImageSource().get_current_image()

        assert (buf.width, buf.height) == (30, 20)
        assert buf.layout.channels == 4
        assert len(buf.data) == 30 * 20 * 4
        assert buf.data[:4] == bytes([255, 0, 0, 255])

    def test_empty_clipboard(self, monkeypatch):
        patch_clipboard(monkeypatch, lambda: None)
        with pytest.raises(NoImageAvailable, match="클립보드에 이미지가 없습니다"):
            ClipboardImageSource().get_current_image()

    def test_backend_failure_is_no_image(self, monkeypatch):
        def unsupported():
            raise NotImplementedError("wl-paste or xclip is required")

        patch_clipboard(monkeypatch, unsupported)
        with pytest.raises(NoImageAvailable, match="클립보드를 읽을 수 없습니다"):
            ClipboardImageSource().get_current_image()

    def test_file_list_uses_first_image(self, tmp_path, monkeypatch):
        text_file = tmp_path / "notes.txt"
        text_file.write_text("hello")
        image_file = tmp_path / "shot.png"
        Image.new("RGB", (5, 7), "blue").save(image_file)

        patch_clipboard(monkeypatch, lambda: [str(text_file), str(image_file)])
        buf = ClipboardImageSource().get_current_image()
        assert (buf.width, buf.height) == (5, 7)

    def test_file_list_without_images(self, tmp_path, monkeypatch):
        text_file = tmp_path / "notes.txt"
        text_file.write_text("hello")
        patch_clipboard(monkeypatch, lambda: [str(text_file)])
        with pytest.raises(NoImageAvailable):
            ClipboardImageSource().get_current_image()


class TestFileImageSource:
    def test_load_png(self, tmp_path):
        path = tmp_path / "test.png"
        Image.new("RGBA", (12, 8), (1, 2, 3, 4)).save(path)

        buf = FileImageSource(path).get_current_image()

        assert (buf.width, buf.height) == (12, 8)
        assert buf.data[:4] == bytes([1, 2, 3, 4])

    def test_missing_file(self, tmp_path):
        with pytest.raises(NoImageAvailable, match="이미지를 열 수 없습니다"):
            FileImageSource(tmp_path / "nonexistent.png").get_current_image()
