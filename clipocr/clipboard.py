"""픽셀 소스: 클립보드 / 이미지 파일 → PixelBuffer.

모든 소스는 get_current_image()를 제공한다.
이미지를 얻을 수 없으면 NoImageAvailable을 올린다 (치명적 에러 아님).

클립보드 접근은 Pillow의 ImageGrab.grabclipboard()를 사용한다.
  - Windows/macOS: 기본 지원
  - Linux: wl-paste(Wayland) 또는 xclip(X11) 필요
"""

from __future__ import annotations
import logging
from pathlib import Path

from PIL import Image, ImageGrab

from .ocr.base import NoImageAvailable
from .ocr.tensor import PixelBuffer

logger = logging.getLogger(__name__)


class ClipboardImageSource:
    """시스템 클립보드의 이미지를 읽는다.

    클립보드에 파일 경로 목록이 들어 있으면(파일 탐색기에서 복사한 경우)
    처음으로 열리는 이미지 파일을 사용한다.
    """

    def get_current_image(self) -> PixelBuffer:
        try:
            content = ImageGrab.grabclipboard()
        except Exception as e:
            # 클립보드 백엔드가 없거나(xclip 미설치 등) 읽기 실패
            raise NoImageAvailable(f"클립보드를 읽을 수 없습니다: {e}") from e

        if isinstance(content, Image.Image):
            return PixelBuffer.from_image(content)

        if isinstance(content, list):
            for path in content:
                try:
                    return FileImageSource(path).get_current_image()
                except NoImageAvailable:
                    logger.debug(f"클립보드 파일이 이미지가 아님: {path}")

        raise NoImageAvailable("클립보드에 이미지가 없습니다")


class FileImageSource:
    """이미지 파일을 읽는다 (PNG, JPEG, BMP 등)."""

    def __init__(self, path):
        self.path = Path(path)

    def get_current_image(self) -> PixelBuffer:
        try:
            with Image.open(self.path) as img:
                img.load()  # lazy loading 방지
                return PixelBuffer.from_image(img)
        except (OSError, ValueError) as e:
            raise NoImageAvailable(f"이미지를 열 수 없습니다: {self.path} — {e}") from e
