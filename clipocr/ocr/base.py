"""OCR 엔진 추상 클래스 + 영역 데이터 모델 + 에러 분류.

모든 추론 엔진은 BaseOcrEngine을 상속하고 4단계 연산을 구현한다:
  prepare_input → detect_words → find_text_lines → recognize_text

결과 데이터 모델:
  WordRegion: 단어 하나의 탐지 영역 (회전 사각형)
  LineRegion: 한 줄로 묶인 단어 영역들의 모음

에러 분류:
  OcrError를 최상위로, 단계별로 구분되는 하위 에러를 둔다.
  NoImageAvailable만 "정상 종료"로 취급되고 나머지는 모두 치명적이다.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


# ─── 에러 ──────────────────────────────────────────────

class OcrError(Exception):
    """이 패키지의 모든 에러의 기반 클래스."""
    pass


class NoImageAvailable(OcrError):
    """클립보드(또는 파일)에 이미지가 없음. 안내 메시지만 출력하고 정상 종료."""
    pass


class TensorConversionError(OcrError):
    """픽셀 버퍼 → 텐서 변환 실패."""
    pass


class ShapeMismatch(TensorConversionError):
    """선언된 크기/stride가 버퍼 길이와 맞지 않음."""
    pass


class UnsupportedFormat(TensorConversionError):
    """채널이 3개 미만인 픽셀 형식."""
    pass


class ModelLoadError(OcrError):
    """모델 파일이 손상되었거나 호환되지 않음."""
    pass


class OcrEngineError(OcrError):
    """추론 엔진 실행 중 에러. 어느 단계에서 실패했는지는 하위 클래스로 구분."""

    phase = "engine"


class EnginePrepareError(OcrEngineError):
    """입력 전처리 단계 실패 (텐서 형태 거부 등)."""

    phase = "prepare"


class EngineDetectionError(OcrEngineError):
    """단어 탐지 단계 실패."""

    phase = "detect"


class EngineRecognitionError(OcrEngineError):
    """문자 인식 단계 실패."""

    phase = "recognize"


# ─── 영역 데이터 모델 ──────────────────────────────────

@dataclass
class WordRegion:
    """단어 하나의 탐지 영역.

    corners: 회전 사각형의 4꼭짓점 [(x, y), ...] (이미지 픽셀 좌표)
    confidence: 탐지 확률 평균 (0.0~1.0, 없으면 0.0)

    bbox 형식: [x_min, y_min, x_max, y_max]
    """

    corners: list[tuple[float, float]]
    confidence: float = 0.0

    @classmethod
    def from_bbox(cls, bbox: list[float], confidence: float = 0.0) -> "WordRegion":
        """축 정렬 사각형 [x_min, y_min, x_max, y_max]로 만든다."""
        x_min, y_min, x_max, y_max = bbox
        return cls(
            corners=[(x_min, y_min), (x_max, y_min), (x_max, y_max), (x_min, y_max)],
            confidence=confidence,
        )

    @property
    def bbox(self) -> list[float]:
        xs = [p[0] for p in self.corners]
        ys = [p[1] for p in self.corners]
        return [min(xs), min(ys), max(xs), max(ys)]

    @property
    def width(self) -> float:
        x_min, _, x_max, _ = self.bbox
        return x_max - x_min

    @property
    def height(self) -> float:
        _, y_min, _, y_max = self.bbox
        return y_max - y_min

    @property
    def center(self) -> tuple[float, float]:
        x_min, y_min, x_max, y_max = self.bbox
        return ((x_min + x_max) / 2, (y_min + y_max) / 2)

    def to_dict(self) -> dict:
        result: dict = {"bbox": [round(v, 2) for v in self.bbox]}
        if self.confidence > 0:
            result["confidence"] = round(self.confidence, 4)
        return result


@dataclass
class LineRegion:
    """한 줄로 묶인 단어 영역들. words는 왼쪽→오른쪽 순서."""

    words: list[WordRegion] = field(default_factory=list)

    @property
    def bbox(self) -> Optional[list[float]]:
        """모든 단어 bbox의 합집합. 단어가 없으면 None."""
        if not self.words:
            return None
        boxes = [w.bbox for w in self.words]
        return [
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        ]

    def to_dict(self) -> dict:
        bbox = self.bbox
        return {
            "bbox": [round(v, 2) for v in bbox] if bbox else None,
            "words": [w.to_dict() for w in self.words],
        }


# ─── 추상 클래스 ───────────────────────────────────────

class BaseOcrEngine(ABC):
    """추론 엔진 추상 클래스.

    탐지 모델과 인식 모델을 하나의 파사드로 감싼다.
    파이프라인은 이 4개 연산만 순서대로 호출하고, 내부 표현(PreparedInput)은
    엔진마다 다르므로 파이프라인 입장에서는 불투명하다.

    테스트에서는 이 클래스를 상속한 더미 엔진으로 고정된 영역/텍스트를
    돌려주어 실제 추론 없이 파이프라인을 검증한다.
    """

    engine_id: str = ""
    display_name: str = ""

    @abstractmethod
    def is_available(self) -> bool:
        """엔진이 사용 가능한지 확인 (런타임 설치, 모델 파일 존재 등)."""
        raise NotImplementedError

    @abstractmethod
    def prepare_input(self, image_tensor) -> Any:
        """(3, H, W) float32 텐서를 엔진 입력 형식으로 변환한다.

        에러: EnginePrepareError — 텐서 형태를 받아들일 수 없을 때
        """
        raise NotImplementedError

    @abstractmethod
    def detect_words(self, prepared: Any) -> list[WordRegion]:
        """단어 영역을 탐지한다. 순서는 엔진의 스캔 순서(정렬 보장 없음).

        에러: EngineDetectionError
        """
        raise NotImplementedError

    @abstractmethod
    def find_text_lines(
        self, prepared: Any, words: list[WordRegion],
    ) -> list[LineRegion]:
        """단어 영역을 줄 단위로 묶는다. 실패하지 않는다 (빈 입력 → 빈 출력)."""
        raise NotImplementedError

    @abstractmethod
    def recognize_text(
        self, prepared: Any, lines: list[LineRegion],
    ) -> list[Optional[str]]:
        """줄마다 텍스트를 인식한다. 출력 길이 = 입력 줄 수, 순서 유지.

        인식 결과가 없는 줄은 None.

        에러: EngineRecognitionError
        """
        raise NotImplementedError

    def get_info(self) -> dict:
        """엔진 정보를 딕셔너리로 반환. 진단 출력용."""
        return {
            "engine_id": self.engine_id,
            "display_name": self.display_name,
            "available": self.is_available(),
        }
