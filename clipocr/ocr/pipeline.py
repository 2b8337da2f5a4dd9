"""OCR 파이프라인.

픽셀 버퍼 → 텐서 → 입력 전처리 → 단어 탐지 → 줄 묶기 → 문자 인식 → 필터링.
모든 OCR 실행은 이 파이프라인을 통해야 한다.

사용법:
    from clipocr.ocr import OcrPipeline, OnnxOcrEngine
    from clipocr.clipboard import ClipboardImageSource

    pipeline = OcrPipeline(OnnxOcrEngine())
    result = pipeline.run(ClipboardImageSource())
    for line in result.lines:
        print(line)

단계는 항상 이 순서로만 실행된다. 한 단계라도 실패하면 그 호출 전체가
실패하고, 부분 결과는 내보내지 않는다. 재시도는 하지 않는다.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

import numpy as np

from .base import (
    BaseOcrEngine,
    EngineDetectionError,
    EnginePrepareError,
    EngineRecognitionError,
    NoImageAvailable,
    OcrEngineError,
    OcrError,
)
from .tensor import PixelBuffer, image_to_tensor

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 이 길이(UTF-8 바이트) 이하의 인식 결과는 버린다
MIN_TEXT_BYTES = 1


def text_length(text: str) -> int:
    """필터링 기준 길이. UTF-8 인코딩 바이트 수.

    "é"는 1글자지만 2바이트이므로 살아남고, "a"는 버려진다.
    """
    return len(text.encode("utf-8"))


def filter_spurious_lines(texts: list[Optional[str]]) -> list[str]:
    """인식 결과를 평탄화하고 한 글자짜리 오탐을 제거한다.

    입력: 줄별 인식 결과 (없는 줄은 None)
    출력: 길이 > 1인 문자열만, 원래 순서대로

    예: ["a", "Hello", "", "OK", "x"] → ["Hello", "OK"]
    """
    # 한 글자 영역은 대부분 잡음 탐지다. 모델 품질이 좋아지면 필요 없어질 필터.
    return [
        text for text in texts
        if text is not None and text_length(text) > MIN_TEXT_BYTES
    ]


@dataclass
class OcrRunResult:
    """한 번의 파이프라인 실행 결과."""

    lines: list[str] = field(default_factory=list)
    image_available: bool = True
    width: int = 0
    height: int = 0
    word_count: int = 0
    line_count: int = 0
    elapsed_sec: float = 0.0

    def to_summary(self) -> dict:
        """진단 출력용 요약."""
        return {
            "status": "completed" if self.image_available else "no_image",
            "image_size": [self.width, self.height],
            "word_count": self.word_count,
            "line_count": self.line_count,
            "recognized_lines": len(self.lines),
            "elapsed_sec": round(self.elapsed_sec, 2),
            "lines": self.lines,
        }


class OcrPipeline:
    """OCR 파이프라인.

    주요 메서드:
      run(): 픽셀 소스에서 이미지를 얻어 전체 흐름 실행
      recognize_buffer(): 픽셀 버퍼 하나를 텐서로 바꿔 인식
      recognize(): 이미 변환된 (3, H, W) 텐서를 인식
    """

    def __init__(self, engine: BaseOcrEngine):
        """입력: engine — 탐지/인식 모델을 가진 엔진 파사드."""
        self.engine = engine
        self._last_counts = (0, 0)

    def run(self, source) -> OcrRunResult:
        """픽셀 소스에서 이미지를 얻어 OCR을 실행한다.

        입력: get_current_image()를 가진 소스 (ClipboardImageSource 등)
        출력: OcrRunResult

        이미지가 없으면 텐서 변환도 엔진 호출도 하지 않고
        image_available=False인 빈 결과를 돌려준다.
        """
        start_time = time.time()

        try:
            buffer = source.get_current_image()
        except NoImageAvailable as e:
            logger.info(f"이미지 없음: {e}")
            return OcrRunResult(image_available=False)

        logger.info(f"이미지 크기: {buffer.width}x{buffer.height}")

        lines = self.recognize_buffer(buffer)
        word_count, line_count = self._last_counts

        return OcrRunResult(
            lines=lines,
            width=buffer.width,
            height=buffer.height,
            word_count=word_count,
            line_count=line_count,
            elapsed_sec=time.time() - start_time,
        )

    def recognize_buffer(self, buffer: PixelBuffer) -> list[str]:
        """픽셀 버퍼 → 텐서 → recognize()."""
        tensor = image_to_tensor(buffer)
        logger.info("✅ 이미지를 텐서로 변환")
        return self.recognize(tensor)

    def recognize(self, image_tensor: np.ndarray) -> list[str]:
        """4단계를 순서대로 실행하고 필터링된 텍스트 줄을 반환한다.

        처리 순서:
          1. prepare_input — 그레이스케일 + [-0.5, 0.5] (엔진 내부)
          2. detect_words — 단어 영역 탐지
          3. find_text_lines — 줄 묶기 (실패하지 않음)
          4. recognize_text — 줄별 문자 인식

        에러: 첫 번째로 발생한 에러를 그대로 올린다.
          EnginePrepareError / EngineDetectionError / EngineRecognitionError,
          그리고 엔진이 모델을 lazy 로드하다 난 ModelLoadError 등.
        """
        engine = self.engine

        prepared = self._run_phase(
            EnginePrepareError, "입력 전처리",
            lambda: engine.prepare_input(image_tensor),
        )
        logger.info("✅ 입력 전처리 완료")

        words = self._run_phase(
            EngineDetectionError, "단어 탐지",
            lambda: engine.detect_words(prepared),
        )
        logger.info(f"✅ 단어 탐지 완료: {len(words)}개")

        lines = engine.find_text_lines(prepared, words)
        logger.info(f"✅ 줄 영역 분석 완료: {len(lines)}줄")

        texts = self._run_phase(
            EngineRecognitionError, "문자 인식",
            lambda: engine.recognize_text(prepared, lines),
        )
        if len(texts) != len(lines):
            raise EngineRecognitionError(
                f"문자 인식 단계 실패: 줄 {len(lines)}개에 결과 {len(texts)}개"
            )
        logger.info("✅ 문자 인식 완료")

        self._last_counts = (len(words), len(lines))
        return filter_spurious_lines(texts)

    @staticmethod
    def _run_phase(
        error_cls: type[OcrEngineError],
        label: str,
        func: Callable[[], T],
    ) -> T:
        """단계 하나를 실행한다.

        이미 분류된 에러(OcrError)는 그대로 올리고,
        그 밖의 예외는 단계 에러로 감싼다 (__cause__에 원본 보존).
        """
        try:
            return func()
        except OcrError:
            raise
        except Exception as e:
            raise error_cls(f"{label} 단계 실패: {e}") from e
