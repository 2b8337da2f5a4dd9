"""ONNX Runtime 기반 OCR 엔진.

탐지 모델 + 인식 모델 두 개의 ONNX 세션을 하나의 파사드로 감싼다.

구성:
  prepare_input: RGB → 그레이스케일, [0, 1] → [-0.5, 0.5]
  detect_words: 탐지 모델 → 텍스트 확률 맵 → 연결 요소 → 회전 사각형
  find_text_lines: layout.group_words_into_lines
  recognize_text: 줄 크롭 → 높이 64로 리사이즈 → 인식 모델 → CTC 디코딩

모델 입출력 형식:
  탐지: 입력 (1, 1, H, W) → 출력 (1, C, H, W), 채널 0 = 텍스트 확률
  인식: 입력 (1, 1, 64, W) → 출력 (seq, 1, classes), 클래스 0 = CTC blank

의존성:
  onnxruntime, opencv-python-headless, numpy
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .base import (
    BaseOcrEngine,
    EngineDetectionError,
    EnginePrepareError,
    EngineRecognitionError,
    LineRegion,
    ModelLoadError,
    OcrError,
    WordRegion,
)
from .layout import group_words_into_lines
from .models import (
    DETECTION_MODEL_FILE,
    RECOGNITION_MODEL_FILE,
    ModelHandle,
    ensure_models,
    get_model_dir,
    load_model_file,
    models_available,
)

logger = logging.getLogger(__name__)

# ITU-R BT.601 휘도 가중치 (R, G, B)
GRAY_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)

# 인식 모델의 클래스 i(>=1)는 DEFAULT_ALPHABET[i - 1]. 클래스 0은 CTC blank.
DEFAULT_ALPHABET = (
    " 0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"
)

# 동적 입력 크기의 탐지 모델은 32의 배수로 패딩
_DETECTION_ALIGN = 32


@dataclass
class OcrEngineParams:
    """엔진 구성 옵션.

    detection_model / recognition_model을 주입하면 그대로 사용하고,
    None이면 첫 사용 시 model_dir의 detection_model_file /
    recognition_model_file을 lazy 로드한다.
    """

    detection_model: Optional[ModelHandle] = None
    recognition_model: Optional[ModelHandle] = None
    model_dir: Optional[str] = None
    detection_model_file: str = DETECTION_MODEL_FILE
    recognition_model_file: str = RECOGNITION_MODEL_FILE
    model_url_base: Optional[str] = None
    text_threshold: float = 0.2
    min_word_area: float = 100.0
    recognition_height: int = 64
    alphabet: str = DEFAULT_ALPHABET


@dataclass
class PreparedInput:
    """전처리된 엔진 입력. image: (1, H, W) float32, 값 범위 [-0.5, 0.5]."""

    image: np.ndarray

    @property
    def height(self) -> int:
        return int(self.image.shape[1])

    @property
    def width(self) -> int:
        return int(self.image.shape[2])


def ctc_greedy_decode(scores: np.ndarray, alphabet: str) -> str:
    """CTC greedy 디코딩.

    입력: (seq, classes) 점수
    처리: 시점별 argmax → 연속 중복 제거 → blank(0) 제거 → 문자 매핑
    """
    best = np.argmax(scores, axis=-1)
    chars = []
    prev = -1
    for idx in best:
        idx = int(idx)
        if idx != prev and idx != 0 and idx - 1 < len(alphabet):
            chars.append(alphabet[idx - 1])
        prev = idx
    return "".join(chars)


class OnnxOcrEngine(BaseOcrEngine):
    """ONNX 탐지/인식 모델 쌍으로 동작하는 오프라인 OCR 엔진.

    사용법:
        engine = OnnxOcrEngine(OcrEngineParams(model_dir="~/models"))
        prepared = engine.prepare_input(tensor)
        words = engine.detect_words(prepared)
        lines = engine.find_text_lines(prepared, words)
        texts = engine.recognize_text(prepared, lines)
    """

    engine_id = "onnx"
    display_name = "ONNX Runtime OCR (오프라인)"

    def __init__(self, params: Optional[OcrEngineParams] = None):
        self.params = params or OcrEngineParams()
        self._detection = self.params.detection_model
        self._recognition = self.params.recognition_model
        self._available: Optional[bool] = None

    # ── 공개 인터페이스 ──────────────────────────────────────

    def is_available(self) -> bool:
        """onnxruntime 설치 + 모델(주입 또는 파일) 존재 여부. 결과는 캐시."""
        if self._available is not None:
            return self._available

        try:
            import onnxruntime  # noqa: F401
        except ImportError:
            logger.info("onnxruntime 미설치 — OCR 엔진 사용 불가")
            self._available = False
            return False

        injected = self._detection is not None and self._recognition is not None
        self._available = (
            injected
            or models_available(self.params.model_dir, self._model_files())
            or bool(self.params.model_url_base)
        )
        return self._available

    def prepare_input(self, image_tensor) -> PreparedInput:
        """(C, H, W) 텐서(C = 1 또는 3)를 그레이스케일 [-0.5, 0.5]로 변환한다."""
        if not isinstance(image_tensor, np.ndarray) or image_tensor.ndim != 3:
            raise EnginePrepareError(
                f"입력 텐서는 (C, H, W) 3차원이어야 합니다: "
                f"{getattr(image_tensor, 'shape', type(image_tensor))}"
            )

        channels, height, width = image_tensor.shape
        if channels not in (1, 3) or height == 0 or width == 0:
            raise EnginePrepareError(
                f"지원하지 않는 텐서 형태입니다: {image_tensor.shape}"
            )

        if channels == 3:
            gray = np.tensordot(GRAY_WEIGHTS, image_tensor, axes=1)
        else:
            gray = image_tensor[0]

        image = (gray.astype(np.float32) - np.float32(0.5))[np.newaxis, :, :]
        return PreparedInput(image=np.ascontiguousarray(image))

    def detect_words(self, prepared: PreparedInput) -> list[WordRegion]:
        """텍스트 확률 맵에서 단어 영역을 추출한다. 순서는 래스터 스캔 순서."""
        self._init_models()
        try:
            prob = self._run_detection(prepared)
            return self._words_from_probability(prob)
        except OcrError:
            raise
        except Exception as e:
            raise EngineDetectionError(f"단어 탐지 실패: {e}") from e

    def find_text_lines(
        self, prepared: PreparedInput, words: list[WordRegion],
    ) -> list[LineRegion]:
        return group_words_into_lines(words)

    def recognize_text(
        self, prepared: PreparedInput, lines: list[LineRegion],
    ) -> list[Optional[str]]:
        """줄마다 인식 모델을 실행한다. 결과가 없는 줄은 None."""
        if not lines:
            return []

        self._init_models()
        try:
            return [self._recognize_line(prepared, line) for line in lines]
        except OcrError:
            raise
        except Exception as e:
            raise EngineRecognitionError(f"문자 인식 실패: {e}") from e

    def get_info(self) -> dict:
        info = super().get_info()
        info["model_dir"] = str(get_model_dir(self.params.model_dir))
        info["models_loaded"] = (
            self._detection is not None and self._recognition is not None
        )
        return info

    # ── 내부 헬퍼 ────────────────────────────────────────────

    def _model_files(self) -> list[str]:
        return [self.params.detection_model_file, self.params.recognition_model_file]

    def _init_models(self) -> None:
        """주입되지 않은 모델을 lazy 로드한다."""
        if self._detection is not None and self._recognition is not None:
            return

        model_dir = ensure_models(
            self.params.model_dir, self.params.model_url_base, self._model_files(),
        )
        if model_dir is None:
            raise ModelLoadError(
                f"모델 파일을 찾을 수 없습니다: {get_model_dir(self.params.model_dir)} "
                f"({', '.join(self._model_files())})"
            )

        logger.info("모델 로딩 중...")
        if self._detection is None:
            self._detection = load_model_file(model_dir / self.params.detection_model_file)
        if self._recognition is None:
            self._recognition = load_model_file(model_dir / self.params.recognition_model_file)
        logger.info("✅ 모델 로딩 완료")

    def _run_detection(self, prepared: PreparedInput) -> np.ndarray:
        """탐지 모델을 실행해 원본 크기의 (H, W) 텍스트 확률 맵을 얻는다.

        고정 입력 크기 모델: 리사이즈 후 실행, 출력을 원본 크기로 되돌림.
        동적 입력 크기 모델: 32의 배수로 패딩 후 실행, 출력에서 패딩 제거.
        """
        import cv2

        img = prepared.image[0]
        height, width = img.shape
        fixed = self._detection.fixed_input_size()

        if fixed is not None:
            model_h, model_w = fixed
            model_input = cv2.resize(img, (model_w, model_h), interpolation=cv2.INTER_LINEAR)
        else:
            pad_h = math.ceil(height / _DETECTION_ALIGN) * _DETECTION_ALIGN - height
            pad_w = math.ceil(width / _DETECTION_ALIGN) * _DETECTION_ALIGN - width
            model_input = np.pad(img, ((0, pad_h), (0, pad_w)), mode="edge")

        output = self._detection.run(
            model_input[np.newaxis, np.newaxis, :, :].astype(np.float32)
        )
        prob = np.asarray(output, dtype=np.float32)[0, 0]

        if fixed is not None:
            prob = cv2.resize(prob, (width, height), interpolation=cv2.INTER_LINEAR)
        else:
            prob = prob[:height, :width]
        return prob

    def _words_from_probability(self, prob: np.ndarray) -> list[WordRegion]:
        """확률 맵 → 이진 마스크 → 연결 요소별 최소 면적 회전 사각형."""
        import cv2

        mask = (prob > self.params.text_threshold).astype(np.uint8)
        count, labels, stats, _ = cv2.connectedComponentsWithStats(mask, connectivity=8)

        words = []
        # 라벨 0은 배경. 라벨 번호는 래스터 스캔에서 처음 만난 순서.
        for label in range(1, count):
            if stats[label, cv2.CC_STAT_AREA] < self.params.min_word_area:
                continue
            # 요소의 외접 사각형 안에서만 라벨 비교
            left, top, width, height = (int(v) for v in stats[label, :4])
            ys, xs = np.nonzero(labels[top:top + height, left:left + width] == label)
            ys += top
            xs += left
            points = np.column_stack([xs, ys]).astype(np.float32)
            corners = cv2.boxPoints(cv2.minAreaRect(points))
            words.append(WordRegion(
                corners=[(float(x), float(y)) for x, y in corners],
                confidence=float(prob[ys, xs].mean()),
            ))

        logger.debug(f"단어 영역 {len(words)}개 (연결 요소 {count - 1}개)")
        return words

    def _recognize_line(
        self, prepared: PreparedInput, line: LineRegion,
    ) -> Optional[str]:
        """줄 하나를 크롭해서 인식한다."""
        import cv2

        bbox = line.bbox
        if bbox is None:
            return None

        x0 = max(0, int(math.floor(bbox[0])))
        y0 = max(0, int(math.floor(bbox[1])))
        x1 = min(prepared.width, int(math.ceil(bbox[2])))
        y1 = min(prepared.height, int(math.ceil(bbox[3])))
        if x1 <= x0 or y1 <= y0:
            return None

        crop = prepared.image[0, y0:y1, x0:x1]
        out_h = self.params.recognition_height
        out_w = max(1, round((x1 - x0) * out_h / (y1 - y0)))
        resized = cv2.resize(crop, (out_w, out_h), interpolation=cv2.INTER_LINEAR)

        output = self._recognition.run(
            resized[np.newaxis, np.newaxis, :, :].astype(np.float32)
        )
        scores = np.asarray(output)[:, 0, :]
        text = ctc_greedy_decode(scores, self.params.alphabet)
        return text or None
