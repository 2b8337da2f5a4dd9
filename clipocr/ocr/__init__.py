"""OCR 코어 모듈.

픽셀 버퍼를 CHW 텐서로 바꾸고, 탐지/인식 모델 쌍으로 텍스트 줄을 읽는다.

구성:
  - tensor: 픽셀 버퍼 → (3, H, W) float32 텐서
  - pipeline: 전처리 → 단어 탐지 → 줄 묶기 → 문자 인식 → 필터링
  - onnx_engine: ONNX Runtime 기반 엔진 (기본 엔진)
  - 기타: BaseOcrEngine을 상속하여 다른 추론 백엔드 추가 가능

사용법:
    from clipocr.ocr import OcrPipeline, OnnxOcrEngine, OcrEngineParams

    engine = OnnxOcrEngine(OcrEngineParams(model_dir="/path/to/models"))
    pipeline = OcrPipeline(engine)
    lines = pipeline.recognize(tensor)
"""

from .pipeline import OcrPipeline, OcrRunResult, filter_spurious_lines
from .base import BaseOcrEngine, WordRegion, LineRegion
from .base import (
    OcrError, NoImageAvailable, TensorConversionError, ShapeMismatch,
    UnsupportedFormat, ModelLoadError, OcrEngineError, EnginePrepareError,
    EngineDetectionError, EngineRecognitionError,
)
from .tensor import PixelBuffer, PixelLayout, StridedView, image_to_tensor
from .models import ModelHandle, load_model, load_model_file
from .onnx_engine import OnnxOcrEngine, OcrEngineParams

__all__ = [
    "OcrPipeline",
    "OcrRunResult",
    "filter_spurious_lines",
    "BaseOcrEngine",
    "OnnxOcrEngine",
    "OcrEngineParams",
    "WordRegion",
    "LineRegion",
    "PixelBuffer",
    "PixelLayout",
    "StridedView",
    "image_to_tensor",
    "ModelHandle",
    "load_model",
    "load_model_file",
    "OcrError",
    "NoImageAvailable",
    "TensorConversionError",
    "ShapeMismatch",
    "UnsupportedFormat",
    "ModelLoadError",
    "OcrEngineError",
    "EnginePrepareError",
    "EngineDetectionError",
    "EngineRecognitionError",
]
