"""OCR 설정 관리.

설정 우선순위: 환경변수 → YAML 설정 파일 → 기본값.

설정 파일: 환경변수 CLIPOCR_CONFIG 또는 ~/.clipboard-ocr/config.yaml

예시 (config.yaml):
    model_dir: ~/models/ocr
    detection_model: text-detection.onnx
    text_threshold: 0.3
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from .ocr.models import DETECTION_MODEL_FILE, RECOGNITION_MODEL_FILE

logger = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".clipboard-ocr" / "config.yaml"


class OcrConfig:
    """OCR 설정.

    사용법:
        config = OcrConfig()
        model_dir = config.get("model_dir")
        params = config.engine_params()
    """

    DEFAULTS = {
        "model_dir": None,
        "detection_model": DETECTION_MODEL_FILE,
        "recognition_model": RECOGNITION_MODEL_FILE,
        "model_url_base": None,
        "text_threshold": 0.2,
        "min_word_area": 100.0,
    }

    # 환경변수명 매핑
    ENV_NAMES = {
        "model_dir": "CLIPOCR_MODEL_PATH",
        "model_url_base": "CLIPOCR_MODEL_URL",
        "text_threshold": "CLIPOCR_TEXT_THRESHOLD",
    }

    # 숫자 설정은 환경변수(문자열)에서 변환
    _FLOAT_KEYS = {"text_threshold", "min_word_area"}

    def __init__(self, config_path: Optional[str] = None):
        if config_path is None:
            config_path = os.environ.get("CLIPOCR_CONFIG") or str(CONFIG_FILE)
        self.config_path = Path(config_path).expanduser()
        self._file_values = self._load_file(self.config_path)

    @staticmethod
    def _load_file(path: Path) -> dict:
        """YAML 설정 파일을 읽는다. 없거나 잘못되었으면 빈 dict."""
        if not path.exists():
            return {}

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logger.warning(f"설정 파일 읽기 실패 (기본값 사용): {path} — {e}")
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"설정 파일 형식 오류 (기본값 사용): {path}")
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """설정값 조회. 우선순위: 환경변수 → 설정 파일 → DEFAULTS → default."""
        env_name = self.ENV_NAMES.get(key)
        if env_name and os.environ.get(env_name):
            value: Any = os.environ[env_name]
        elif self._file_values.get(key) is not None:
            value = self._file_values[key]
        elif self.DEFAULTS.get(key) is not None:
            value = self.DEFAULTS[key]
        else:
            return default

        if key in self._FLOAT_KEYS:
            try:
                return float(value)
            except (TypeError, ValueError):
                logger.warning(f"숫자가 아닌 설정값 무시: {key}={value!r}")
                return self.DEFAULTS[key]
        return value

    def engine_params(self, model_dir: Optional[str] = None):
        """OnnxOcrEngine 구성 옵션을 만든다. model_dir 인자가 설정보다 우선."""
        from .ocr.onnx_engine import OcrEngineParams

        return OcrEngineParams(
            model_dir=model_dir or self.get("model_dir"),
            detection_model_file=self.get("detection_model"),
            recognition_model_file=self.get("recognition_model"),
            model_url_base=self.get("model_url_base"),
            text_threshold=self.get("text_threshold"),
            min_word_area=self.get("min_word_area"),
        )
