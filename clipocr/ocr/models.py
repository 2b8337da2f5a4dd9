"""ONNX 모델 로딩 + 모델 파일 관리.

탐지 모델(text-detection)과 인식 모델(text-recognition) 두 개를 사용한다.
모델은 바이트 또는 파일 경로로부터 ONNX Runtime 세션으로 로드한다.

모델 디렉토리 우선순위:
  1. 명시적으로 넘긴 경로 (CLI --model-dir, 설정 파일)
  2. 환경변수 CLIPOCR_MODEL_PATH
  3. 기본 캐시 디렉토리 (~/.cache/clipboard-ocr/models/)

다운로드 기준 URL이 설정되어 있으면 없는 모델 파일을 자동 다운로드한다.
설정이 없으면 다운로드하지 않는다 (모델은 사용자가 직접 배치).
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from .base import ModelLoadError

logger = logging.getLogger(__name__)

_DEFAULT_MODEL_DIR = Path.home() / ".cache" / "clipboard-ocr" / "models"

DETECTION_MODEL_FILE = "text-detection.onnx"
RECOGNITION_MODEL_FILE = "text-recognition.onnx"

MODEL_FILES = [DETECTION_MODEL_FILE, RECOGNITION_MODEL_FILE]


class ModelHandle:
    """로드된 모델 하나. 추론 시 읽기 전용으로만 사용한다.

    session은 onnxruntime.InferenceSession (테스트에서는 run()/get_inputs()/
    get_outputs()를 가진 가짜 세션).
    """

    def __init__(self, session, name: str = ""):
        self.session = session
        self.name = name
        self.input_names = [inp.name for inp in session.get_inputs()]
        self.output_names = [out.name for out in session.get_outputs()]
        self.input_shape = list(session.get_inputs()[0].shape)

    def run(self, input_tensor):
        """첫 번째 입력에 텐서를 넣고 첫 번째 출력을 반환한다."""
        outputs = self.session.run(
            self.output_names,
            {self.input_names[0]: input_tensor},
        )
        return outputs[0]

    def fixed_input_size(self) -> Optional[tuple[int, int]]:
        """모델 입력의 (H, W)가 고정 크기이면 반환, 동적이면 None."""
        if len(self.input_shape) != 4:
            return None
        height, width = self.input_shape[2:]
        if isinstance(height, int) and isinstance(width, int):
            return height, width
        return None

    def __repr__(self) -> str:
        return f"ModelHandle(name={self.name!r}, inputs={self.input_names})"


def _create_session(model, name: str) -> ModelHandle:
    try:
        import onnxruntime
    except ImportError as e:
        raise ModelLoadError(
            f"onnxruntime가 설치되어 있지 않습니다 (pip install onnxruntime): {e}"
        ) from e

    opt_session = onnxruntime.SessionOptions()
    try:
        session = onnxruntime.InferenceSession(
            model, opt_session, providers=["CPUExecutionProvider"],
        )
    except Exception as e:
        raise ModelLoadError(f"모델을 로드할 수 없습니다: {name} — {e}") from e
    return ModelHandle(session, name=name)


def load_model(data: bytes, name: str = "<bytes>") -> ModelHandle:
    """모델 바이트로부터 세션을 만든다.

    에러: ModelLoadError — 손상되었거나 호환되지 않는 모델, onnxruntime 미설치
    """
    if not data:
        raise ModelLoadError(f"모델 데이터가 비어 있습니다: {name}")
    return _create_session(data, name)


def load_model_file(path) -> ModelHandle:
    """모델 파일을 읽어 세션을 만든다."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ModelLoadError(f"모델 파일을 읽을 수 없습니다: {path} — {e}") from e
    return load_model(data, name=path.name)


# ── 모델 파일 관리 ──────────────────────────────────────

def get_model_dir(model_dir: Optional[str] = None) -> Path:
    """모델 디렉토리 경로를 반환한다."""
    if model_dir:
        return Path(model_dir).expanduser()
    env_path = os.environ.get("CLIPOCR_MODEL_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return _DEFAULT_MODEL_DIR


def models_available(
    model_dir: Optional[str] = None,
    model_files: Optional[Sequence[str]] = None,
) -> bool:
    """모델 파일이 모두 존재하는지 확인한다. model_files 기본값은 MODEL_FILES."""
    directory = get_model_dir(model_dir)
    return all((directory / fname).exists() for fname in model_files or MODEL_FILES)


def _download_file(url: str, target: Path) -> bool:
    """url을 target으로 스트리밍 저장한다. 실패하면 쓰다 만 파일을 지우고 False."""
    import httpx

    try:
        with httpx.stream("GET", url, follow_redirects=True, timeout=300.0) as resp:
            resp.raise_for_status()
            with open(target, "wb") as f:
                for chunk in resp.iter_bytes(chunk_size=8192):
                    f.write(chunk)
    except (httpx.HTTPError, OSError) as e:
        logger.error(f"{target.name} 받기 실패 ({url}): {e}")
        target.unlink(missing_ok=True)
        return False

    size_mb = target.stat().st_size / (1024 * 1024)
    logger.info(f"✅ {target.name} 저장 ({size_mb:.1f} MB)")
    return True


def ensure_models(
    model_dir: Optional[str] = None,
    url_base: Optional[str] = None,
    model_files: Optional[Sequence[str]] = None,
) -> Optional[Path]:
    """모델 파일을 확인하고, 빠진 파일이 있으면 받아 온다.

    입력:
      model_dir: 모델 디렉토리 (None이면 기본 규칙)
      url_base: 다운로드 기준 URL (끝에 파일명을 붙인다). None이면 다운로드 안 함.
      model_files: 필요한 파일명 목록 (None이면 MODEL_FILES)

    출력: 모델 디렉토리 경로 (모든 파일이 준비되면), 아니면 None
    """
    directory = get_model_dir(model_dir)
    files = list(model_files or MODEL_FILES)
    missing = [fname for fname in files if not (directory / fname).exists()]

    if not missing:
        return directory

    if not url_base:
        logger.warning(
            f"{directory}에 모델 파일 {missing}이(가) 없습니다. "
            f"CLIPOCR_MODEL_PATH로 모델 위치를 지정하거나 "
            f"CLIPOCR_MODEL_URL로 받아 올 주소를 설정하세요."
        )
        return None

    directory.mkdir(parents=True, exist_ok=True)
    base = url_base.rstrip("/")
    logger.info(f"모델 {len(missing)}개 받는 중 → {directory}")

    failed = [
        fname for fname in missing
        if not _download_file(f"{base}/{fname}", directory / fname)
    ]
    if failed:
        logger.error(f"모델을 받지 못했습니다: {failed}")
        return None
    return directory
