"""CLI 도구 — 클립보드 이미지 OCR.

사용법:
    python -m clipocr                    # 클립보드 이미지의 텍스트 출력
    python -m clipocr --image page.png   # 파일에서 읽기
    python -m clipocr -v                 # 단계별 진행 로그 (stderr)

인식된 줄만 stdout에 한 줄씩 출력한다.
클립보드에 이미지가 없으면 안내만 하고 정상 종료(0).
그 밖의 에러는 stderr에 출력하고 종료 코드 1.
"""

import argparse
import logging
import sys

from .clipboard import ClipboardImageSource, FileImageSource
from .config import OcrConfig
from .ocr.base import OcrError
from .ocr.onnx_engine import OnnxOcrEngine
from .ocr.pipeline import OcrPipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipocr",
        description="클립보드 이미지에서 텍스트를 인식해 출력한다",
    )
    parser.add_argument("--image", help="클립보드 대신 읽을 이미지 파일 경로")
    parser.add_argument("--model-dir", help="ONNX 모델 디렉토리 (설정/환경변수보다 우선)")
    parser.add_argument("--config", help="YAML 설정 파일 경로")
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="단계별 진행 로그를 stderr에 출력한다",
    )
    return parser


def main(argv=None, engine=None) -> int:
    """CLI 진입점. 종료 코드를 반환한다.

    engine을 넘기면 설정으로 엔진을 만들지 않고 그대로 사용한다 (테스트용).
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.image:
        source = FileImageSource(args.image)
    else:
        source = ClipboardImageSource()

    if engine is None:
        config = OcrConfig(args.config)
        engine = OnnxOcrEngine(config.engine_params(model_dir=args.model_dir))

    pipeline = OcrPipeline(engine)

    try:
        result = pipeline.run(source)
    except OcrError as e:
        print(f"오류: {e}", file=sys.stderr)
        return 1

    if not result.image_available:
        if args.image:
            print(f"이미지를 읽을 수 없습니다: {args.image}")
        else:
            print("클립보드에 이미지가 없습니다")
        return 0

    logger.info(f"결과: {result.to_summary()}")

    for line in result.lines:
        print(line)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
