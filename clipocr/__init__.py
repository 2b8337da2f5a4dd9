"""클립보드 이미지 OCR.

클립보드(또는 파일)의 이미지를 CHW 텐서로 변환하고,
탐지 → 줄 묶기 → 인식 파이프라인으로 텍스트 줄을 읽는다.
"""

__version__ = "0.1.0"
