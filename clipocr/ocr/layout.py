"""레이아웃 분석: 단어 영역 → 줄 영역.

탐지 모델은 단어 단위 영역만 돌려주므로, 인식 모델에 넣을 줄 단위로 묶는다.

알고리즘:
  1. 단어를 세로 중심 기준으로 정렬
  2. 현재 줄의 세로 범위와 충분히 겹치면(작은 쪽 높이의 overlap_ratio 이상)
     같은 줄로 묶는다
  3. 줄 안에서 왼쪽→오른쪽 정렬 후, 가로 간격이 중앙값 높이의
     gap_factor배를 넘으면 다른 줄(다른 단락/열)로 분리
  4. 줄을 위→아래, 왼쪽→오른쪽 순서로 정렬

이 단계는 실패하지 않는다. 빈 입력이면 빈 목록.
"""

from __future__ import annotations
from statistics import median

from .base import LineRegion, WordRegion


def _vertical_overlap(a: list[float], b: list[float]) -> float:
    """두 bbox의 세로 겹침 길이."""
    return max(0.0, min(a[3], b[3]) - max(a[1], b[1]))


def _split_by_gap(words: list[WordRegion], gap_factor: float) -> list[list[WordRegion]]:
    """가로 간격이 큰 곳에서 줄을 나눈다. words는 x 정렬 상태."""
    heights = [w.height for w in words if w.height > 0]
    max_gap = gap_factor * median(heights) if heights else 0.0

    segments = [[words[0]]]
    for prev, word in zip(words, words[1:]):
        gap = word.bbox[0] - prev.bbox[2]
        if max_gap > 0 and gap > max_gap:
            segments.append([word])
        else:
            segments[-1].append(word)
    return segments


def group_words_into_lines(
    words: list[WordRegion],
    gap_factor: float = 2.0,
    overlap_ratio: float = 0.5,
) -> list[LineRegion]:
    """단어 영역을 줄 영역으로 묶는다.

    입력: 탐지 순서의 단어 목록 (정렬되어 있지 않아도 됨)
    출력: 읽기 순서의 줄 목록. 각 줄의 단어는 왼쪽→오른쪽.
    """
    if not words:
        return []

    rows: list[list[WordRegion]] = []
    row_bands: list[list[float]] = []

    for word in sorted(words, key=lambda w: w.center[1]):
        box = word.bbox
        if rows:
            band = row_bands[-1]
            min_height = min(word.height, band[3] - band[1])
            overlap = _vertical_overlap(band, box)
            if min_height > 0 and overlap >= overlap_ratio * min_height:
                rows[-1].append(word)
                band[1] = min(band[1], box[1])
                band[3] = max(band[3], box[3])
                continue
        rows.append([word])
        row_bands.append(list(box))

    lines: list[LineRegion] = []
    for row in rows:
        row.sort(key=lambda w: w.bbox[0])
        for segment in _split_by_gap(row, gap_factor):
            lines.append(LineRegion(words=segment))

    return lines
