"""픽셀 버퍼 → CHW 텐서 변환.

입력: 클립보드/파일에서 얻은 원시 바이트 버퍼 + 레이아웃(stride) 정보
출력: (3, H, W) float32 텐서, 값 범위 [0.0, 1.0]

처리 흐름:
  1. StridedView — 바이트 버퍼를 복사 없이 (H, W, 3) 배열로 해석.
     범위 검사는 여기서 한 번만 한다.
  2. HWC → CHW 축 전환
  3. 연속 메모리로 복사 (stride가 남아 있으면 float 변환이 느려진다)
  4. [0, 255] → [0, 1] 스케일링

stride 단위는 u8 원소(=바이트). 음수 stride도 허용하므로
BGR(A) 버퍼도 offset=2, channel_stride=-1로 선언하면 RGB로 읽힌다.
알파 채널(4번째)은 stride와 무관하게 읽지 않는다.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass

import numpy as np
from numpy.lib.stride_tricks import as_strided

from .base import ShapeMismatch, UnsupportedFormat

logger = logging.getLogger(__name__)

# 출력 텐서의 채널 수 (R, G, B)
OUTPUT_CHANNELS = 3


@dataclass(frozen=True)
class PixelLayout:
    """바이트 버퍼의 픽셀 배치.

    위치 (h, w, c)의 값 = data[offset + h*height_stride + w*width_stride + c*channel_stride]
    """

    channels: int
    channel_stride: int
    width_stride: int
    height_stride: int
    offset: int = 0

    @classmethod
    def packed(cls, width: int, channels: int = 4, row_padding: int = 0) -> "PixelLayout":
        """행 우선(row-major) 인터리브 레이아웃. 행 끝에 패딩 바이트가 있을 수 있다."""
        return cls(
            channels=channels,
            channel_stride=1,
            width_stride=channels,
            height_stride=width * channels + row_padding,
        )


@dataclass
class PixelBuffer:
    """원시 픽셀 버퍼. 텐서 변환에서 한 번 소비된다."""

    width: int
    height: int
    data: bytes
    layout: PixelLayout

    @classmethod
    def from_image(cls, image) -> "PixelBuffer":
        """PIL Image를 RGBA8 버퍼로 감싼다.

        클립보드 라이브러리가 돌려주는 형식(RGBA, 행 우선, 패딩 없음)과 동일.
        """
        rgba = image.convert("RGBA")
        width, height = rgba.size
        return cls(
            width=width,
            height=height,
            data=rgba.tobytes(),
            layout=PixelLayout.packed(width, channels=4),
        )


class StridedView:
    """바이트 버퍼 위의 (H, W, 3) 읽기 전용 뷰.

    생성 시 모든 접근 가능한 인덱스가 버퍼 안에 있는지 검사한다.
    검사를 통과한 뒤에는 as_strided로 복사 없이 배열을 만든다.
    """

    def __init__(self, buffer: PixelBuffer):
        layout = buffer.layout

        if layout.channels < OUTPUT_CHANNELS:
            raise UnsupportedFormat(
                f"채널이 {OUTPUT_CHANNELS}개 미만인 픽셀 형식은 지원하지 않습니다: "
                f"channels={layout.channels}"
            )

        if buffer.width <= 0 or buffer.height <= 0:
            raise ShapeMismatch(
                f"이미지 크기가 유효하지 않습니다: {buffer.width}x{buffer.height}"
            )

        if buffer.width * buffer.height * OUTPUT_CHANNELS > np.iinfo(np.intp).max:
            raise ShapeMismatch(
                f"이미지가 너무 큽니다: {buffer.width}x{buffer.height}"
            )

        self.shape = (buffer.height, buffer.width, OUTPUT_CHANNELS)
        self.strides = (layout.height_stride, layout.width_stride, layout.channel_stride)
        self.offset = layout.offset
        self._data = buffer.data

        lowest, highest = self._index_range()
        if lowest < 0 or highest >= len(self._data):
            raise ShapeMismatch(
                f"버퍼 길이가 선언된 크기/stride와 맞지 않습니다: "
                f"size={buffer.width}x{buffer.height}, strides={self.strides}, "
                f"offset={self.offset}, 필요 범위=[{lowest}, {highest}], "
                f"버퍼 길이={len(self._data)}"
            )

    def _index_range(self) -> tuple[int, int]:
        """접근 가능한 가장 작은/큰 바이트 인덱스."""
        lowest = highest = self.offset
        for size, stride in zip(self.shape, self.strides):
            reach = (size - 1) * stride
            if reach < 0:
                lowest += reach
            else:
                highest += reach
        return lowest, highest

    def as_array(self) -> np.ndarray:
        """(H, W, 3) uint8 읽기 전용 배열 (복사 없음)."""
        base = np.frombuffer(self._data, dtype=np.uint8)
        return as_strided(
            base[self.offset:],
            shape=self.shape,
            strides=self.strides,
            writeable=False,
        )


def image_to_tensor(buffer: PixelBuffer) -> np.ndarray:
    """픽셀 버퍼를 (3, H, W) float32 텐서로 변환한다.

    출력: tensor[c, h, w] = raw(h, w, c) / 255.0, C-contiguous

    에러:
      ShapeMismatch — 크기/stride가 버퍼 길이와 맞지 않음
      UnsupportedFormat — 채널이 3개 미만
    """
    view = StridedView(buffer)

    chw = np.ascontiguousarray(view.as_array().transpose(2, 0, 1))
    tensor = chw.astype(np.float32) / np.float32(255.0)

    logger.debug(f"텐서 변환: {buffer.width}x{buffer.height} → {tensor.shape}")
    return tensor
