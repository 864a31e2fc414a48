"""부분 사각형 갱신을 전체 화면으로 병합하는 프레임버퍼."""

from __future__ import annotations

import logging
import time
from typing import Iterable

import numpy as np

from vnccapture.errors import NoBaselineError, OutOfBoundsError
from vnccapture.models import Rectangle, Snapshot

logger = logging.getLogger(__name__)


class FrameBuffer:
    """전체 해상도 픽셀 그리드 하나를 소유한다.

    - 기준 프레임: 처음 적용되는 전체 화면 사각형
    - 병합: 사각형 목록 순서대로 복사, 겹치는 영역은 나중 사각형이 우선
    - 스냅샷: 이후 변경과 무관한 독립 복사본
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"프레임버퍼 크기는 양수여야 합니다: {width}x{height}")
        self._width = width
        self._height = height
        self._pixels: np.ndarray | None = None

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def has_baseline(self) -> bool:
        return self._pixels is not None

    def establish_baseline(self, rect: Rectangle) -> None:
        """전체 화면 사각형으로 기준 프레임을 설정한다 (병합이 아닌 교체)."""
        if not rect.is_full_canvas(self._width, self._height):
            raise NoBaselineError(
                f"기준 프레임은 전체 화면이어야 합니다: "
                f"({rect.x}, {rect.y}) {rect.width}x{rect.height}"
            )
        self._pixels = rect.pixels.copy()
        logger.debug("기준 프레임 설정: %dx%d", self._width, self._height)

    def apply_rectangles(self, rects: Iterable[Rectangle]) -> None:
        """사각형들을 순서대로 병합한다.

        범위 검사를 먼저 모두 끝낸 뒤에 복사하므로, 실패 시 버퍼는 그대로다.
        """
        if self._pixels is None:
            raise NoBaselineError("기준 프레임 없이 병합할 수 없습니다")

        rects = list(rects)
        for rect in rects:
            if not rect.fits_within(self._width, self._height):
                raise OutOfBoundsError(
                    f"사각형이 화면 범위를 벗어났습니다: ({rect.x}, {rect.y}) "
                    f"{rect.width}x{rect.height} > {self._width}x{self._height}"
                )

        for rect in rects:
            self._pixels[rect.y : rect.y + rect.height, rect.x : rect.x + rect.width] = rect.pixels

    def snapshot(self) -> Snapshot:
        """현재 픽셀의 읽기 전용 복사본을 반환한다."""
        if self._pixels is None:
            raise NoBaselineError("기준 프레임 없이 스냅샷을 만들 수 없습니다")
        pixels = self._pixels.copy()
        pixels.flags.writeable = False
        return Snapshot(pixels=pixels, taken_at=time.time())
