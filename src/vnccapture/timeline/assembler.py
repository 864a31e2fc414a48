"""스냅샷 + 요청 타임스탬프 → (팔레트 이미지, 지연) 타임라인."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from PIL import Image

from vnccapture.errors import PaletteOverflowError
from vnccapture.models import (
    PALETTE_OVERFLOW_POLICIES,
    PalettedImage,
    Recording,
    Snapshot,
    Timeline,
    TimelineFrame,
)

logger = logging.getLogger(__name__)

GIF_MAX_COLORS = 256


class TimelineAssembler:
    """캡처 결과를 인코더용 타임라인으로 변환한다.

    - 팔레트: 스냅샷에 있는 고유 색상 목록, 픽셀은 팔레트 인덱스로 매핑
    - 지연: (t[i+1] - t[i]) 밀리초 / 10, 1/100초 단위로 버림
    - 색상 수가 max_colors 를 넘으면 palette_overflow 에 따라
      "quantize" (Pillow median cut) 또는 "error" (PaletteOverflowError)
    """

    def __init__(self, palette_overflow: str = "quantize", max_colors: int = GIF_MAX_COLORS) -> None:
        if palette_overflow not in PALETTE_OVERFLOW_POLICIES:
            raise ValueError(f"알 수 없는 palette_overflow: {palette_overflow}")
        if not 1 <= max_colors <= GIF_MAX_COLORS:
            raise ValueError(f"max_colors는 1~{GIF_MAX_COLORS} 이어야 합니다: {max_colors}")
        self._palette_overflow = palette_overflow
        self._max_colors = max_colors

    def build_palette(self, pixels: np.ndarray) -> PalettedImage:
        """(h, w, 3) 픽셀 배열을 팔레트 이미지로 변환한다."""
        height, width = pixels.shape[:2]
        palette, inverse = np.unique(pixels.reshape(-1, 3), axis=0, return_inverse=True)

        if len(palette) > self._max_colors:
            if self._palette_overflow == "error":
                raise PaletteOverflowError(
                    f"색상 수가 한도를 넘었습니다: {len(palette)} > {self._max_colors}"
                )
            logger.debug("색상 %d개 → %d개로 양자화", len(palette), self._max_colors)
            return self._quantize(pixels)

        indices = inverse.reshape(height, width).astype(np.uint8)
        return PalettedImage(palette=palette.astype(np.uint8), indices=indices)

    def _quantize(self, pixels: np.ndarray) -> PalettedImage:
        img = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
        quantized = img.quantize(colors=self._max_colors, method=Image.Quantize.MEDIANCUT)
        indices = np.asarray(quantized, dtype=np.uint8)
        used = int(indices.max()) + 1
        raw = quantized.getpalette() or []
        palette = np.array(raw[: used * 3], dtype=np.uint8).reshape(-1, 3)
        return PalettedImage(palette=palette, indices=indices)

    @staticmethod
    def compute_delays(timestamps: Sequence[float]) -> list[int]:
        """인접 타임스탬프(초) 차이를 1/100초 단위 지연으로 변환한다."""
        delays: list[int] = []
        for prev, curr in zip(timestamps, timestamps[1:]):
            # 부동소수점 오차를 마이크로초 단위에서 정리한 뒤 버림
            gap_ms = int(round((curr - prev) * 1000, 3))
            if gap_ms < 0:
                raise ValueError(f"타임스탬프가 역순입니다: {prev} > {curr}")
            delays.append(gap_ms // 10)
        return delays

    def assemble(
        self,
        snapshots: Sequence[Snapshot],
        timestamps: Sequence[float],
        loop_count: int | None = 0,
    ) -> Timeline:
        """스냅샷과 요청 타임스탬프(스냅샷보다 하나 많음)로 타임라인을 만든다."""
        if len(timestamps) != len(snapshots) + 1:
            raise ValueError(
                f"타임스탬프 수는 스냅샷 수 + 1 이어야 합니다: "
                f"{len(timestamps)} != {len(snapshots)} + 1"
            )

        delays = self.compute_delays(timestamps)
        frames = tuple(
            TimelineFrame(image=self.build_palette(snap.pixels), delay_cs=delay)
            for snap, delay in zip(snapshots, delays)
        )
        return Timeline(frames=frames, loop_count=loop_count)

    def assemble_recording(self, recording: Recording, loop_count: int | None = 0) -> Timeline:
        return self.assemble(recording.snapshots, recording.timestamps, loop_count=loop_count)
