"""Frozen dataclass 모델 정의."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, Sequence

import numpy as np

from vnccapture.errors import ProtocolError

if TYPE_CHECKING:
    from PIL import Image

    from vnccapture.scheduler.scheduler import SchedulerFactory


class Color(NamedTuple):
    """RGB 색상. 알파는 다루지 않는다 (항상 불투명)."""

    r: int
    g: int
    b: int


def to_pixel_array(pixels: object, width: int, height: int) -> np.ndarray:
    """색상 시퀀스를 (height, width, 3) uint8 배열로 변환한다.

    채널 값은 하위 8비트로 잘라낸다.
    """
    arr = np.asarray(pixels)
    if arr.dtype != np.uint8:
        arr = (arr.astype(np.int64) & 0xFF).astype(np.uint8)
    if arr.size != width * height * 3:
        raise ProtocolError(
            f"픽셀 수가 사각형 크기와 맞지 않습니다: {arr.size // 3} != {width}x{height}"
        )
    return arr.reshape(height, width, 3)


@dataclass(frozen=True, eq=False)
class Rectangle:
    """부분 또는 전체 화면 갱신 영역."""

    x: int
    y: int
    width: int
    height: int
    pixels: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ProtocolError(f"사각형 크기는 양수여야 합니다: {self.width}x{self.height}")
        if self.x < 0 or self.y < 0:
            raise ProtocolError(f"사각형 위치는 0 이상이어야 합니다: ({self.x}, {self.y})")
        object.__setattr__(self, "pixels", to_pixel_array(self.pixels, self.width, self.height))

    @classmethod
    def filled(cls, x: int, y: int, width: int, height: int, color: Color) -> Rectangle:
        """단색으로 채워진 사각형을 만든다."""
        pixels = np.empty((height, width, 3), dtype=np.uint8)
        pixels[:, :] = [c & 0xFF for c in color]
        return cls(x=x, y=y, width=width, height=height, pixels=pixels)

    @classmethod
    def from_colors(
        cls, x: int, y: int, width: int, height: int, colors: Sequence[Color]
    ) -> Rectangle:
        return cls(x=x, y=y, width=width, height=height, pixels=[tuple(c) for c in colors])

    def is_full_canvas(self, width: int, height: int) -> bool:
        return self.x == 0 and self.y == 0 and self.width == width and self.height == height

    def fits_within(self, width: int, height: int) -> bool:
        return self.x + self.width <= width and self.y + self.height <= height


@dataclass(frozen=True)
class UpdateRequest:
    """서버로 보내는 프레임버퍼 갱신 요청."""

    x: int
    y: int
    width: int
    height: int
    incremental: bool

    @classmethod
    def full(cls, width: int, height: int, incremental: bool) -> UpdateRequest:
        return cls(x=0, y=0, width=width, height=height, incremental=incremental)


@dataclass(frozen=True)
class UpdateMessage:
    """서버가 보낸 프레임버퍼 갱신 메시지 (사각형 목록, 그리기 순서)."""

    rectangles: tuple[Rectangle, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "rectangles", tuple(self.rectangles))


@dataclass(frozen=True, eq=False)
class Snapshot:
    """특정 시점의 프레임버퍼 복사본 (읽기 전용)."""

    pixels: np.ndarray = field(repr=False)
    taken_at: float

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass(frozen=True, eq=False)
class PalettedImage:
    """팔레트 + 인덱스 이미지."""

    palette: np.ndarray = field(repr=False)  # (n, 3) uint8
    indices: np.ndarray = field(repr=False)  # (h, w)

    @property
    def width(self) -> int:
        return int(self.indices.shape[1])

    @property
    def height(self) -> int:
        return int(self.indices.shape[0])

    def color_at(self, x: int, y: int) -> Color:
        r, g, b = self.palette[self.indices[y, x]]
        return Color(int(r), int(g), int(b))

    def to_rgb(self) -> np.ndarray:
        return self.palette[self.indices]

    def to_pil(self) -> Image.Image:
        """Pillow "P" 모드 이미지로 변환한다."""
        from PIL import Image

        img = Image.frombytes("P", (self.width, self.height), self.indices.astype(np.uint8).tobytes())
        img.putpalette(self.palette.astype(np.uint8).flatten().tolist())
        return img


@dataclass(frozen=True)
class TimelineFrame:
    """타임라인의 한 프레임 (이미지 + 1/100초 단위 지연)."""

    image: PalettedImage
    delay_cs: int


@dataclass(frozen=True)
class Timeline:
    """인코더에 넘길 (이미지, 지연) 순서열."""

    frames: tuple[TimelineFrame, ...]
    loop_count: int | None = 0

    def __post_init__(self) -> None:
        validate_loop_count(self.loop_count)

    @property
    def images(self) -> list[PalettedImage]:
        return [f.image for f in self.frames]

    @property
    def delays(self) -> list[int]:
        return [f.delay_cs for f in self.frames]

    def __len__(self) -> int:
        return len(self.frames)


@dataclass(frozen=True)
class Recording:
    """캡처 세션 결과: 스냅샷 + 요청 타임스탬프 (스냅샷보다 하나 더 많음)."""

    snapshots: tuple[Snapshot, ...]
    timestamps: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.timestamps) != len(self.snapshots) + 1:
            raise ValueError(
                f"타임스탬프 수는 스냅샷 수 + 1 이어야 합니다: "
                f"{len(self.timestamps)} != {len(self.snapshots)} + 1"
            )


class SchedulerState(Enum):
    """갱신 스케줄러 상태."""

    STOPPED = "stopped"
    RUNNING = "running"


class LoopState(Enum):
    """캡처 루프 상태."""

    IDLE = "idle"
    CAPTURING = "capturing"
    STOPPED = "stopped"


PALETTE_OVERFLOW_POLICIES = ("quantize", "error")

# GIF NETSCAPE 확장의 반복 횟수는 부호 없는 16비트
MAX_LOOP_COUNT = 0xFFFF


def validate_loop_count(loop_count: int | None) -> None:
    """None(한 번 재생) 또는 0(무한 반복) ~ MAX_LOOP_COUNT 만 허용한다."""
    if loop_count is None:
        return
    if isinstance(loop_count, bool) or not isinstance(loop_count, int):
        raise ValueError(f"loop_count는 정수 또는 None 이어야 합니다: {loop_count!r}")
    if not 0 <= loop_count <= MAX_LOOP_COUNT:
        raise ValueError(f"loop_count는 0~{MAX_LOOP_COUNT} 범위여야 합니다: {loop_count}")


@dataclass
class CaptureConfig:
    """캡처 코어가 사용하는 설정.

    scheduler_factory 가 유일한 확장 지점이다.
    """

    scheduler_factory: SchedulerFactory
    poll_interval: float = 0.01
    palette_overflow: str = "quantize"
    loop_count: int | None = 0

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval은 양수여야 합니다: {self.poll_interval}")
        if self.palette_overflow not in PALETTE_OVERFLOW_POLICIES:
            raise ValueError(f"알 수 없는 palette_overflow: {self.palette_overflow}")
        validate_loop_count(self.loop_count)


@dataclass
class CaptureSettings:
    """파일로 저장되는 캡처 설정."""

    policy: str = "periodic"
    fps: float = 15.0
    poll_interval: float = 0.01
    palette_overflow: str = "quantize"
    loop_count: int | None = 0

    def to_capture_config(self) -> CaptureConfig:
        from vnccapture.scheduler.scheduler import fps_factory, reactive_factory

        if self.policy == "periodic":
            factory = fps_factory(self.fps)
        elif self.policy == "reactive":
            factory = reactive_factory()
        else:
            raise ValueError(f"알 수 없는 스케줄러 정책: {self.policy}")

        return CaptureConfig(
            scheduler_factory=factory,
            poll_interval=self.poll_interval,
            palette_overflow=self.palette_overflow,
            loop_count=self.loop_count,
        )
