"""Pillow 기반 애니메이션 GIF 인코더."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from vnccapture.models import Timeline

logger = logging.getLogger(__name__)


def encode_gif(timeline: Timeline) -> bytes:
    """타임라인을 애니메이션 GIF 바이트로 인코딩한다.

    loop_count 가 None 이면 한 번만 재생, 0 이면 무한 반복.

    Pillow 는 직전 프레임과 픽셀이 같은 프레임을 따로 쓰지 않고 직전 프레임의
    지연에 더한다. 그래서 GIF 의 프레임 수는 타임라인보다 적을 수 있지만
    전체 재생 시간은 같다.
    """
    if not timeline.frames:
        raise ValueError("인코딩할 프레임이 없습니다")

    images = [frame.image.to_pil() for frame in timeline.frames]
    # Pillow duration 은 밀리초
    durations = [frame.delay_cs * 10 for frame in timeline.frames]

    save_kwargs: dict[str, object] = {
        "format": "GIF",
        "save_all": True,
        "append_images": images[1:],
        "duration": durations,
        "optimize": False,
        "disposal": 1,
    }
    if timeline.loop_count is not None:
        save_kwargs["loop"] = timeline.loop_count

    buf = io.BytesIO()
    images[0].save(buf, **save_kwargs)
    data = buf.getvalue()
    logger.debug("GIF 인코딩 완료: 프레임 %d개, %d bytes", len(images), len(data))
    return data


def write_gif(timeline: Timeline, path: Path) -> None:
    """타임라인을 GIF 파일로 저장한다."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_gif(timeline))
