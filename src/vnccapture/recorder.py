"""캡처 → 타임라인 → GIF 조립."""

from __future__ import annotations

import logging
import threading

from vnccapture.capture.loop import CaptureLoop
from vnccapture.models import CaptureConfig, CaptureSettings, Timeline
from vnccapture.protocols import Session
from vnccapture.timeline.assembler import TimelineAssembler
from vnccapture.timeline.gif_encoder import encode_gif

logger = logging.getLogger(__name__)


def record_timeline(
    session: Session,
    config: CaptureConfig | None = None,
    done: threading.Event | None = None,
) -> Timeline:
    """done 이 설정되거나 세션 스트림이 끝날 때까지 녹화하여 타임라인을 반환한다.

    세션은 호출자가 소유하며 닫는 것도 호출자 책임이다.
    """
    config = config or CaptureSettings().to_capture_config()
    recording = CaptureLoop(session, config).run(done)
    assembler = TimelineAssembler(palette_overflow=config.palette_overflow)
    return assembler.assemble_recording(recording, loop_count=config.loop_count)


def record_gif(
    session: Session,
    config: CaptureConfig | None = None,
    done: threading.Event | None = None,
) -> bytes:
    """녹화 결과를 애니메이션 GIF 바이트로 반환한다.

    녹화된 프레임이 없으면 ValueError.
    """
    timeline = record_timeline(session, config, done)
    data = encode_gif(timeline)
    logger.info("GIF 녹화 완료: 프레임 %d개, %d bytes", len(timeline), len(data))
    return data
