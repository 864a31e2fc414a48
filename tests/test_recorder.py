"""모의 서버를 이용한 녹화 통합 테스트."""

from __future__ import annotations

import io
import threading
import time

import pytest
from PIL import Image

from mock_server import (
    BLACK,
    BLUE,
    HEIGHT,
    RED,
    WHITE,
    WIDTH,
    MockServer,
    scenario_frames,
)
from vnccapture.capture.session import QueueSession
from vnccapture.models import CaptureConfig, Rectangle
from vnccapture.recorder import record_gif, record_timeline
from vnccapture.scheduler.scheduler import periodic_factory, reactive_factory

FRAME_PERIOD = 0.16
EXPECTED_DELAY = 16
DELAY_TOLERANCE = 5


def cancel_after_last_frame(server: MockServer, done: threading.Event, linger: float) -> threading.Thread:
    """서버가 마지막 프레임을 보낸 뒤 linger 초 후 done 을 설정한다."""

    def run() -> None:
        server.finished.wait(timeout=5.0)
        time.sleep(linger)
        done.set()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


class TestPeriodicRecording:
    """10x20 캔버스, 160ms 주기 녹화 시나리오."""

    @pytest.fixture
    def recorded(self):
        with QueueSession(WIDTH, HEIGHT) as session:
            server = MockServer(session, scenario_frames())
            server.start()
            done = threading.Event()
            cancel_after_last_frame(server, done, FRAME_PERIOD)

            config = CaptureConfig(scheduler_factory=periodic_factory(FRAME_PERIOD))
            timeline = record_timeline(session, config, done)
            server.stop()
            server.join(timeout=1.0)
        return timeline, server

    def test_image_count(self, recorded) -> None:
        timeline, _ = recorded
        assert len(timeline.images) == 2
        assert len(timeline.delays) == 2

    def test_delays_match_period(self, recorded) -> None:
        timeline, _ = recorded
        for delay in timeline.delays:
            assert abs(delay - EXPECTED_DELAY) <= DELAY_TOLERANCE

    def test_frame_contents(self, recorded) -> None:
        timeline, _ = recorded
        first, second = timeline.images

        assert first.color_at(7, 15) == WHITE
        assert first.color_at(2, 5) == BLACK
        assert first.color_at(7, 5) == BLACK

        assert second.color_at(7, 5) == RED
        assert second.color_at(2, 15) == BLUE
        assert second.color_at(7, 15) == WHITE
        assert second.color_at(2, 5) == BLACK

    def test_requests(self, recorded) -> None:
        _, server = recorded
        assert server.requests[0].incremental is False
        assert all(r.incremental for r in server.requests[1:])
        assert all((r.width, r.height) == (WIDTH, HEIGHT) for r in server.requests)


class TestReactiveRecording:
    def test_round_trip_count(self) -> None:
        """기준 프레임 포함 N개 메시지 → 이미지 N-1개, 지연 N-1개."""
        frames = scenario_frames() + [
            [Rectangle.filled(0, 0, WIDTH // 2, HEIGHT // 2, WHITE)],
            [Rectangle.filled(0, 0, 1, 1, RED)],
        ]
        with QueueSession(WIDTH, HEIGHT) as session:
            server = MockServer(session, frames, end_of_stream=True)
            server.start()
            config = CaptureConfig(scheduler_factory=reactive_factory())
            timeline = record_timeline(session, config)
            server.join(timeout=1.0)

        assert len(timeline.images) == len(frames) - 1
        assert len(timeline.delays) == len(timeline.images)
        assert all(d >= 0 for d in timeline.delays)
        assert len(server.requests) == len(frames)

    def test_session_left_open_for_caller(self) -> None:
        session = QueueSession(WIDTH, HEIGHT)
        server = MockServer(session, scenario_frames(), end_of_stream=True)
        server.start()
        record_timeline(session, CaptureConfig(scheduler_factory=reactive_factory()))
        server.join(timeout=1.0)
        assert session.closed is False
        session.close()
        assert session.closed is True


class TestSlowServer:
    """서버 응답이 요청 주기보다 느린 경우."""

    def test_periodic_faster_than_server(self) -> None:
        """주기 요청이 밀려도 응답을 계속 받아 모든 프레임을 기록한다."""
        frames = scenario_frames() + [
            [Rectangle.filled(0, 0, 1, 1, RED)],
            [Rectangle.filled(9, 19, 1, 1, BLUE)],
        ]
        with QueueSession(WIDTH, HEIGHT) as session:
            server = MockServer(session, frames, reply_delay=0.2)
            server.start()
            done = threading.Event()
            cancel_after_last_frame(server, done, 0.1)

            config = CaptureConfig(scheduler_factory=periodic_factory(0.05))
            timeline = record_timeline(session, config, done)
            server.stop()
            server.join(timeout=1.0)

        assert server.finished.is_set()
        assert len(server.requests) == len(frames)
        assert len(timeline.images) == len(frames) - 1
        assert all(d >= 0 for d in timeline.delays)
        assert timeline.images[-1].color_at(9, 19) == BLUE


class TestRecordGif:
    def test_gif_bytes(self) -> None:
        with QueueSession(WIDTH, HEIGHT) as session:
            server = MockServer(session, scenario_frames(), end_of_stream=True)
            server.start()
            config = CaptureConfig(scheduler_factory=reactive_factory(), loop_count=0)
            data = record_gif(session, config)
            server.join(timeout=1.0)

        with Image.open(io.BytesIO(data)) as img:
            assert img.n_frames == 2
            assert img.size == (WIDTH, HEIGHT)
            img.seek(1)
            assert img.convert("RGB").getpixel((7, 5)) == tuple(RED)

    def test_no_frames(self) -> None:
        """기준 프레임만 받고 끝나면 인코딩할 프레임이 없다."""
        with QueueSession(WIDTH, HEIGHT) as session:
            server = MockServer(session, scenario_frames()[:1], end_of_stream=True)
            server.start()
            with pytest.raises(ValueError):
                record_gif(session, CaptureConfig(scheduler_factory=reactive_factory()))
            server.join(timeout=1.0)
