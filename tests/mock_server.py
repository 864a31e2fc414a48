"""QueueSession 을 구동하는 테스트용 모의 서버."""

from __future__ import annotations

import queue
import threading
import time

from vnccapture.capture.session import QueueSession
from vnccapture.errors import EndOfStream
from vnccapture.models import Color, Rectangle, UpdateMessage, UpdateRequest

WIDTH = 10
HEIGHT = 20

BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)
RED = Color(255, 0, 0)
BLUE = Color(0, 0, 255)

Frame = list[Rectangle]


def scenario_frames() -> list[Frame]:
    """검정 기준 프레임 → 흰 사분면 → 빨강/파랑 사분면."""
    return [
        [Rectangle.filled(0, 0, WIDTH, HEIGHT, BLACK)],
        [Rectangle.filled(WIDTH // 2, HEIGHT // 2, WIDTH // 2, HEIGHT // 2, WHITE)],
        [
            Rectangle.filled(WIDTH // 2, 0, WIDTH // 2, HEIGHT // 2, RED),
            Rectangle.filled(0, HEIGHT // 2, WIDTH // 2, HEIGHT // 2, BLUE),
        ],
    ]


class MockServer(threading.Thread):
    """갱신 요청 하나마다 준비된 프레임 하나를 돌려준다.

    모든 프레임을 보내면 finished 를 설정하고, end_of_stream 이면
    linger 초 뒤 EndOfStream 을 게시한다.
    """

    def __init__(
        self,
        session: QueueSession,
        frames: list[Frame],
        reply_delay: float = 0.0,
        end_of_stream: bool = False,
        linger: float = 0.05,
    ) -> None:
        super().__init__(name="mock-server", daemon=True)
        self._session = session
        self._frames = frames
        self._reply_delay = reply_delay
        self._end_of_stream = end_of_stream
        self._linger = linger
        self._stopped = threading.Event()
        self.finished = threading.Event()
        self.requests: list[UpdateRequest] = []

    def run(self) -> None:
        index = 0
        while index < len(self._frames) and not self._stopped.is_set():
            try:
                request = self._session.outbound.get(timeout=0.05)
            except queue.Empty:
                continue
            self.requests.append(request)
            if self._reply_delay:
                time.sleep(self._reply_delay)
            self._session.inbound.put(UpdateMessage(tuple(self._frames[index])))
            index += 1

        self.finished.set()
        if self._end_of_stream:
            time.sleep(self._linger)
            self._session.errors.put(EndOfStream())

    def stop(self) -> None:
        self._stopped.set()
