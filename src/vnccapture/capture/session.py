"""큐 기반 세션 구현."""

from __future__ import annotations

import logging
import queue

from vnccapture.models import UpdateMessage, UpdateRequest

logger = logging.getLogger(__name__)


class QueueSession:
    """바운디드 큐 위에 올린 세션.

    Session Protocol 구현. 와이어 프로토콜 클라이언트가 inbound/errors 에
    메시지를 넣고 outbound 에서 요청을 꺼내 간다. outbound/inbound 는
    깊이 1로 제한되어 느린 소비자가 생산자를 멈춘다.
    """

    def __init__(self, width: int, height: int, channel_depth: int = 1) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"세션 화면 크기는 양수여야 합니다: {width}x{height}")
        self.width = width
        self.height = height
        self.outbound: queue.Queue[UpdateRequest] = queue.Queue(maxsize=channel_depth)
        self.inbound: queue.Queue[UpdateMessage] = queue.Queue(maxsize=channel_depth)
        self.errors: queue.Queue[Exception] = queue.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """세션을 닫는다. 여러 번 호출해도 안전하다."""
        if self._closed:
            return
        self._closed = True
        logger.debug("세션 종료: %dx%d", self.width, self.height)

    def __enter__(self) -> QueueSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
