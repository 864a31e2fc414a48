"""Protocol 인터페이스 정의."""

from __future__ import annotations

import queue
from typing import Protocol, runtime_checkable

from vnccapture.models import UpdateMessage, UpdateRequest


@runtime_checkable
class Session(Protocol):
    """핸드셰이크/인증이 끝난 원격 프레임버퍼 세션.

    outbound: 클라이언트 → 서버 갱신 요청
    inbound: 서버 → 클라이언트 갱신 메시지
    errors: EndOfStream 또는 연결 오류
    """

    width: int
    height: int
    outbound: queue.Queue[UpdateRequest]
    inbound: queue.Queue[UpdateMessage]
    errors: queue.Queue[Exception]

    def close(self) -> None: ...


@runtime_checkable
class FBUpdatable(Protocol):
    """스케줄러가 갱신 요청을 보내는 대상."""

    def request_update(self, incremental: bool) -> None: ...
