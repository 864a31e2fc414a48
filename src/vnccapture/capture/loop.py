"""세션 메시지 → 프레임버퍼 → 스냅샷 캡처 루프."""

from __future__ import annotations

import logging
import queue
import threading
import time

from vnccapture.errors import (
    CaptureError,
    EndOfStream,
    ProtocolError,
    SessionConnectionError,
)
from vnccapture.framebuffer.framebuffer import FrameBuffer
from vnccapture.models import (
    CaptureConfig,
    LoopState,
    Recording,
    Snapshot,
    UpdateMessage,
    UpdateRequest,
)
from vnccapture.protocols import Session
from vnccapture.scheduler.scheduler import UpdateScheduler

logger = logging.getLogger(__name__)


class RequestChannel:
    """스케줄러 요청을 캡처 루프로 넘기는 채널.

    FBUpdatable Protocol 구현. 타이머 스레드도 여기에만 요청을 넣는다.
    깊이 1이며, 이미 대기 중인 요청이 있으면 새 요청은 합쳐진다(버려진다).
    """

    def __init__(self, width: int, height: int, max_queue_size: int = 1) -> None:
        self._width = width
        self._height = height
        self._queue: queue.Queue[UpdateRequest] = queue.Queue(maxsize=max_queue_size)

    def request_update(self, incremental: bool) -> None:
        request = UpdateRequest.full(self._width, self._height, incremental)
        try:
            self._queue.put_nowait(request)
        except queue.Full:
            logger.debug("대기 중인 요청이 있어 합침 (incremental=%s)", incremental)

    def get_nowait(self) -> UpdateRequest:
        return self._queue.get_nowait()

    def pending(self) -> int:
        return self._queue.qsize()


class CaptureLoop:
    """캡처 세션 하나를 진행하는 단일 스레드 이벤트 루프.

    상태: IDLE → CAPTURING → STOPPED (종료 상태)
    종료 조건: done 이벤트, 세션 EndOfStream, 복구 불가능한 세션 오류

    프레임버퍼와 스케줄러 상태는 run() 을 호출한 스레드에서만 바뀐다.
    """

    def __init__(self, session: Session, config: CaptureConfig) -> None:
        self._session = session
        self._config = config
        self._state = LoopState.IDLE
        self._framebuffer = FrameBuffer(session.width, session.height)
        self._requests = RequestChannel(session.width, session.height)
        self._scheduler: UpdateScheduler | None = None
        self._snapshots: list[Snapshot] = []
        self._timestamps: list[float] = []
        self._last_request_at: float | None = None
        self._pending_request: UpdateRequest | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def framebuffer(self) -> FrameBuffer:
        return self._framebuffer

    def run(self, done: threading.Event | None = None) -> Recording:
        """done 이 설정되거나 스트림이 끝날 때까지 캡처한다."""
        if self._state is not LoopState.IDLE:
            raise CaptureError(f"캡처 루프는 한 번만 실행할 수 있습니다 (상태: {self._state.value})")

        done = done or threading.Event()
        self._state = LoopState.CAPTURING

        try:
            scheduler = self._config.scheduler_factory(self._requests)
            self._scheduler = scheduler
            logger.info(
                "캡처 시작: %dx%d, 정책=%s",
                self._session.width,
                self._session.height,
                scheduler.policy,
            )
            scheduler.start()
            self._capture(done, scheduler)
        finally:
            self._finish()

        logger.info("캡처 종료: 프레임 %d개", len(self._snapshots))
        return Recording(snapshots=tuple(self._snapshots), timestamps=tuple(self._timestamps))

    def _capture(self, done: threading.Event, scheduler: UpdateScheduler) -> None:
        while True:
            if done.is_set():
                logger.info("취소 신호 수신")
                return

            self._forward_request()

            if self._poll_session_error():
                self._drain_inbound(scheduler)
                return

            try:
                msg = self._session.inbound.get(timeout=self._config.poll_interval)
            except queue.Empty:
                continue
            self._handle_message(msg, scheduler)

    def _finish(self) -> None:
        if self._scheduler is not None and self._scheduler.is_running:
            self._scheduler.stop()
        self._timestamps.append(time.monotonic())
        self._state = LoopState.STOPPED

    # ── 요청 전달 ─────────────────────────────────────────

    def _forward_request(self) -> None:
        """대기 중인 요청 하나를 세션으로 보낸다.

        outbound 가 가득 차 있으면 요청을 들고 있다가 다음 반복에서 다시 보낸다.
        그동안 루프는 inbound 를 계속 읽는다 (backpressure).
        """
        if self._pending_request is None:
            try:
                self._pending_request = self._requests.get_nowait()
            except queue.Empty:
                return

        try:
            self._session.outbound.put_nowait(self._pending_request)
        except queue.Full:
            return
        self._pending_request = None
        self._last_request_at = time.monotonic()

    # ── 세션 메시지 ───────────────────────────────────────

    def _poll_session_error(self) -> bool:
        """EndOfStream 이면 True, 다른 오류는 예외로 올린다."""
        try:
            err = self._session.errors.get_nowait()
        except queue.Empty:
            return False

        if isinstance(err, (EndOfStream, EOFError)):
            logger.info("세션 스트림 종료")
            return True
        if isinstance(err, CaptureError):
            raise err
        if isinstance(err, Exception):
            raise SessionConnectionError(f"세션 오류: {err}") from err
        raise ProtocolError(f"알 수 없는 세션 오류 값: {err!r}")

    def _drain_inbound(self, scheduler: UpdateScheduler) -> None:
        """스트림 종료 전에 도착한 메시지를 마저 처리한다."""
        while True:
            try:
                msg = self._session.inbound.get_nowait()
            except queue.Empty:
                return
            self._handle_message(msg, scheduler)

    def _handle_message(self, msg: object, scheduler: UpdateScheduler) -> None:
        if not isinstance(msg, UpdateMessage):
            raise ProtocolError(f"갱신 메시지가 아닙니다: {type(msg).__name__}")

        scheduler.on_frame_received()

        if not self._framebuffer.has_baseline:
            rects = msg.rectangles
            if not rects or not rects[0].is_full_canvas(self._session.width, self._session.height):
                logger.warning("기준 프레임 이전의 부분 갱신 무시 (사각형 %d개)", len(rects))
                return
            self._framebuffer.establish_baseline(rects[0])
            self._framebuffer.apply_rectangles(rects[1:])
            return

        self._framebuffer.apply_rectangles(msg.rectangles)
        snapshot = self._framebuffer.snapshot()
        self._snapshots.append(snapshot)
        # 이 프레임을 만든 요청의 전송 시각
        self._timestamps.append(
            self._last_request_at if self._last_request_at is not None else time.monotonic()
        )
        logger.debug("프레임 %d 캡처 (사각형 %d개)", len(self._snapshots), len(msg.rectangles))
