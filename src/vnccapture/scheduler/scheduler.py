"""프레임버퍼 갱신 요청 스케줄러."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from vnccapture.errors import SchedulerMisuseError
from vnccapture.models import SchedulerState

if TYPE_CHECKING:
    from vnccapture.protocols import FBUpdatable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reactive:
    """이전 프레임을 받으면 바로 다음 요청을 보낸다."""


@dataclass(frozen=True)
class Periodic:
    """프레임 도착과 무관하게 고정 주기(초)로 요청을 보낸다."""

    period: float

    def __post_init__(self) -> None:
        if self.period <= 0:
            raise ValueError(f"주기는 양수여야 합니다: {self.period}")


Policy = Reactive | Periodic


class PeriodicTicker(threading.Thread):
    """주기마다 증분 갱신 요청만 게시하는 타이머 스레드.

    상태는 갖지 않고 updatable 에 요청을 넣기만 한다.
    """

    def __init__(self, updatable: FBUpdatable, period: float) -> None:
        super().__init__(name="vnccapture-ticker", daemon=True)
        self._updatable = updatable
        self._period = period
        self._cancelled = threading.Event()

    def run(self) -> None:
        while not self._cancelled.wait(self._period):
            self._updatable.request_update(True)

    def cancel(self) -> None:
        self._cancelled.set()


class UpdateScheduler:
    """갱신 요청 시점을 결정하는 정책 객체.

    정책별 동작은 policy 에 대한 match 로 분기한다.
    """

    def __init__(self, updatable: FBUpdatable, policy: Policy) -> None:
        self._updatable = updatable
        self._policy = policy
        self._state = SchedulerState.STOPPED
        self._ticker: PeriodicTicker | None = None

    @property
    def policy(self) -> Policy:
        return self._policy

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    def start(self) -> None:
        """비증분 요청 하나를 보내고 실행 상태로 전환한다."""
        if self._state is not SchedulerState.STOPPED:
            raise SchedulerMisuseError(f"{self._policy_name()} 스케줄러가 이미 실행 중입니다")

        self._state = SchedulerState.RUNNING
        self._updatable.request_update(False)

        match self._policy:
            case Periodic(period=period):
                self._ticker = PeriodicTicker(self._updatable, period)
                self._ticker.start()
            case Reactive():
                pass

        logger.debug("스케줄러 시작: %s", self._policy)

    def stop(self) -> None:
        if self._state is not SchedulerState.RUNNING:
            raise SchedulerMisuseError(f"{self._policy_name()} 스케줄러가 실행 중이 아닙니다")

        self._state = SchedulerState.STOPPED

        match self._policy:
            case Periodic():
                if self._ticker is not None:
                    self._ticker.cancel()
                    self._ticker.join()
                    self._ticker = None
            case Reactive():
                pass

        logger.debug("스케줄러 정지: %s", self._policy)

    def on_frame_received(self) -> None:
        match self._policy:
            case Reactive():
                if self._state is SchedulerState.RUNNING:
                    self._updatable.request_update(True)
            case Periodic():
                # 주기 정책은 시간 기준으로만 요청한다
                pass

    def _policy_name(self) -> str:
        return type(self._policy).__name__


SchedulerFactory = Callable[["FBUpdatable"], UpdateScheduler]


def reactive_factory() -> SchedulerFactory:
    """Reactive 스케줄러 팩토리."""

    def factory(updatable: FBUpdatable) -> UpdateScheduler:
        return UpdateScheduler(updatable, Reactive())

    return factory


def periodic_factory(period: float) -> SchedulerFactory:
    """Periodic 스케줄러 팩토리. period 는 초 단위."""
    policy = Periodic(period)

    def factory(updatable: FBUpdatable) -> UpdateScheduler:
        return UpdateScheduler(updatable, policy)

    return factory


def fps_factory(fps: float) -> SchedulerFactory:
    """목표 FPS로 Periodic 스케줄러 팩토리를 만든다."""
    if fps <= 0:
        raise ValueError(f"FPS는 양수여야 합니다: {fps}")
    return periodic_factory(1.0 / fps)
