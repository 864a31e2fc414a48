"""캡처 예외 정의."""

from __future__ import annotations


class CaptureError(Exception):
    """vnccapture 예외의 기반 클래스."""


class SessionConnectionError(CaptureError, ConnectionError):
    """세션 연결 실패 또는 세션이 보고한 치명적 오류. 재시도하지 않는다."""


class EndOfStream(CaptureError):
    """세션 스트림의 정상 종료. 캡처 루프는 이를 정상 종료로 처리한다."""


class ProtocolError(CaptureError):
    """서버가 예상치 못한 메시지를 보냈다."""


class OutOfBoundsError(ProtocolError):
    """사각형이 프레임버퍼 범위를 벗어났다."""


class NoBaselineError(CaptureError):
    """전체 화면 기준 프레임이 없는 상태에서 병합을 시도했다."""


class SchedulerMisuseError(CaptureError):
    """잘못된 스케줄러 상태 전이 (실행 중 start, 정지 중 stop)."""


class PaletteOverflowError(CaptureError):
    """팔레트 색상 수가 허용 한도를 넘었다."""
