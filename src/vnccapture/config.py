"""TOML 기반 설정 관리."""

from __future__ import annotations

import tomllib
from pathlib import Path

from vnccapture.models import PALETTE_OVERFLOW_POLICIES, CaptureSettings, validate_loop_count

_DEFAULT_PATH = Path.home() / ".vnccapture" / "config.toml"

_POLICIES = ("periodic", "reactive")


class ConfigManager:
    """CaptureSettings를 TOML 파일로 로드/저장하는 관리자."""

    def __init__(self, default_path: Path | None = None) -> None:
        self.default_path = default_path or _DEFAULT_PATH

    # ── 로드 ──────────────────────────────────────────────

    def load(self, path: Path | None = None) -> CaptureSettings:
        """TOML 파일에서 설정을 로드한다. 파일이 없으면 기본값을 반환."""
        target = path or self.default_path
        if not target.exists():
            return CaptureSettings()

        with open(target, "rb") as f:
            data = tomllib.load(f)

        scheduler = data.get("scheduler", {})
        policy = str(scheduler.get("policy", "periodic"))
        if policy not in _POLICIES:
            raise ValueError(f"알 수 없는 스케줄러 정책: {policy}")
        fps = float(scheduler.get("fps", 15.0))
        if fps <= 0:
            raise ValueError(f"FPS는 양수여야 합니다: {fps}")

        palette_overflow = str(data.get("palette_overflow", "quantize"))
        if palette_overflow not in PALETTE_OVERFLOW_POLICIES:
            raise ValueError(f"알 수 없는 palette_overflow: {palette_overflow}")

        # loop = false 이면 한 번만 재생
        loop_raw = data.get("loop_count", 0)
        loop_count = None if loop_raw is False else loop_raw
        validate_loop_count(loop_count)

        return CaptureSettings(
            policy=policy,
            fps=fps,
            poll_interval=float(data.get("poll_interval", 0.01)),
            palette_overflow=palette_overflow,
            loop_count=loop_count,
        )

    # ── 저장 ──────────────────────────────────────────────

    def save(self, settings: CaptureSettings, path: Path | None = None) -> None:
        """CaptureSettings를 TOML 문자열로 직렬화하여 저장한다."""
        target = path or self.default_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self._serialize(settings), encoding="utf-8")

    # ── 직렬화 ────────────────────────────────────────────

    @staticmethod
    def _serialize(settings: CaptureSettings) -> str:
        lines: list[str] = []

        lines.append(f"poll_interval = {settings.poll_interval}")
        lines.append(f'palette_overflow = "{settings.palette_overflow}"')
        if settings.loop_count is None:
            lines.append("loop_count = false")
        else:
            lines.append(f"loop_count = {settings.loop_count}")

        lines.append("")
        lines.append("[scheduler]")
        lines.append(f'policy = "{settings.policy}"')
        lines.append(f"fps = {settings.fps}")

        lines.append("")  # trailing newline
        return "\n".join(lines)
