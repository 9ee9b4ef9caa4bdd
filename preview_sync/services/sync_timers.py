from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from preview_sync.services.scheduler import AfterCancelFn, AfterFn

LoggerFn = Callable[..., None]


def _noop_log(message: str, *args: object) -> None:
    return None


@dataclass(frozen=True)
class SyncTimingProfile:
    """Timing windows shared by the sync controller, panel and file watcher."""

    debounce_ms: int = 50
    settle_ms: int = 50
    watch_debounce_ms: int = 150


DEFAULT_TIMING = SyncTimingProfile()


class SyncTimers:
    """Owns keyed debounce handles and the settle timer on top of an injected scheduler."""

    def __init__(
        self,
        profile: SyncTimingProfile = DEFAULT_TIMING,
        *,
        after: AfterFn,
        after_cancel: AfterCancelFn,
        logger: Optional[LoggerFn] = None,
    ) -> None:
        self._after = after
        self._after_cancel = after_cancel
        self._logger = logger or _noop_log
        self._profile = profile
        self.debounce_ms = self._clamp_debounce(profile.debounce_ms)
        self.settle_ms = self._clamp_debounce(profile.settle_ms)
        self.watch_debounce_ms = self._clamp_debounce(profile.watch_debounce_ms)
        self._debounce_handles: dict[str, object] = {}

    @property
    def profile(self) -> SyncTimingProfile:
        return self._profile

    def apply_profile(self, profile: SyncTimingProfile, *, reason: str = "apply") -> SyncTimingProfile:
        if profile == self._profile:
            self._log("Timing unchanged: debounce=%d settle=%d reason=%s", profile.debounce_ms, profile.settle_ms, reason)
            return profile
        self._profile = profile
        self.debounce_ms = self._clamp_debounce(profile.debounce_ms)
        self.settle_ms = self._clamp_debounce(profile.settle_ms)
        self.watch_debounce_ms = self._clamp_debounce(profile.watch_debounce_ms)
        self._log(
            "Timing applied: debounce=%d settle=%d watch=%d reason=%s",
            self.debounce_ms,
            self.settle_ms,
            self.watch_debounce_ms,
            reason,
        )
        return profile

    def schedule_debounce(self, key: str, callback: Callable[[], None], *, delay_ms: int | None = None) -> object:
        self.cancel_debounce(key)
        delay = self.debounce_ms if delay_ms is None else delay_ms

        def _fire() -> None:
            self._debounce_handles.pop(key, None)
            callback()

        handle = self._after(delay, _fire)
        self._debounce_handles[key] = handle
        return handle

    def schedule_settle(self, key: str, callback: Callable[[], None]) -> object:
        return self.schedule_debounce(key, callback, delay_ms=self.settle_ms)

    def schedule_watch(self, key: str, callback: Callable[[], None]) -> object:
        return self.schedule_debounce(key, callback, delay_ms=self.watch_debounce_ms)

    def cancel_debounce(self, key: str) -> bool:
        handle = self._debounce_handles.pop(key, None)
        if handle is None:
            return False
        self._after_cancel(handle)
        return True

    def cancel_all(self) -> None:
        for key in list(self._debounce_handles):
            self.cancel_debounce(key)

    def pending(self, key: str) -> bool:
        return key in self._debounce_handles

    @staticmethod
    def _clamp_debounce(value: int) -> int:
        return max(1, int(value))

    def _log(self, message: str, *args: object) -> None:
        try:
            self._logger(message, *args)
        except TypeError:
            self._logger(message % args if args else message)  # type: ignore[call-arg]
