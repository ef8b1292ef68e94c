"""Progress tracking for the pipeline stages.

Each stage (sweep, re-evaluation, consolidation) is a batch of independent
model fits. The tracker reports completed fits, the best test accuracy seen
so far, skipped elements and an ETA, on the console and/or via a callback.
"""

import logging
import sys
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class StageProgress:
    """Progress state for a single pipeline stage.

    Attributes:
        stage_name: Name of the stage.
        completed: Number of fits completed.
        total: Total fits expected.
        failed: Number of skipped elements.
        best_accuracy: Best test accuracy seen so far.
        start_time: Stage start timestamp.
        fit_times: Recent fit durations for ETA calculation.
    """
    stage_name: str
    completed: int = 0
    total: int = 0
    failed: int = 0
    best_accuracy: float = 0.0
    start_time: float = field(default_factory=time.time)
    fit_times: Deque[float] = field(default_factory=lambda: deque(maxlen=50))

    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time

    def eta_seconds(self) -> Optional[float]:
        """Estimate remaining time from the mean of recent fit durations."""
        if not self.fit_times or self.total <= 0:
            return None
        remaining = self.total - self.completed
        if remaining <= 0:
            return 0.0
        return remaining * sum(self.fit_times) / len(self.fit_times)

    def progress_pct(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(100.0, 100.0 * self.completed / self.total)


def format_duration(seconds: Optional[float]) -> str:
    """Format duration in human-readable form, e.g. "2h 15m" or "45s"."""
    if seconds is None:
        return "unknown"
    if seconds < 0:
        return "N/A"
    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        return f"{int(seconds / 60)}m {int(seconds % 60)}s"
    else:
        return f"{int(seconds / 3600)}h {int((seconds % 3600) / 60)}m"


class ProgressTracker:
    """Tracks and reports progress across pipeline stages.

    Attributes:
        enable_console: Whether to print to console.
        update_every: Report after every N completed fits.
        callback: Optional callback receiving a progress dict.
    """

    def __init__(
        self,
        enable_console: bool = True,
        update_every: int = 10,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None
    ):
        self.enable_console = enable_console
        self.update_every = max(1, update_every)
        self.callback = callback

        self._current: Optional[StageProgress] = None
        self._last_reported = 0
        self._global_start_time = time.time()
        self._history: List[Dict[str, Any]] = []

    def start_stage(self, stage_name: str, total: int):
        """Start a new stage, closing the previous one."""
        if self._current is not None:
            self.end_stage()

        self._current = StageProgress(stage_name=stage_name, total=total)
        self._last_reported = 0

        if self.enable_console:
            print(f"\n[{stage_name}] Starting ({total} fits expected)")
            sys.stdout.flush()

    def update(
        self,
        test_accuracy: Optional[float] = None,
        fit_time: Optional[float] = None,
        failed: bool = False
    ):
        """Record one finished element of the current stage."""
        stage = self._current
        if stage is None:
            return

        stage.completed += 1
        if failed:
            stage.failed += 1
        if test_accuracy is not None:
            stage.best_accuracy = max(stage.best_accuracy, test_accuracy)
        if fit_time is not None:
            stage.fit_times.append(fit_time)

        if stage.completed - self._last_reported >= self.update_every or stage.completed == stage.total:
            self._report()

    def _report(self):
        stage = self._current
        self._last_reported = stage.completed

        info = {
            'stage': stage.stage_name,
            'completed': stage.completed,
            'total': stage.total,
            'failed': stage.failed,
            'progress_pct': stage.progress_pct(),
            'best_accuracy': stage.best_accuracy,
            'elapsed_seconds': stage.elapsed_seconds(),
            'eta_seconds': stage.eta_seconds(),
        }

        if self.enable_console:
            print(
                f"\r[{stage.stage_name}] fit {stage.completed}/{stage.total} | "
                f"best acc={stage.best_accuracy:.4f} | skipped={stage.failed} | "
                f"ETA {format_duration(info['eta_seconds'])}",
                end=''
            )
            sys.stdout.flush()

        if self.callback is not None:
            try:
                self.callback(info)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def end_stage(self):
        """Close the current stage and keep its summary."""
        stage = self._current
        if stage is None:
            return

        self._history.append({
            'stage': stage.stage_name,
            'fits': stage.completed,
            'failed': stage.failed,
            'best_accuracy': stage.best_accuracy,
            'duration': stage.elapsed_seconds(),
        })

        if self.enable_console:
            print(f"\n[{stage.stage_name}] Complete: {stage.completed} fits, "
                  f"{stage.failed} skipped, best acc={stage.best_accuracy:.4f}, "
                  f"time={format_duration(stage.elapsed_seconds())}")
            sys.stdout.flush()

        self._current = None

    def get_summary(self) -> Dict[str, Any]:
        """Summary of all finished stages."""
        return {
            'total_time': time.time() - self._global_start_time,
            'stages': list(self._history),
        }


class NullProgressTracker(ProgressTracker):
    """A no-op progress tracker for when progress reporting is disabled."""

    def __init__(self):
        super().__init__(enable_console=False, callback=None)

    def start_stage(self, *args, **kwargs):
        pass

    def update(self, *args, **kwargs):
        pass

    def end_stage(self):
        pass


def create_progress_tracker(
    enable_console: bool = True,
    update_every: int = 10,
    callback: Optional[Callable[[Dict[str, Any]], None]] = None
) -> ProgressTracker:
    """Factory returning a ProgressTracker, or a no-op one when all output is off."""
    if not enable_console and callback is None:
        return NullProgressTracker()
    return ProgressTracker(
        enable_console=enable_console,
        update_every=update_every,
        callback=callback,
    )
