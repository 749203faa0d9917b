"""Polling regeneration loop that keeps the diagram in sync with the source tree."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from gouml.config import WatchSettings
from gouml.errors import GoUmlError
from gouml.indexer.pipeline import discover_go_files, run_generation

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    BUILDING = "building"
    RENDERING = "rendering"
    ERROR = "error"


@dataclass
class ChangeSet:
    added: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    modified: list[Path] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.added or self.removed or self.modified)

    def describe(self) -> str:
        return f"{len(self.added)} added, {len(self.removed)} removed, {len(self.modified)} modified"


@dataclass
class TickResult:
    changes: ChangeSet
    ran: bool = False
    summary: dict | None = None
    error: str | None = None
    duration: float = 0.0


def detect_changes(previous: dict[Path, int], current: dict[Path, int]) -> ChangeSet:
    """Compare two {path: mtime_ns} snapshots."""
    changes = ChangeSet()
    for path, mtime in current.items():
        if path not in previous:
            changes.added.append(path)
        elif mtime != previous[path]:
            changes.modified.append(path)
    changes.removed = [p for p in previous if p not in current]
    return changes


class RegenerationLoop:
    """Rebuilds the diagram whenever a watched Go file is added, removed or modified.

    Runs on a single thread: scan, build and render happen strictly in
    sequence, and the only waits are the poll interval and the settle delay.
    A failed pass is logged and the loop carries on with the next tick.
    """

    def __init__(
        self,
        settings: WatchSettings,
        generate: Callable[..., dict] = run_generation,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.settings = settings
        self._generate = generate
        self._sleep = sleep
        self._clock = clock
        self._known: dict[Path, int] = {}
        self.state = LoopState.IDLE
        self.last_summary: dict | None = None
        self.last_error: str | None = None

    def snapshot(self) -> dict[Path, int]:
        """Return {path: mtime_ns} for every current source unit."""
        files = discover_go_files(self.settings.watch_path, single_file=self.settings.single_file)
        snap: dict[Path, int] = {}
        for path in files:
            try:
                snap[path] = path.stat().st_mtime_ns
            except OSError:
                # Removed between listing and stat
                continue
        return snap

    def _on_progress(self, event: dict) -> None:
        if event.get("step") == "build":
            self.state = LoopState.RENDERING

    def tick(self, force: bool = False) -> TickResult:
        """Scan once and regenerate if anything changed (or if forced)."""
        self.state = LoopState.SCANNING
        try:
            current = self.snapshot()
        except GoUmlError as e:
            return self._fail(TickResult(changes=ChangeSet()), e)

        changes = detect_changes(self._known, current)
        # Keep the new snapshot even if the pass fails, so an unchanged broken
        # file is not rebuilt on every tick
        self._known = current
        result = TickResult(changes=changes)
        if not changes and not force:
            self.state = LoopState.IDLE
            return result

        if changes:
            logger.info("Changes detected (%s), regenerating diagram", changes.describe())
        if self.settings.settle_delay > 0:
            self._sleep(self.settings.settle_delay)

        self.state = LoopState.BUILDING
        t0 = self._clock()
        try:
            summary = self._generate(self.settings, on_progress=self._on_progress)
        except GoUmlError as e:
            return self._fail(result, e)
        except OSError as e:
            return self._fail(result, e)
        except Exception as e:
            logger.exception("Unexpected error during diagram generation")
            return self._fail(result, e)
        result.duration = self._clock() - t0

        logger.info(
            "Diagram regenerated: %d files, %d structs, %d interfaces, %d relations (%.2fs)",
            summary.get("files", 0), summary.get("structs", 0), summary.get("interfaces", 0),
            summary.get("relations", 0), result.duration,
        )
        self.last_summary = summary
        self.last_error = None
        result.ran = True
        result.summary = summary
        self.state = LoopState.IDLE
        return result

    def _fail(self, result: TickResult, error: Exception) -> TickResult:
        self.state = LoopState.ERROR
        logger.error("Diagram generation failed: %s", error)
        self.last_error = str(error)
        result.error = str(error)
        self.state = LoopState.IDLE
        return result

    def run(self, max_ticks: int | None = None) -> None:
        """Force an initial pass, then poll until interrupted.

        ``max_ticks`` bounds the number of ticks, including the initial one.
        """
        logger.info(
            "Watching %s (every %.1fs), output in %s",
            self.settings.watch_path, self.settings.poll_interval, self.settings.output_dir,
        )
        self.tick(force=True)
        ticks = 1
        while max_ticks is None or ticks < max_ticks:
            self._sleep(self.settings.poll_interval)
            self.tick()
            ticks += 1
