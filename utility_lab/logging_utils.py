from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, TextIO, Union

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
LEVEL_ALIASES = {"WARNING": "WARN", "CRITICAL": "ERROR", "FATAL": "ERROR"}
LEVEL_STYLES = {"DEBUG": "dim", "INFO": "white", "WARN": "yellow", "ERROR": "bold red"}

STEP_WIDTH = 7

Message = Union[str, Callable[[Any], str]]


def normalize_level(level: str) -> str:
    name = str(level).strip().upper()
    return LEVEL_ALIASES.get(name, name)


def format_line(step: str, level: str, message: str, elapsed_ms: Optional[float] = None) -> str:
    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{stamp}] [{level:<5}] [{step.upper():<{STEP_WIDTH}}] {message}"
    if elapsed_ms is not None:
        line += f" (ms={elapsed_ms:.0f})"
    return line


@dataclass(slots=True)
class RunLogger:
    """Step-tagged reporter for optimization runs.

    Lines look like ``[12:00:01.250] [INFO ] [LOCAL  ] lineage=0 ...``. They
    go to the rich console when one is attached and are appended to
    ``logfile`` when configured. ``timed`` also accumulates wall time per step
    so a run can report where it spent its budget.
    """

    console: Optional[Console]
    level: str = "INFO"
    logfile: Optional[Path] = None
    timings: Dict[str, float] = field(default_factory=dict)
    _sink: Optional[TextIO] = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        self.level = normalize_level(self.level)
        if self.level not in LEVELS:
            raise ValueError(f"Unknown log level: {self.level!r}")
        if self.logfile is not None:
            self.logfile.parent.mkdir(parents=True, exist_ok=True)
            self._sink = self.logfile.open("a", encoding="utf-8")

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._sink is not None:
            self._sink.close()
            self._sink = None

    def enabled_for(self, level: str) -> bool:
        return LEVELS.get(normalize_level(level), 100) >= LEVELS[self.level]

    def log(self, step: str, message: str, level: str = "INFO", elapsed_ms: Optional[float] = None) -> None:
        level = normalize_level(level)
        if not self.enabled_for(level):
            return
        line = format_line(step, level, message, elapsed_ms)
        if self.console is not None:
            self.console.print(line, style=LEVEL_STYLES.get(level, "white"), highlight=False, soft_wrap=True)
        if self._sink is not None:
            self._sink.write(line + "\n")
            self._sink.flush()

    def timed(
        self,
        step: str,
        message: Message,
        func: Callable[..., Any],
        *args,
        level: str = "INFO",
        **kwargs,
    ) -> Any:
        """Runs ``func`` and logs ``message`` (or ``message(result)``) with its duration."""

        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self.log(step, f"error: {exc}", level="ERROR", elapsed_ms=self._spent(step, start))
            raise
        elapsed = self._spent(step, start)
        self.log(step, message(result) if callable(message) else message, level=level, elapsed_ms=elapsed)
        return result

    def _spent(self, step: str, start: float) -> float:
        elapsed = (time.perf_counter() - start) * 1000.0
        key = step.lower()
        self.timings[key] = self.timings.get(key, 0.0) + elapsed
        return elapsed

    def summary(self, summary: Mapping[str, Any]) -> None:
        """Reports a ``RunResult.summary()`` mapping, one row per lineage."""

        lineages = list(summary.get("lineages", ()))
        best = summary.get("best_lineage")
        for position, row in enumerate(lineages):
            marker = " *" if position == best else ""
            self.log(
                "result",
                f"lineage={row['index']} seed={row['seed_score']:.4f} final={row['score']:.4f} "
                f"generated={row['generated']} accepted={row['accepted']} stop={row['stop_reason']}{marker}",
                level="DEBUG",
            )
        if self.console is None or not self.enabled_for("INFO"):
            return
        table = Table(title=f"best utility {summary.get('score', 0.0):.4f}", show_lines=False)
        for column in ("lineage", "seed", "final", "generated", "accepted", "stop"):
            table.add_column(column, justify="left" if column == "stop" else "right")
        for position, row in enumerate(lineages):
            table.add_row(
                str(row["index"]),
                f"{row['seed_score']:.4f}",
                f"{row['score']:.4f}",
                str(row["generated"]),
                str(row["accepted"]),
                row["stop_reason"],
                style="bold" if position == best else None,
            )
        self.console.print(table)


def create_logger(level: str = "INFO", logfile: Optional[Path] = None, *, quiet: bool = False) -> RunLogger:
    console = None if quiet else Console(theme=Theme({"repr.number": "cyan"}))
    return RunLogger(console=console, level=level, logfile=logfile)


__all__ = ["LEVELS", "RunLogger", "create_logger", "format_line", "normalize_level"]
