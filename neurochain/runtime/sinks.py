"""
Emission sinks and the raw macro trace.

The engine decides what lines are emitted and in which order; a sink
decides where they go.
"""

from pathlib import Path
from typing import List, Optional, Protocol


class Sink(Protocol):
    def emit(self, line: str) -> None:
        ...


class BufferSink:
    """Collects emitted lines in memory (tests, HTTP-style hosts)."""

    def __init__(self):
        self.lines: List[str] = []

    def emit(self, line: str):
        self.lines.append(line)

    def take_output(self) -> str:
        out = "\n".join(self.lines)
        self.lines = []
        return out

    def clear(self):
        self.lines = []


class ConsoleSink:
    def __init__(self, prefix: str = "neuro: "):
        self.prefix = prefix

    def emit(self, line: str):
        print(f"{self.prefix}{line}", flush=True)


class FileSink:
    """Appends `neuro: <line>` records to a log file."""

    def __init__(self, path, prefix: str = "neuro: "):
        self.path = Path(path)
        self.prefix = prefix

    def emit(self, line: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(f"{self.prefix}{line}\n")


class TeeSink:
    def __init__(self, *sinks):
        self.sinks = [s for s in sinks if s is not None]

    def emit(self, line: str):
        for sink in self.sinks:
            sink.emit(line)


class RawLog:
    """Macro trace: `>>> LABEL`, the content, then a `----` separator."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else Path("logs") / "macro_raw_latest.log"

    def write(self, label: str, content: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(f">>> {label}\n{content}\n----\n")
