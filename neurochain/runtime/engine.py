"""
Run loop: source preprocessing, legacy normalization and one isolated
Interpreter per run.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..classifier.base import Classifier
from ..classifier.bow import BagOfWordsClassifier
from ..dsl.lexer import strip_comment
from ..dsl.values import Value
from ..macro.synthesizer import MacroExpansion, MacroSynthesizer
from .config import EngineConfig
from .interpreter import Interpreter, RunState
from .sinks import BufferSink, FileSink, RawLog, TeeSink

INLINE_CONTROL_RE = re.compile(r"^(?:if|elif)\s|^else\s*:", re.I)
LEGACY_PRINT_RE = re.compile(r"^(?:say|print)\b\s*", re.I)


def preprocess(source: str) -> str:
    """Drop a UTF-8 BOM and normalize line endings to LF."""
    if source.startswith("\ufeff"):
        source = source[1:]
    return source.replace("\r\n", "\n").replace("\r", "\n")


def _colon_outside_quotes(text: str) -> int:
    in_string = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ":":
            return i
        i += 1
    return -1


def _legacy_print(body: str) -> str:
    m = LEGACY_PRINT_RE.match(body)
    if m and m.end() < len(body):
        return "neuro " + body[m.end():]
    return body


def normalize_legacy_lines(source: str) -> Tuple[str, List[int]]:
    """
    Accept older script spellings.

    - `say X` / `print X` at the start of a line become `neuro X`
    - `if cond: stmt`, `elif cond: stmt` and `else: stmt` on one line are
      expanded into a header line plus a body indented four spaces deeper

    Returns the rewritten text and, for each of its lines, the 1-based line
    it came from in `source`.
    """
    out = []
    line_map = []
    for number, line in enumerate(source.split("\n"), 1):
        body = line.lstrip(" ")
        indent = line[:len(line) - len(body)]
        body = _legacy_print(body)
        if INLINE_CONTROL_RE.match(body):
            idx = _colon_outside_quotes(body)
            tail = body[idx + 1:] if idx >= 0 else ""
            if idx >= 0 and strip_comment(tail).strip():
                out.append(f"{indent}{body[:idx + 1]}")
                out.append(f"{indent}    {_legacy_print(tail.strip())}")
                line_map.extend([number, number])
                continue
        out.append(f"{indent}{body}")
        line_map.append(number)
    return "\n".join(out), line_map


def normalize_legacy(source: str) -> str:
    return normalize_legacy_lines(source)[0]


@dataclass
class RunReport:
    state: RunState
    output: List[str] = field(default_factory=list)
    variables: Dict[str, Value] = field(default_factory=dict)
    expansions: List[MacroExpansion] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is RunState.FINISHED

    @property
    def text(self) -> str:
        return "\n".join(self.output)


class Engine:
    """
    Entry point for hosts.

    Holds configuration and the classifier backend; every `run` gets a
    fresh Interpreter, Environment and ActiveModel slot.
    """

    def __init__(self, config: Optional[EngineConfig] = None, classifier: Optional[Classifier] = None):
        self.config = config or EngineConfig()
        self.classifier = classifier if classifier is not None else BagOfWordsClassifier()
        raw_log = RawLog(self.config.raw_log_path) if self.config.raw_log else None
        self.synthesizer = MacroSynthesizer(
            classifier=self.classifier,
            model_path=self.config.macro_model_path,
            threshold=self.config.macro_threshold,
            raw_log=raw_log,
        )

    def interpreter(self, sink) -> Interpreter:
        """A fresh Interpreter writing to `sink` (and the output log when enabled)."""
        file_sink = FileSink(self.config.output_log_path) if self.config.output_log else None
        return Interpreter(
            TeeSink(sink, file_sink),
            classifier=self.classifier,
            synthesizer=self.synthesizer,
            max_macro_depth=self.config.max_macro_depth,
        )

    def run(self, source: str, sink=None) -> RunReport:
        buffer = BufferSink()
        interpreter = self.interpreter(TeeSink(buffer, sink))
        state = interpreter.run_source(*normalize_legacy_lines(preprocess(source)))
        return RunReport(
            state=state,
            output=list(buffer.lines),
            variables=interpreter.env.snapshot(),
            expansions=interpreter.expansions,
        )

    def run_file(self, path, sink=None) -> RunReport:
        text = Path(path).read_text(encoding="utf-8")
        return self.run(text, sink)

    def generate(self, instruction: str) -> MacroExpansion:
        """Synthesize DSL for an instruction without running it."""
        return self.synthesizer.synthesize(instruction)
