"""
Tree-walking interpreter.

One Interpreter (and one RunContext) per script run. Recoverable errors
become a single `❌` diagnostic line on the sink and execution continues;
only a top-level LexError/ParseError halts the run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..classifier.base import Classifier, ClassifierError
from ..dsl.errors import DslError, EvalError
from ..dsl.evaluator import evaluate
from ..dsl.nodes import Assign, AssignFromAI, If, MacroInvoke, Print, SelectModel
from ..dsl.parser import parse
from ..dsl.values import Environment, display, truthy
from ..macro.extract import strip_wrapping_quotes
from ..macro.synthesizer import MacroExpansion, MacroSynthesizer


class RunState(Enum):
    RUNNING = "running"
    HALTED_ON_ERROR = "halted_on_error"
    FINISHED = "finished"


@dataclass
class RunContext:
    """Per-run mutable state: variables and the selected classifier model."""
    env: Environment = field(default_factory=Environment)
    active_model: Optional[str] = None


class Interpreter:
    def __init__(self, sink, classifier: Optional[Classifier] = None,
                 synthesizer: Optional[MacroSynthesizer] = None,
                 max_macro_depth: int = 1, context: Optional[RunContext] = None):
        self.sink = sink
        self.classifier = classifier
        self.synthesizer = synthesizer or MacroSynthesizer()
        self.max_macro_depth = max_macro_depth
        self.context = context or RunContext()
        self.state = RunState.RUNNING
        self.expansions: List[MacroExpansion] = []
        self.line_map: Optional[List[int]] = None

    @property
    def env(self) -> Environment:
        return self.context.env

    def source_line(self, line: Optional[int]) -> Optional[int]:
        """Map a line of the parsed text back to the line the user wrote."""
        if line is None or not self.line_map:
            return line
        if 1 <= line <= len(self.line_map):
            return self.line_map[line - 1]
        # end of input reported past the last line
        return self.line_map[-1] + (line - len(self.line_map))

    def diagnostic(self, kind: str, line: int, message: str):
        self.sink.emit(f"❌ {kind} on line {self.source_line(line)}: {message}")

    def run_source(self, source: str, line_map: Optional[List[int]] = None) -> RunState:
        """
        Parse and execute top-level script text.

        `line_map` gives the original line of each line of `source` when the
        text was rewritten before parsing.
        """
        self.state = RunState.RUNNING
        self.line_map = line_map
        try:
            program = parse(source)
        except DslError as e:
            e.line = self.source_line(e.line)
            self.sink.emit(f"❌ {e}")
            self.state = RunState.HALTED_ON_ERROR
            return self.state
        self.execute(program)
        self.state = RunState.FINISHED
        return self.state

    def execute(self, statements, depth: int = 0, origin: Optional[int] = None):
        """
        Execute statements in order.

        `origin` is the line of the macro call when running synthesized
        statements; diagnostics then point at the script line.
        """
        for stmt in statements:
            self.execute_statement(stmt, depth, origin)

    def execute_statement(self, stmt, depth: int = 0, origin: Optional[int] = None):
        line = origin or stmt.line

        if isinstance(stmt, Print):
            try:
                value = evaluate(stmt.expr, self.env)
            except EvalError as e:
                self.diagnostic(e.kind, line, str(e))
                return
            self.sink.emit(display(value))

        elif isinstance(stmt, Assign):
            try:
                value = evaluate(stmt.expr, self.env)
            except EvalError as e:
                self.diagnostic(e.kind, line, str(e))
                value = None
            self.env.set(stmt.name, value)

        elif isinstance(stmt, AssignFromAI):
            self.env.set(stmt.name, self.classify(stmt.prompt, line))

        elif isinstance(stmt, SelectModel):
            try:
                self.context.active_model = display(evaluate(stmt.path, self.env))
            except EvalError as e:
                self.diagnostic(e.kind, line, str(e))

        elif isinstance(stmt, If):
            for branch in stmt.branches:
                try:
                    matched = truthy(evaluate(branch.condition, self.env))
                except EvalError as e:
                    self.diagnostic(e.kind, line, str(e))
                    matched = False
                if matched:
                    self.execute(branch.body, depth, origin)
                    return
            if stmt.orelse:
                self.execute(stmt.orelse, depth, origin)

        elif isinstance(stmt, MacroInvoke):
            self.run_macro(stmt, depth, line)

        else:
            raise TypeError(f"unknown statement {type(stmt).__name__}")

    def classify(self, prompt: str, line: int):
        """Label for `set x from AI:`; None (after a diagnostic) when classification fails."""
        if self.context.active_model is None:
            self.diagnostic("ClassifierError", line, 'no model selected, add an `AI: "path"` line first')
            return None
        if self.classifier is None:
            self.diagnostic("ClassifierError", line, "no classifier available")
            return None
        try:
            return self.classifier.classify(self.context.active_model, prompt).label
        except ClassifierError as e:
            self.diagnostic("ClassifierError", line, str(e))
            return None

    def run_macro(self, stmt: MacroInvoke, depth: int, line: int):
        if depth >= self.max_macro_depth:
            self.diagnostic("MacroError", line, f"macro nesting deeper than {self.max_macro_depth} is not allowed")
            return

        expansion = self.synthesizer.synthesize(stmt.instruction)
        self.expansions.append(expansion)
        try:
            program = parse(expansion.dsl)
        except DslError as e:
            # malformed synthesized code falls back to echoing the instruction
            expansion.degradations.append(f"synthesized DSL rejected ({e}), echoed instruction")
            self.sink.emit(strip_wrapping_quotes(stmt.instruction))
            return
        self.execute(program, depth + 1, line)
