"""
MacroIntent synthesizer: English instruction -> DSL source text.

classify (macro classifier, own model path) -> resolve intent (threshold,
keyword fallback, refinement) -> render template. Any failure short of the
final render degrades to a safe default and is recorded on the expansion.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..classifier.base import Classifier, ClassifierError
from .extract import strip_wrapping_quotes
from .intents import DEFAULT_THRESHOLD, Intent, resolve_intent
from .templates import echo_line, render


@dataclass
class MacroExpansion:
    instruction: str
    intent: Intent
    dsl: str
    label: Optional[str] = None
    score: float = 0.0
    used_fallback: bool = False
    degradations: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "instruction": self.instruction,
            "intent": self.intent.value,
            "label": self.label,
            "score": round(self.score, 4),
            "used_fallback": self.used_fallback,
            "dsl": self.dsl,
            "degradations": list(self.degradations),
        }


class MacroSynthesizer:
    """
    Turns macro instructions into DSL.

    `classifier` and `model_path` are optional; without them every
    instruction goes through the keyword fallback. `raw_log` receives
    (label, content) trace records when given.
    """

    def __init__(self, classifier: Optional[Classifier] = None, model_path: Optional[str] = None,
                 threshold: float = DEFAULT_THRESHOLD, raw_log=None):
        self.classifier = classifier
        self.model_path = model_path
        self.threshold = threshold
        self.raw_log = raw_log

    def _trace(self, label: str, content: str):
        if self.raw_log is not None:
            self.raw_log.write(label, content)

    def classify(self, text: str, notes: List[str]):
        """(label, score) from the macro classifier, or (None, 0.0) on failure."""
        if self.classifier is None or not self.model_path:
            notes.append("macro classifier not configured, used keyword fallback")
            return None, 0.0
        try:
            result = self.classifier.classify(self.model_path, text)
        except ClassifierError as e:
            notes.append(f"macro classifier failed ({e}), used keyword fallback")
            return None, 0.0
        return result.label, float(result.score)

    def synthesize(self, instruction: str) -> MacroExpansion:
        text = strip_wrapping_quotes(instruction)
        notes: List[str] = []

        label, score = self.classify(text, notes)
        self._trace("INTENT", f"label={label} score={score:.3f} | {text}")

        intent, used_fallback = resolve_intent(label, score, text, self.threshold)
        if used_fallback and label is not None:
            if Intent.from_label(label) is None:
                notes.append(f"unknown classifier label {label!r}, used keyword fallback")
            else:
                notes.append(f"score {score:.2f} below threshold {self.threshold:.2f}, used keyword fallback")
        if used_fallback:
            self._trace("FALLBACK", intent.value)

        if text.strip():
            dsl = render(intent, text, notes)
        else:
            notes.append("empty instruction")
            dsl = echo_line(text)
        self._trace("DSL", dsl)

        return MacroExpansion(
            instruction=instruction,
            intent=intent,
            dsl=dsl,
            label=label,
            score=score,
            used_fallback=used_fallback,
            degradations=notes,
        )
