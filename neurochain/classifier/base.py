"""Classifier collaborator boundary: `classify(model_path, text) -> ClassifierResult`."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ClassifierResult:
    label: str
    score: float  # 0.0 ..= 1.0


class ClassifierError(Exception):
    """Missing model file, malformed model, or tokenizer/label mismatch."""


class Classifier(Protocol):
    def classify(self, model_path: str, text: str) -> ClassifierResult:
        ...
