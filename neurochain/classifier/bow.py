"""
Bag-of-words linear classifier backed by a JSON model file.

Model format:

    {
      "labels":  ["Positive", "Negative"],
      "bias":    [0.0, 0.0],
      "weights": {"great": [1.2, -0.8], "bad": [-1.0, 1.1]}
    }

Logits are the bias plus the summed weight rows of the tokens found in the
text; the score is the softmax probability of the arg-max label.
"""

import json
import re
from pathlib import Path
from typing import Dict, List

import numpy as np

from .base import ClassifierError, ClassifierResult

TOKEN_RE = re.compile(r"[a-z_]+|\d+|//|==|!=|<=|>=|[-+*/%<>=#']")


def tokenize(text: str) -> List[str]:
    return TOKEN_RE.findall(text.lower())


class BowModel:
    def __init__(self, labels: List[str], bias: np.ndarray, vocab: Dict[str, int], matrix: np.ndarray):
        self.labels = labels
        self.bias = bias
        self.vocab = vocab
        self.matrix = matrix

    @classmethod
    def from_json(cls, data: dict, source: str = "<memory>") -> "BowModel":
        if not isinstance(data, dict):
            raise ClassifierError(f"bad model format in {source}: expected an object")
        if not isinstance(data.get("labels"), list):
            raise ClassifierError(f"bad model format in {source}: 'labels' must be a list")
        if not isinstance(data.get("weights", {}), dict):
            raise ClassifierError(f"bad model format in {source}: 'weights' must be an object")
        if not isinstance(data.get("bias", []), list):
            raise ClassifierError(f"bad model format in {source}: 'bias' must be a list")

        labels = [str(l) for l in data["labels"]]
        weights = data.get("weights", {})
        if not labels:
            raise ClassifierError(f"model {source} has no labels")
        try:
            bias = np.asarray(data.get("bias", [0.0] * len(labels)), dtype=float)
        except (TypeError, ValueError) as e:
            raise ClassifierError(f"model {source}: non-numeric bias") from e
        if bias.shape != (len(labels),):
            raise ClassifierError(f"model {source}: bias has {bias.size} entries for {len(labels)} labels")

        vocab = {}
        rows = []
        for token, row in weights.items():
            if not isinstance(row, list) or len(row) != len(labels):
                raise ClassifierError(f"model {source}: weights for {token!r} do not match {len(labels)} labels")
            vocab[token] = len(rows)
            rows.append(row)
        try:
            matrix = np.asarray(rows, dtype=float).reshape(len(rows), len(labels))
        except (TypeError, ValueError) as e:
            raise ClassifierError(f"model {source}: non-numeric weights") from e
        # null entries become NaN and NaN/Infinity are valid JSON for the json module
        if not (np.isfinite(bias).all() and np.isfinite(matrix).all()):
            raise ClassifierError(f"model {source}: weights and bias must be finite numbers")
        return cls(labels, bias, vocab, matrix)

    def predict(self, text: str) -> ClassifierResult:
        logits = self.bias.copy()
        for token in tokenize(text):
            idx = self.vocab.get(token)
            if idx is not None:
                logits += self.matrix[idx]
        if not np.isfinite(logits).all():
            raise ClassifierError("model scores overflowed")
        probs = np.exp(logits - logits.max())
        probs /= probs.sum()
        best = int(np.argmax(probs))
        return ClassifierResult(self.labels[best], float(probs[best]))


class BagOfWordsClassifier:
    """Classifier collaborator that loads JSON models on first use and caches them per path."""

    def __init__(self):
        self._cache: Dict[str, BowModel] = {}

    def load(self, model_path: str) -> BowModel:
        if not model_path:
            raise ClassifierError("no model path given")
        key = str(Path(model_path))
        if key in self._cache:
            return self._cache[key]
        path = Path(model_path)
        if not path.is_file():
            raise ClassifierError(f"model not found: {model_path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ClassifierError(f"could not read model {model_path}: {e}") from e
        model = BowModel.from_json(data, model_path)
        self._cache[key] = model
        return model

    def classify(self, model_path: str, text: str) -> ClassifierResult:
        return self.load(model_path).predict(text)

