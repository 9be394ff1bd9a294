#!/usr/bin/env python3
"""
Enhanced evaluation metrics for the macro pipeline.

Implements per-intent precision/recall/F1, intent coverage, DSL feature
usage and degradation analysis.
"""

import re
from collections import defaultdict
from typing import Any, Dict, List


def dsl_features(dsl: str) -> Dict[str, int]:
    """Count statement kinds in a synthesized DSL block."""
    counts = defaultdict(int)
    for line in dsl.split("\n"):
        stripped = line.strip().lower()
        if not stripped:
            continue
        if stripped.startswith("#") or stripped.startswith("//"):
            counts["comment"] += 1
        elif re.match(r"^(if|elif|else)\b", stripped):
            counts[stripped.split()[0].rstrip(":")] += 1
        elif stripped.startswith("set "):
            counts["set"] += 1
        elif stripped.startswith("neuro "):
            counts["neuro"] += 1
        else:
            counts["other"] += 1
    return dict(counts)


def compute_intent_accuracy(gold_intents: List[str], pred_intents: List[str]) -> Dict[str, float]:
    """Compute intent accuracy and per-class metrics."""
    total = len(gold_intents)
    correct = sum(1 for g, p in zip(gold_intents, pred_intents) if g == p)
    accuracy = correct / total if total > 0 else 0.0

    intent_types = set(gold_intents + pred_intents)
    per_class_metrics = {}

    for intent in sorted(intent_types):
        tp = sum(1 for g, p in zip(gold_intents, pred_intents) if g == intent and p == intent)
        fp = sum(1 for g, p in zip(gold_intents, pred_intents) if g != intent and p == intent)
        fn = sum(1 for g, p in zip(gold_intents, pred_intents) if g == intent and p != intent)

        precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
        recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
        f1 = 2 * precision * recall / (precision + recall) if (precision + recall) > 0 else 0.0

        per_class_metrics[f"{intent}_precision"] = precision
        per_class_metrics[f"{intent}_recall"] = recall
        per_class_metrics[f"{intent}_f1"] = f1

    f1s = [v for k, v in per_class_metrics.items() if k.endswith('_f1')]
    per_class_metrics['macro_f1'] = sum(f1s) / len(f1s) if f1s else 0.0

    return {'intent_accuracy': accuracy, **per_class_metrics}


def analyze_coverage(gold_intents: List[str], pred_dsls: List[str]) -> Dict[str, Any]:
    """Intent distribution of the case file and DSL feature usage of the predictions."""
    intent_counts = defaultdict(int)
    feature_usage = defaultdict(int)

    for intent in gold_intents:
        intent_counts[intent] += 1
    for dsl in pred_dsls:
        for feature in dsl_features(dsl):
            feature_usage[feature] += 1

    total = len(gold_intents)
    return {
        'total_examples': total,
        'intent_distribution': {k: v / total for k, v in intent_counts.items()} if total else {},
        'feature_usage': {k: v / total for k, v in feature_usage.items()} if total else {},
    }


def analyze_degradations(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """How often the pipeline fell back to a safe default, grouped by kind."""
    kinds = defaultdict(int)
    degraded = 0
    for r in results:
        notes = r.get('degradations') or []
        if notes:
            degraded += 1
        for note in notes:
            # "loop count 40 clamped to 12" -> "loop count clamped"
            kind = re.sub(r"\(.*?\)|'.*?'|\d+(?:\.\d+)?", "", note)
            kinds[re.sub(r"\s+", " ", kind).strip()] += 1
    total = len(results)
    return {
        'degraded_rate': degraded / total if total else 0.0,
        'by_kind': dict(sorted(kinds.items())),
    }


def compute_enhanced_metrics(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Compute all enhanced evaluation metrics."""
    gold_intents = [r['gold_intent'] for r in results]
    pred_intents = [r['pred_intent'] for r in results]
    pred_dsls = [r['pred_dsl'] for r in results]

    return {
        'intent_metrics': compute_intent_accuracy(gold_intents, pred_intents),
        'coverage_metrics': analyze_coverage(gold_intents, pred_dsls),
        'degradation_metrics': analyze_degradations(results),
    }
