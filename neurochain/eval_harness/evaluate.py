#!/usr/bin/env python3
"""
Evaluation harness for the macro pipeline (instruction -> intent -> DSL -> output).

Computes intent accuracy, output (denotation) accuracy, fallback rate,
latency, per-intent precision/recall/F1, degradations and repeat consistency.

Case file: one JSON object per line,
    {"instruction": "...", "intent": "Loop", "expected_output": ["Ping", "Ping"],
     "setup": "set score = 78"}

Usage:
    python -m neurochain.eval_harness.evaluate --test data/macro_cases.jsonl
                                               --out out/metrics.json
                                               --pred out/predictions.csv
                                               --model models/intent_macro/model.json
"""
import argparse
import json
import statistics
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..classifier.bow import BagOfWordsClassifier
from ..dsl.nodes import MacroInvoke
from ..macro.intents import DEFAULT_THRESHOLD
from ..macro.synthesizer import MacroSynthesizer
from ..runtime.engine import normalize_legacy_lines, preprocess
from ..runtime.interpreter import Interpreter, RunState
from ..runtime.sinks import BufferSink
from .enhanced_metrics import compute_enhanced_metrics


def load_model(model_name: str, threshold: float = DEFAULT_THRESHOLD) -> MacroSynthesizer:
    """Build the synthesizer under test: `heuristic` (keyword fallback only) or a model path."""
    if model_name == "heuristic":
        return MacroSynthesizer(threshold=threshold)
    if not Path(model_name).exists():
        raise ValueError(f"Unknown model: {model_name}. Supported: heuristic or a JSON model path")
    return MacroSynthesizer(BagOfWordsClassifier(), model_name, threshold)


def load_cases(path: str) -> List[Dict[str, Any]]:
    cases = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            if line.strip():
                cases.append(json.loads(line))
    return cases


def evaluate_single_example(example: Dict[str, Any], synthesizer: MacroSynthesizer) -> Dict[str, Any]:
    """Evaluate a single case and return detailed results."""
    instruction = example['instruction']
    expected = [str(x) for x in example.get('expected_output', [])]

    sink = BufferSink()
    interpreter = Interpreter(sink, synthesizer=synthesizer)
    setup_ok = True
    if example.get('setup'):
        setup_ok = interpreter.run_source(*normalize_legacy_lines(preprocess(example['setup']))) is RunState.FINISHED
        sink.clear()

    start_time = time.time()
    interpreter.execute([MacroInvoke(instruction, 1)])
    latency = time.time() - start_time

    expansion = interpreter.expansions[-1]
    output = list(sink.lines)
    has_expected = 'expected_output' in example

    return {
        'instruction': instruction,
        'gold_intent': example.get('intent', ''),
        'pred_intent': expansion.intent.value,
        'label': expansion.label,
        'score': expansion.score,
        'used_fallback': expansion.used_fallback,
        'pred_dsl': expansion.dsl,
        'output': output,
        'expected_output': expected,
        'ok_intent': expansion.intent.value == example.get('intent'),
        'ok_output': output == expected if has_expected else None,
        'degradations': list(expansion.degradations),
        'latency_ms': latency * 1000,
        'error': '' if setup_ok else 'setup script failed',
    }


def compute_metrics(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Compute overall and per-intent metrics from evaluation results."""
    total = len(results)
    intent_ok = sum(1 for r in results if r['ok_intent'])
    judged = [r for r in results if r['ok_output'] is not None]
    output_ok = sum(1 for r in judged if r['ok_output'])
    fallback = sum(1 for r in results if r['used_fallback'])

    latencies = [r['latency_ms'] for r in results]
    if len(latencies) >= 2:
        latency_p50 = statistics.median(latencies)
        latency_p90 = statistics.quantiles(latencies, n=10)[8]  # 90th percentile
        latency_mean = statistics.mean(latencies)
        latency_max = max(latencies)
    elif latencies:
        latency_p50 = latency_p90 = latency_mean = latency_max = latencies[0]
    else:
        latency_p50 = latency_p90 = latency_mean = latency_max = 0.0

    by_intent = {}
    for intent in sorted(set(r['gold_intent'] for r in results)):
        rows = [r for r in results if r['gold_intent'] == intent]
        rows_judged = [r for r in rows if r['ok_output'] is not None]
        by_intent[intent] = {
            'total': len(rows),
            'intent_accuracy': sum(1 for r in rows if r['ok_intent']) / len(rows),
            'output_accuracy': (sum(1 for r in rows_judged if r['ok_output']) / len(rows_judged)
                                if rows_judged else None),
        }

    return {
        'overall': {
            'total_examples': total,
            'intent_accuracy': intent_ok / total if total else 0.0,
            'output_accuracy': output_ok / len(judged) if judged else 0.0,
            'fallback_rate': fallback / total if total else 0.0,
            'latency_p50_ms': latency_p50,
            'latency_p90_ms': latency_p90,
            'latency_mean_ms': latency_mean,
            'latency_max_ms': latency_max,
        },
        'by_intent': by_intent,
    }


def run_evaluation(test_jsonl_path: str, model_name: str, output_metrics_path: str,
                   output_predictions_path: str, repeat: int = 1,
                   threshold: float = DEFAULT_THRESHOLD) -> Dict[str, Any]:
    """Run complete evaluation and save results."""

    print("🧪 Evaluation Harness")
    print(f"Test data: {test_jsonl_path}")
    print(f"Model: {model_name} (threshold {threshold})")
    print()

    synthesizer = load_model(model_name, threshold)
    examples = load_cases(test_jsonl_path)
    print(f"Loaded {len(examples)} test examples")

    results: List[Dict[str, Any]] = []        # first run results (for standard metrics)
    rep_pred_dsls: List[List[str]] = []       # per-example DSL across repeats
    rep_outputs: List[List[str]] = []

    reps = max(1, int(repeat))
    for i, example in enumerate(examples):
        print(f"Evaluating {i+1}/{len(examples)}: {example['instruction'][:50]}...")
        dsls_this_example: List[str] = []
        outputs_this_example: List[str] = []
        for r in range(reps):
            single = evaluate_single_example(example, synthesizer)
            dsls_this_example.append(single['pred_dsl'])
            outputs_this_example.append("\n".join(single['output']))
            if r == 0:
                results.append(single)
        rep_pred_dsls.append(dsls_this_example)
        rep_outputs.append(outputs_this_example)

    print(f"\nCompleted evaluation of {len(results)} examples")

    metrics = compute_metrics(results)
    metrics.update(compute_enhanced_metrics(results))

    total = len(rep_pred_dsls)
    if reps > 1 and total:
        metrics['consistency_dsl_rate'] = sum(1 for d in rep_pred_dsls if len(set(d)) == 1) / total
        metrics['consistency_output_rate'] = sum(1 for o in rep_outputs if len(set(o)) == 1) / total
    else:
        metrics['consistency_dsl_rate'] = 1.0
        metrics['consistency_output_rate'] = 1.0

    output_metrics_path = Path(output_metrics_path)
    output_metrics_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_metrics_path, 'w', encoding='utf-8') as f:
        json.dump(metrics, f, indent=2, ensure_ascii=False)
    print(f"📊 Saved metrics: {output_metrics_path}")

    output_predictions_path = Path(output_predictions_path)
    output_predictions_path.parent.mkdir(parents=True, exist_ok=True)
    predictions_df = pd.DataFrame([
        {
            'instruction': r['instruction'],
            'gold_intent': r['gold_intent'],
            'pred_intent': r['pred_intent'],
            'score': r['score'],
            'used_fallback': r['used_fallback'],
            'ok_intent': r['ok_intent'],
            'ok_output': r['ok_output'],
            'pred_dsl': r['pred_dsl'],
            'output': " | ".join(r['output']),
            'degradations': "; ".join(r['degradations']),
            'latency_ms': r['latency_ms'],
            'error': r['error'],
        }
        for r in results
    ])
    predictions_df.to_csv(output_predictions_path, index=False, encoding='utf-8')
    print(f"📝 Saved predictions: {output_predictions_path}")

    print("\n" + "=" * 60)
    print("📈 EVALUATION SUMMARY")
    print("=" * 60)
    overall = metrics['overall']
    print(f"Total examples: {overall['total_examples']}")
    print(f"Intent accuracy: {100*overall['intent_accuracy']:.1f}%")
    print(f"Output accuracy: {100*overall['output_accuracy']:.1f}%")
    print(f"Fallback rate: {100*overall['fallback_rate']:.1f}%")
    print()
    print(f"Latency p50: {overall['latency_p50_ms']:.2f}ms")
    print(f"Latency p90: {overall['latency_p90_ms']:.2f}ms")

    print("\n📊 BY INTENT:")
    for intent, data in metrics['by_intent'].items():
        out_acc = data['output_accuracy']
        out_txt = f"{100*out_acc:.1f}%" if out_acc is not None else "n/a"
        print(f"  {intent}: {100*data['intent_accuracy']:.1f}% intent, {out_txt} output ({data['total']} cases)")

    print("\n✅ Evaluation complete!")
    return metrics


def main(argv: Optional[List[str]] = None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Evaluate the macro instruction -> DSL pipeline")
    parser.add_argument("--test", required=True,
                        help="Test JSONL file path (e.g., data/macro_cases.jsonl)")
    parser.add_argument("--out", default="out/metrics.json",
                        help="Output metrics JSON path")
    parser.add_argument("--pred", default="out/predictions.csv",
                        help="Output predictions CSV path")
    parser.add_argument("--model", default="heuristic",
                        help="Macro model JSON path, or 'heuristic' for keyword fallback only")
    parser.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD,
                        help=f"Intent confidence threshold (default: {DEFAULT_THRESHOLD})")
    parser.add_argument("--repeat", type=int, default=1,
                        help="Repeat predictions per example to measure consistency (default: 1)")

    args = parser.parse_args(argv)

    if not Path(args.test).exists():
        print(f"❌ Test file not found: {args.test}")
        sys.exit(1)
    if args.model != "heuristic" and not Path(args.model).exists():
        print(f"❌ Model not found: {args.model}")
        sys.exit(1)

    run_evaluation(args.test, args.model, args.out, args.pred,
                   repeat=args.repeat, threshold=args.threshold)


if __name__ == "__main__":
    main()
