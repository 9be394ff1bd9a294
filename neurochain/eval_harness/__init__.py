"""
Evaluation harness for the macro instruction -> DSL -> output pipeline.

Components:
- evaluate.py: Main evaluation script with intent, output, fallback, latency and consistency metrics
- enhanced_metrics.py: Per-intent precision/recall/F1, coverage and degradation analysis
"""

from .evaluate import run_evaluation

__all__ = ['run_evaluation']
