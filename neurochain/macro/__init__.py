"""
MacroIntent synthesizer: rule-based English instruction -> DSL source.

Components:
- intents.py: Intent enum, threshold resolution, keyword fallback and refinement rules
- extract.py: Entity extraction (quoted text, counts, conditions, assignments)
- templates.py: Per-intent DSL templates
- synthesizer.py: Pipeline and the MacroExpansion record
"""

from .intents import DEFAULT_THRESHOLD, Intent, infer_intent, resolve_intent
from .synthesizer import MacroExpansion, MacroSynthesizer
from .templates import LOOP_MAX, LOOP_MIN

__all__ = [
    'Intent', 'infer_intent', 'resolve_intent', 'DEFAULT_THRESHOLD',
    'MacroSynthesizer', 'MacroExpansion', 'LOOP_MIN', 'LOOP_MAX',
]
