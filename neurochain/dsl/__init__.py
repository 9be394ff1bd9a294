"""
DSL front end and evaluator for NeuroChain scripts.

Components:
- lexer.py: Hand-written tokenizer with indentation tracking
- parser.py: lark LALR parser building the statement tree
- evaluator.py: Arithmetic, comparison and boolean evaluation
- values.py: Runtime values and the variable store
"""

from .errors import DslError, EvalError, LexError, ParseError
from .evaluator import evaluate
from .lexer import Token, tokenize
from .parser import parse
from .values import Environment, display

__all__ = [
    'DslError', 'LexError', 'ParseError', 'EvalError',
    'Token', 'tokenize', 'parse', 'evaluate', 'Environment', 'display',
]
