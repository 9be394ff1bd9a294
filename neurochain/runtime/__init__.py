"""
Runtime for NeuroChain scripts.

Components:
- interpreter.py: Statement execution, diagnostics and macro re-entry
- engine.py: Source preprocessing, legacy normalization and per-run isolation
- sinks.py: Emission sinks and the raw macro trace
- config.py: EngineConfig (environment / .env driven)
"""

from .config import EngineConfig
from .engine import Engine, RunReport, normalize_legacy, normalize_legacy_lines, preprocess
from .interpreter import Interpreter, RunContext, RunState
from .sinks import BufferSink, ConsoleSink, FileSink, RawLog, TeeSink

__all__ = [
    'Engine', 'RunReport', 'EngineConfig', 'Interpreter', 'RunContext', 'RunState',
    'BufferSink', 'ConsoleSink', 'FileSink', 'TeeSink', 'RawLog',
    'preprocess', 'normalize_legacy', 'normalize_legacy_lines',
]
