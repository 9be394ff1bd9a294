"""
NeuroChain: a small scripting language with local classifier calls and
rule-based macro synthesis from English instructions.
"""

__version__ = "0.3.0"

from .runtime import Engine, EngineConfig, RunReport, RunState

__all__ = ['Engine', 'EngineConfig', 'RunReport', 'RunState', '__version__']
