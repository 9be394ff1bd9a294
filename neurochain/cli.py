#!/usr/bin/env python3
"""
NeuroChain command-line runner.

Usage:
    neurochain examples/macro_test.nc
    neurochain --generate "Show Ping 3 times"
    neurochain                      # interactive: blocks end with an empty line
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .runtime.config import EngineConfig
from .runtime.engine import Engine, normalize_legacy_lines, preprocess
from .runtime.sinks import ConsoleSink

ABOUT = "NeuroChain CLI: a small language for local classifiers, logic and macros."

SYNTAX_HELP = """
NeuroChain language help

Basic syntax:
----------------------------------------
AI: "models/sst2/model.json"     Select a classifier model
set x = "value"                  Set a variable
set x from AI: input text        Run the active model on the text into x
neuro x                          Print an expression
macro from AI: Show Ping 3 times Synthesize DSL from an instruction and run it

Macros:
----------------------------------------
Intents: Loop Branch Arith Concat RoleFlag AIBridge DocPrint SetVar Unknown
Quote the instruction when it contains if/elif/else/and/or or a comment marker:
  macro from AI: "If score >= 90 say Excellent, elif score >= 70 say Good, else say Needs work"
Loop counts are clamped to 1..12.

Control flow:
----------------------------------------
if mood == "positive":
    neuro "Great"
elif mood == "negative":
    neuro "Sorry"
else:
    neuro "Hmm"

Operators:
----------------------------------------
+ - * / %           Numeric when both sides read as numbers, + concatenates otherwise
== != < > <= >=     Text comparison ignores case and surrounding whitespace
and or              Logical operators

Comments:
----------------------------------------
# comment
// comment

Unbound names print as themselves: `neuro foo` prints foo.

Logging:
----------------------------------------
NEUROCHAIN_OUTPUT_LOG=1    mirror output into logs/run_latest.log
NEUROCHAIN_RAW_LOG=1       write intent/DSL traces to logs/macro_raw_latest.log
"""


def build_engine(args) -> Engine:
    config = EngineConfig.from_env()
    if args.threshold is not None:
        config.macro_threshold = args.threshold
    if args.macro_model:
        config.macro_model_path = args.macro_model
    return Engine(config)


def run_script(engine: Engine, path: str) -> int:
    try:
        source = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"❌ Error reading file: {e}", file=sys.stderr)
        return 1

    print(f"Running script: {path}")
    report = engine.run(source, ConsoleSink())
    if not report.ok:
        return 1
    print("Script finished.")
    return 0


def generate(engine: Engine, instruction: str) -> int:
    expansion = engine.generate(instruction)
    source = "classifier" if not expansion.used_fallback else "keyword fallback"
    print(f"Intent: {expansion.intent.value} ({source})")
    for note in expansion.degradations:
        print(f"⚠️  {note}")
    print(expansion.dsl)
    return 0


def interactive(engine: Engine) -> int:
    """Read blocks until `exit`; variables persist between blocks."""
    interpreter = engine.interpreter(ConsoleSink())
    while True:
        print("Enter NeuroChain code (finish with an empty line):")
        lines = []
        while True:
            try:
                line = input("... ")
            except EOFError:
                return 0
            if not line.strip():
                break
            lines.append(line)

        block = "\n".join(lines).strip()
        if block == "exit":
            print("Exiting...")
            return 0
        if block == "help":
            print(SYNTAX_HELP)
        elif block in ("version", "--version"):
            print(f"🧬 NeuroChain version {__version__}")
        elif block in ("about", "--about"):
            print(ABOUT)
        elif block:
            interpreter.run_source(*normalize_legacy_lines(preprocess(block)))


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(prog="neurochain", description=ABOUT)
    parser.add_argument("script", nargs="?", help="Script file to run (omit for interactive mode)")
    parser.add_argument("--generate", metavar="TEXT",
                        help="Print the DSL synthesized for a macro instruction without running it")
    parser.add_argument("--syntax", action="store_true", help="Show language help")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--about", action="store_true", help="Show project information")
    parser.add_argument("--threshold", type=float, default=None,
                        help="Macro intent confidence threshold (overrides NC_INTENT_THRESHOLD)")
    parser.add_argument("--macro-model", default=None,
                        help="Macro intent model path (overrides NC_MACRO_MODEL)")

    args = parser.parse_args(argv)

    if args.version:
        print(f"🧬 NeuroChain version {__version__}")
        sys.exit(0)
    if args.about:
        print(ABOUT)
        sys.exit(0)
    if args.syntax:
        print(SYNTAX_HELP)
        sys.exit(0)

    engine = build_engine(args)
    if args.generate is not None:
        sys.exit(generate(engine, args.generate))
    if args.script:
        sys.exit(run_script(engine, args.script))
    sys.exit(interactive(engine))


if __name__ == "__main__":
    main()
