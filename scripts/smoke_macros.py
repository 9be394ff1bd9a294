#!/usr/bin/env python3
"""
Smoke test runner for macro instructions and DSL error handling.

Synthesizes and runs the instruction corpus, printing intent, DSL and
output for manual inspection.

Usage:
    python scripts/smoke_macros.py --model models/intent_macro/model.json
    python scripts/smoke_macros.py --model heuristic
"""

import argparse
import time
import sys
from pathlib import Path

# Add parent directory for imports
sys.path.append(str(Path(__file__).parent.parent))

from neurochain.runtime.config import EngineConfig
from neurochain.runtime.engine import Engine


LOOP_MACROS = [
    "Show Ping 3 times",
    "Repeat 'Go team' three times",
    "Say hello 40 times",
]

LOGIC_MACROS = [
    ("set score = 78", "\"If score >= 90 say Excellent, elif score >= 70 say Good, else say Needs work\""),
    ("set flag = true\nset status = \"ready\"", "Show status when flag is true"),
    ("", "Create variable total = 3 + 4 and print it"),
    ("", "Subtract 3 from 10, divide by 7, store in q and print it"),
    ("set name = \"Ada\"", "Print 'Hello ' + name"),
]

MISC_MACROS = [
    "Set a = 1 and b = 2, then print a + b",
    "Set role moderator",
    "Say the number 42",
    "Format Hello and World with a comma",
    "\"Add a comment that says setup done\"",
    "Bridge assistant output to UI",
    "Tell me a joke",
]

ERROR_CASES = [
    "set x 5",
    "neuro 1 / 0",
    "neuro \"unterminated",
    "if x:\n\tneuro x",
]


def truncate(text, max_length=80):
    """Truncate a single-line rendering for display."""
    text = text.replace("\n", " \\n ")
    if len(text) <= max_length:
        return text
    return text[:max_length-3] + "..."


def run_macro_safely(engine, instruction, setup=""):
    """Run setup plus one macro and return the report details."""
    try:
        start_time = time.time()
        source = f"{setup}\nmacro from AI: {instruction}" if setup else f"macro from AI: {instruction}"
        report = engine.run(source)
        end_time = time.time()

        expansion = report.expansions[-1] if report.expansions else None
        return {
            'success': report.ok and not any(line.startswith("❌") for line in report.output),
            'expansion': expansion,
            'output': report.output,
            'total_time': end_time - start_time
        }

    except Exception as e:
        return {
            'success': False,
            'error': str(e),
            'error_type': type(e).__name__
        }


def run_smoke_tests(engine):
    """Run all smoke tests and print results."""
    print("🧬 Macro Smoke Test Runner")
    print(f"Macro model: {engine.config.macro_model_path}")
    print(f"Threshold: {engine.config.macro_threshold}")
    print("=" * 80)

    all_success = True
    total_macros = 0
    total_time = 0

    groups = [
        ("Loop", [("", m) for m in LOOP_MACROS]),
        ("Logic", LOGIC_MACROS),
        ("Misc", [("", m) for m in MISC_MACROS]),
    ]
    for group_name, cases in groups:
        print(f"\n📊 {group_name} Macros ({len(cases)} total)")
        print("-" * 40)

        for i, (setup, instruction) in enumerate(cases, 1):
            result = run_macro_safely(engine, instruction, setup)
            total_macros += 1

            if result['success']:
                total_time += result['total_time']
                expansion = result['expansion']
                source = "keyword fallback" if expansion.used_fallback else f"classifier {expansion.score:.2f}"

                print(f"\n{i}. ✅ {instruction}")
                print(f"   Intent: {expansion.intent.value} ({source})")
                print(f"   DSL: {truncate(expansion.dsl)}")
                print(f"   Output: {result['output']}")
                for note in expansion.degradations:
                    print(f"   ⚠️  {note}")
                print(f"   Time: {result['total_time']*1000:.2f}ms")

            else:
                all_success = False
                print(f"\n{i}. ❌ {instruction}")
                if 'error' in result:
                    print(f"   Error: {result['error_type']}: {result['error']}")
                else:
                    print(f"   Output: {result['output']}")

    # Scripts that must produce a diagnostic
    print(f"\n🚫 Error Cases ({len(ERROR_CASES)} total)")
    print("-" * 40)

    for i, source in enumerate(ERROR_CASES, 1):
        report = engine.run(source)
        diagnostics = [line for line in report.output if line.startswith("❌")]

        if not diagnostics:
            all_success = False
            print(f"\n{i}. ❌ {truncate(source)}")
            print(f"   UNEXPECTED SUCCESS - should have reported an error!")
        else:
            print(f"\n{i}. ✅ {truncate(source)}")
            print(f"   Expected error: {diagnostics[0]}")

    # Summary
    print("\n" + "=" * 80)
    print("📈 Summary")
    print(f"  Total macros: {total_macros}")
    print(f"  Total time: {total_time*1000:.2f}ms")
    print(f"  Average time: {total_time*1000/total_macros:.2f}ms")
    print(f"  Error cases handled: {len(ERROR_CASES)}")

    if all_success:
        print("🎉 All tests passed!")
    else:
        print("⚠️  Some tests failed - check output above")

    return all_success


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Run macro smoke tests")
    parser.add_argument("--model", default="models/intent_macro/model.json",
                       help="Macro intent model path, or 'heuristic' for keyword fallback only")
    parser.add_argument("--threshold", type=float, default=None,
                       help="Intent confidence threshold (default: NC_INTENT_THRESHOLD or 0.35)")

    args = parser.parse_args()

    config = EngineConfig.from_env()
    if args.threshold is not None:
        config.macro_threshold = args.threshold
    if args.model == "heuristic":
        config.macro_model_path = ""
    elif not Path(args.model).exists():
        print(f"❌ Model not found: {args.model}")
        print("Run with --model heuristic to use the keyword fallback only")
        sys.exit(1)
    else:
        config.macro_model_path = args.model

    success = run_smoke_tests(Engine(config))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
