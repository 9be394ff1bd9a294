#!/usr/bin/env python3
"""
Tests for macro intent resolution and entity extraction.
"""

import pytest
import sys
from pathlib import Path

# Add parent directory for imports
sys.path.append(str(Path(__file__).parent.parent))

from neurochain.macro.extract import (
    find_target, loop_count, loop_message, normalize_condition, normalize_expr,
    parse_var_expr, strip_wrapping_quotes,
)
from neurochain.macro.intents import Intent, infer_intent, refine_intent, resolve_intent


# Instruction -> intent with no classifier help
GOLDEN_INTENTS = [
    ("Show Ping 2 times", Intent.LOOP),
    ("Say Hello 3 times", Intent.LOOP),
    ("If score equals 10 say Congrats else say Nope", Intent.BRANCH),
    ("If battery < 20 print Low elif battery < 50 print Medium else print Full", Intent.BRANCH),
    ("Create variable total = 3 + 4 and print it", Intent.ARITH),
    ("Set remainder = 17 % 5 and print remainder", Intent.ARITH),
    ("Set x to 5", Intent.SET_VAR),
    ("Store 'hello' in greeting and echo it", Intent.SET_VAR),
    ("Print 'Hello ' + name", Intent.CONCAT),
    ("Print greeting + ' ' + target", Intent.CONCAT),
    ("Join title + ': ' + body", Intent.CONCAT),
    ("Say the number 42", Intent.DOC_PRINT),
    ("Print final score", Intent.DOC_PRINT),
    ("Add comment # init block and print Starting", Intent.DOC_PRINT),
    ("Set role moderator", Intent.ROLE_FLAG),
    ("Promote user to admin", Intent.ROLE_FLAG),
    ("Bridge assistant output to UI", Intent.AI_BRIDGE),
    ("Forward model output to client", Intent.AI_BRIDGE),
    ("Tell me a joke", Intent.UNKNOWN),
    ("How are you doing?", Intent.UNKNOWN),
]


class TestIntentLabels:
    """Classifier label strings map onto the closed Intent set."""

    def test_from_label(self):
        test_cases = [
            ("Loop", Intent.LOOP),
            ("loop", Intent.LOOP),
            ("ROLEFLAG", Intent.ROLE_FLAG),
            ("role_flag", Intent.ROLE_FLAG),
            ("AIBridge", Intent.AI_BRIDGE),
            ("Weather", None),
        ]
        for label, expected in test_cases:
            assert Intent.from_label(label) is expected, f"{label!r} -> {Intent.from_label(label)}"

    def test_nine_intents(self):
        assert len(list(Intent)) == 9


class TestKeywordFallback:
    """resolve_intent without a usable classifier result."""

    @pytest.mark.parametrize("text,expected", GOLDEN_INTENTS)
    def test_golden(self, text, expected):
        intent, used_fallback = resolve_intent(None, 0.0, text)
        assert intent is expected, f"{text!r} -> {intent}"
        assert used_fallback

    def test_fallback_is_total(self):
        for text in ["", "   ", "???", "a", "1234"]:
            assert isinstance(infer_intent(text), Intent)

    def test_loop_outranks_branch(self):
        assert infer_intent("Say yes 3 times if ready") is Intent.LOOP

    def test_role_outranks_set(self):
        assert infer_intent("Set the role to admin") is Intent.ROLE_FLAG


class TestThreshold:
    """Classifier labels are trusted only at or above the threshold."""

    def test_confident_label_used(self):
        intent, used_fallback = resolve_intent("Loop", 0.9, "Show Ping 2 times")
        assert intent is Intent.LOOP and not used_fallback

    def test_score_equal_to_threshold_used(self):
        intent, used_fallback = resolve_intent("Loop", 0.35, "Show Ping 2 times", threshold=0.35)
        assert intent is Intent.LOOP and not used_fallback

    def test_low_score_falls_back(self):
        intent, used_fallback = resolve_intent("Loop", 0.2, "Tell me a joke")
        assert intent is Intent.UNKNOWN and used_fallback

    def test_unknown_label_falls_back(self):
        intent, used_fallback = resolve_intent("Weather", 0.99, "Set x to 5")
        assert intent is Intent.SET_VAR and used_fallback


class TestRefinement:
    """Surface form corrects contradicting labels."""

    def test_refinement_table(self):
        test_cases = [
            (Intent.LOOP, "If x > 1 say a else say b", Intent.BRANCH),
            (Intent.LOOP, "Set x to 5", Intent.SET_VAR),
            (Intent.SET_VAR, "Set total = 2 + 3", Intent.ARITH),
            (Intent.ARITH, "Set name to Ada", Intent.SET_VAR),
            (Intent.UNKNOWN, "Concatenate 'a' and 'b'", Intent.CONCAT),
            (Intent.SET_VAR, "Write a comment that says hi", Intent.DOC_PRINT),
            (Intent.ARITH, "Print the value of total", Intent.DOC_PRINT),
            (Intent.DOC_PRINT, "Print 'Total: ' + total", Intent.CONCAT),
            (Intent.UNKNOWN, "Show status when flag is true", Intent.BRANCH),
            (Intent.ROLE_FLAG, "Set role = admin", Intent.ROLE_FLAG),
            (Intent.LOOP, "Show Ping 2 times", Intent.LOOP),
        ]
        for intent, text, expected in test_cases:
            refined = refine_intent(intent, text)
            assert refined is expected, f"{intent.value} / {text!r} -> {refined}"


class TestExtraction:
    """Entity extraction helpers."""

    def test_loop_count(self):
        test_cases = [
            ("Show Ping 2 times", 2),
            ("Say hi 1 time", 1),
            ("Repeat 'Go' three times", 3),
            ("Say hi twice", 2),
            ("Echo ok thrice", 3),
            ("Print x 5x", 5),
            ("Say hi 40 times", 40),
            ("Say hi", None),
        ]
        for text, expected in test_cases:
            assert loop_count(text) == expected, f"{text!r} -> {loop_count(text)}"

    def test_loop_message(self):
        test_cases = [
            ("Show Ping 2 times", "Ping"),
            ("Repeat 'Go team' three times", "Go team"),
            ("Run 3 times: say hello", "hello"),
            ("Please show the word Hi 2 times", "Hi"),
            ("Say hello 40 times", "hello"),
        ]
        for text, expected in test_cases:
            assert loop_message(text) == expected, f"{text!r} -> {loop_message(text)!r}"

    def test_normalize_condition(self):
        test_cases = [
            ("score >= 90", "score >= 90"),
            ("score is greater than 5", "score > 5"),
            ("x is at least 10", "x >= 10"),
            ("score equals 10", "score == 10"),
            ("mood is happy", 'mood == "happy"'),
            ("name = Ada", 'name == "Ada"'),
            ("flag is true", "flag == true"),
            ("status is not ready", 'status != "ready"'),
        ]
        for raw, expected in test_cases:
            assert normalize_condition(raw) == expected, f"{raw!r} -> {normalize_condition(raw)!r}"

    def test_normalize_expr(self):
        test_cases = [
            ("3 + 4", "3 + 4"),
            ("3 plus 4", "3 + 4"),
            ("6 times 7", "6 * 7"),
            ("5", "5"),
            ("'hello'", '"hello"'),
            ("hello world", '"hello world"'),
            ("true", "true"),
            ("side ** 2", "(side) * (side)"),
            ("2 ** 0", "1"),
        ]
        for raw, expected in test_cases:
            assert normalize_expr(raw) == expected, f"{raw!r} -> {normalize_expr(raw)!r}"

    def test_power_exponent_capped(self):
        assert normalize_expr("2 ** 20").count("(2)") == 8

    def test_parse_var_expr(self):
        test_cases = [
            ("Set x to 5", ("x", "5", False)),
            ("Create variable total = 3 + 4 and print it", ("total", "3 + 4", True)),
            ("Store 'hello' in greeting", ("greeting", "'hello'", False)),
            ("Set a = 1 and b = 2", ("a", "1", False)),
        ]
        for text, expected in test_cases:
            assert parse_var_expr(text) == expected, f"{text!r} -> {parse_var_expr(text)}"
        assert parse_var_expr("Tell me a joke") is None

    def test_find_target(self):
        assert find_target("Calculate 2 + 3 and store in total") == ("total", True)
        assert find_target("Compute 5 * 5") == ("result", False)

    def test_strip_wrapping_quotes(self):
        assert strip_wrapping_quotes('"Show Ping"') == "Show Ping"
        assert strip_wrapping_quotes("'\"nested\"'") == "nested"
        assert strip_wrapping_quotes("'Hello ' + name") == "'Hello ' + name"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
