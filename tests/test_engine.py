#!/usr/bin/env python3
"""
Tests for the run loop, legacy normalization, configuration and sinks.
"""

import json
import pytest
import sys
from pathlib import Path

# Add parent directory for imports
sys.path.append(str(Path(__file__).parent.parent))

from neurochain.classifier.base import ClassifierResult
from neurochain.macro.intents import DEFAULT_THRESHOLD, Intent
from neurochain.runtime.config import EngineConfig
from neurochain.runtime.engine import Engine, normalize_legacy, normalize_legacy_lines, preprocess
from neurochain.runtime.interpreter import RunState
from neurochain.runtime.sinks import BufferSink, FileSink, RawLog, TeeSink

REPO_ROOT = Path(__file__).parent.parent

CONFIG_VARS = [
    "NC_INTENT_THRESHOLD", "NC_MODELS_DIR", "NC_MACRO_MODEL", "NC_MACRO_MODEL_PATH",
    "NEUROCHAIN_OUTPUT_LOG", "NEUROCHAIN_RAW_LOG",
]


class StubClassifier:
    def __init__(self, label="Positive", score=0.9):
        self.label = label
        self.score = score

    def classify(self, model_path, text):
        return ClassifierResult(self.label, self.score)


@pytest.fixture
def clean_env(monkeypatch):
    """Unset NeuroChain variables; values loaded from .env files are undone afterwards."""
    for name in CONFIG_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture
def offline_engine(tmp_path):
    """Engine whose macro model does not exist, so macros use the keyword fallback."""
    config = EngineConfig(macro_model_path=str(tmp_path / "missing.json"), log_dir=tmp_path / "logs")
    return Engine(config)


class TestPreprocess:
    """BOM and line-ending normalization."""

    def test_bom_and_line_endings(self):
        assert preprocess("\ufeffneuro 1\r\nneuro 2\rneuro 3") == "neuro 1\nneuro 2\nneuro 3"

    def test_plain_text_unchanged(self):
        assert preprocess('neuro "a"\n') == 'neuro "a"\n'


class TestLegacyNormalization:
    """Older one-line spellings expand into block form."""

    def test_normalize_table(self):
        test_cases = [
            ('say "hi"', 'neuro "hi"'),
            ("print x", "neuro x"),
            ("printer = 1", "printer = 1"),
            ('if x == 1: neuro "a"', 'if x == 1:\n    neuro "a"'),
            ('elif x == 2: say "b"', 'elif x == 2:\n    neuro "b"'),
            ('else: print "c"', 'else:\n    neuro "c"'),
            ('    if y: neuro y', '    if y:\n        neuro y'),
            ('if x == "a:b": neuro x', 'if x == "a:b":\n    neuro x'),
            ("if x:", "if x:"),
            ("if x: # only a comment", "if x: # only a comment"),
            ('neuro "key: value"', 'neuro "key: value"'),
        ]
        for source, expected in test_cases:
            assert normalize_legacy(source) == expected, f"{source!r} -> {normalize_legacy(source)!r}"

    def test_line_map(self):
        test_cases = [
            ("neuro 1\nneuro 2", [1, 2]),
            ("if x: neuro 1\nneuro 2", [1, 1, 2]),
            ('neuro 0\nif x: say "a"\nelse: say "b"', [1, 2, 2, 3, 3]),
            ("if x:\n    neuro 1", [1, 2]),
        ]
        for source, expected in test_cases:
            text, line_map = normalize_legacy_lines(source)
            assert text == normalize_legacy(source)
            assert line_map == expected, f"{source!r} -> {line_map}"
            assert len(line_map) == len(text.split("\n"))


class TestDiagnosticLines:
    """Diagnostics name the line as written, before one-line branches are expanded."""

    def test_eval_error_after_inline_branch(self, offline_engine):
        report = offline_engine.run('if 1 == 1: neuro "a"\nneuro 5 / 0')
        assert report.output == ["a", "❌ EvalError on line 2: division by zero"]

    def test_parse_error_after_inline_branch(self, offline_engine):
        report = offline_engine.run('if 1 == 1: neuro "a"\nneuro (')
        assert report.state is RunState.HALTED_ON_ERROR
        assert report.output[0].startswith("❌ ParseError on line 2:"), report.output

    def test_error_inside_inline_branch(self, offline_engine):
        report = offline_engine.run('neuro "x"\nif 1 == 1: neuro 1 / 0\nneuro 2 % 0')
        assert report.output == [
            "x",
            "❌ EvalError on line 2: division by zero",
            "❌ EvalError on line 3: modulo by zero",
        ]

    def test_windows_line_endings(self, offline_engine):
        report = offline_engine.run('set n = 1\r\nif n == 1: say "a"\r\nelse: say "b"\r\nneuro 1 / 0\r\n')
        assert report.output == ["a", "❌ EvalError on line 4: division by zero"]


class TestRunsSurviveBadInput:
    """Odd numbers and broken model files produce output or a diagnostic, never a crash."""

    def test_infinite_number(self, offline_engine):
        report = offline_engine.run('set a = "1e309"\nneuro a % 2\nneuro a\nneuro "after"')
        assert report.output == ["NaN", "1e309", "after"]
        assert report.ok

    @pytest.mark.parametrize("model", [
        {"labels": ["A"], "weights": [1]},
        {"labels": "A"},
        {"labels": ["A", "B"], "weights": {"x": [None, 1]}},
    ])
    def test_malformed_model_file(self, tmp_path, model):
        path = tmp_path / "model.json"
        path.write_text(json.dumps(model), encoding="utf-8")
        engine = Engine(EngineConfig(macro_model_path=str(tmp_path / "missing.json"), log_dir=tmp_path / "logs"))
        report = engine.run(f'AI: "{path.as_posix()}"\nset m from AI: x\nneuro "after"')
        assert report.output[0].startswith("❌ ClassifierError on line 2:"), report.output
        assert report.output[1:] == ["after"]
        assert report.variables["m"] is None


class TestEngineRun:
    """Engine.run end to end."""

    def test_inline_branch_scenario(self, offline_engine):
        report = offline_engine.run('set mood = "Positive"\nif mood == "positive": neuro "Great"')
        assert report.output == ["Great"]
        assert report.ok and report.state is RunState.FINISHED

    def test_windows_script(self, offline_engine):
        report = offline_engine.run('\ufeffset a = "5"\r\nset b = "3"\r\nneuro a + b\r\n')
        assert report.text == "8"

    def test_report_fields(self, offline_engine):
        report = offline_engine.run("set x = 2\nmacro from AI: Show Ping 2 times")
        assert report.variables == {"x": 2.0}
        assert len(report.expansions) == 1
        assert report.expansions[0].intent is Intent.LOOP
        assert report.text == "Ping\nPing"

    def test_runs_are_isolated(self, offline_engine):
        offline_engine.run('set x = 1\nAI: "models/sst2/model.json"')
        report = offline_engine.run("neuro x")
        assert report.output == ["x"]

    def test_halted_run(self, offline_engine):
        report = offline_engine.run('neuro "a"\nset x 5')
        assert not report.ok
        assert report.state is RunState.HALTED_ON_ERROR
        assert report.output[0].startswith("❌ ParseError on line 2:")

    def test_external_sink_receives_lines(self, offline_engine):
        sink = BufferSink()
        report = offline_engine.run('neuro "a"\nneuro "b"', sink)
        assert sink.lines == ["a", "b"] == report.output

    def test_classifier_statements(self, tmp_path):
        engine = Engine(EngineConfig(macro_model_path=str(tmp_path / "none.json")), classifier=StubClassifier("Negative"))
        report = engine.run('AI: "whatever.json"\nset mood from AI: meh\nneuro mood')
        assert report.output == ["Negative"]

    def test_macro_classifier_failure_is_quiet(self, offline_engine):
        report = offline_engine.run("macro from AI: Tell me a joke")
        assert report.output == ["Tell me a joke"]
        assert report.expansions[0].degradations
        assert report.expansions[0].degradations[0].startswith("macro classifier failed")

    def test_generate(self, offline_engine):
        expansion = offline_engine.generate("Set x to 5")
        assert expansion.intent is Intent.SET_VAR
        assert expansion.dsl == "set x = 5"


class TestLogs:
    """Optional output mirror and raw macro trace."""

    def test_output_log(self, tmp_path):
        config = EngineConfig(macro_model_path=str(tmp_path / "none.json"), output_log=True, log_dir=tmp_path)
        Engine(config).run('neuro "Great"')
        assert (tmp_path / "run_latest.log").read_text(encoding="utf-8") == "neuro: Great\n"

    def test_raw_log(self, tmp_path):
        config = EngineConfig(macro_model_path=str(tmp_path / "none.json"), raw_log=True, log_dir=tmp_path)
        Engine(config).run("macro from AI: Show Ping 2 times")
        text = (tmp_path / "macro_raw_latest.log").read_text(encoding="utf-8")
        assert ">>> INTENT" in text and ">>> FALLBACK\nLoop" in text and ">>> DSL" in text
        assert 'neuro "Ping"' in text

    def test_logs_disabled_by_default(self, tmp_path):
        config = EngineConfig(macro_model_path=str(tmp_path / "none.json"), log_dir=tmp_path / "logs")
        Engine(config).run("macro from AI: Show Ping 2 times")
        assert not (tmp_path / "logs").exists()


class TestSinks:
    """Sink behaviour."""

    def test_buffer_take_output(self):
        sink = BufferSink()
        sink.emit("a")
        sink.emit("b")
        assert sink.take_output() == "a\nb"
        assert sink.lines == []

    def test_tee_skips_none(self, tmp_path):
        buffer = BufferSink()
        tee = TeeSink(buffer, None, FileSink(tmp_path / "sub" / "out.log"))
        tee.emit("x")
        assert buffer.lines == ["x"]
        assert (tmp_path / "sub" / "out.log").read_text(encoding="utf-8") == "neuro: x\n"

    def test_raw_log_record_format(self, tmp_path):
        log = RawLog(tmp_path / "raw.log")
        log.write("DSL", 'neuro "a"')
        assert (tmp_path / "raw.log").read_text(encoding="utf-8") == '>>> DSL\nneuro "a"\n----\n'


class TestConfig:
    """EngineConfig defaults and environment loading."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.macro_threshold == DEFAULT_THRESHOLD == 0.35
        assert config.max_macro_depth == 1
        assert Path(config.macro_model_path) == Path("models") / "intent_macro" / "model.json"
        assert not config.output_log and not config.raw_log

    def test_from_env(self, clean_env, tmp_path):
        clean_env.setenv("NC_INTENT_THRESHOLD", "0.5")
        clean_env.setenv("NC_MODELS_DIR", str(tmp_path))
        clean_env.setenv("NEUROCHAIN_OUTPUT_LOG", "yes")
        config = EngineConfig.from_env(tmp_path / "absent.env")
        assert config.macro_threshold == 0.5
        assert Path(config.macro_model_path) == tmp_path / "intent_macro" / "model.json"
        assert config.output_log and not config.raw_log

    def test_explicit_macro_model(self, clean_env, tmp_path):
        clean_env.setenv("NC_MACRO_MODEL_PATH", "b.json")
        assert EngineConfig.from_env(tmp_path / "absent.env").macro_model_path == "b.json"
        clean_env.setenv("NC_MACRO_MODEL", "a.json")
        assert EngineConfig.from_env(tmp_path / "absent.env").macro_model_path == "a.json"

    def test_bad_threshold_uses_default(self, clean_env, tmp_path, capsys):
        clean_env.setenv("NC_INTENT_THRESHOLD", "high")
        config = EngineConfig.from_env(tmp_path / "absent.env")
        assert config.macro_threshold == DEFAULT_THRESHOLD
        assert "NC_INTENT_THRESHOLD" in capsys.readouterr().out

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("NC_INTENT_THRESHOLD=0.6\nNEUROCHAIN_RAW_LOG=1\n", encoding="utf-8")
        config = EngineConfig.from_env(env_file)
        assert config.macro_threshold == 0.6
        assert config.raw_log


class TestExampleScripts:
    """Scripts under examples/ run with the sample models."""

    @pytest.fixture
    def repo_cwd(self, monkeypatch):
        if not (REPO_ROOT / "models").exists():
            pytest.skip("sample models not found")
        monkeypatch.chdir(REPO_ROOT)

    def test_hello(self, repo_cwd):
        report = Engine().run_file("examples/hello.nc")
        assert report.output == ["Hello from NeuroChain", "8", "DataOps", "Good"]

    def test_sentiment(self, repo_cwd):
        report = Engine().run_file("examples/sentiment.nc")
        assert report.output == ["Positive", "Great"]

    def test_macros(self, repo_cwd):
        report = Engine().run_file("examples/macro_test.nc")
        assert report.ok
        assert report.output == (
            ["Ping"] * 3 + ["hello"] * 12
            + ["Good", "7", "Hello Ada", "42", "moderator", "Tell me a joke"]
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
