"""
Engine configuration.

Hosts build an EngineConfig (directly or via `from_env`) and hand it to the
engine; the core never reads the environment itself.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..macro.intents import DEFAULT_THRESHOLD

TRUTHY = {"1", "true", "yes", "on"}


def env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in TRUTHY


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        print(f"⚠️  {name}={raw!r} is not a number, using {default}")
        return default


def default_macro_model_path(models_dir: str = "models") -> str:
    return str(Path(models_dir) / "intent_macro" / "model.json")


@dataclass
class EngineConfig:
    macro_threshold: float = DEFAULT_THRESHOLD
    models_dir: str = "models"
    macro_model_path: Optional[str] = None
    max_macro_depth: int = 1
    output_log: bool = False
    raw_log: bool = False
    log_dir: Path = field(default_factory=lambda: Path("logs"))

    def __post_init__(self):
        if self.macro_model_path is None:
            self.macro_model_path = default_macro_model_path(self.models_dir)

    @property
    def output_log_path(self) -> Path:
        return Path(self.log_dir) / "run_latest.log"

    @property
    def raw_log_path(self) -> Path:
        return Path(self.log_dir) / "macro_raw_latest.log"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "EngineConfig":
        """Load `.env` from the working directory, then read NC_* / NEUROCHAIN_* variables."""
        load_dotenv(env_file or Path.cwd() / ".env")
        models_dir = os.getenv("NC_MODELS_DIR") or "models"
        macro_model = os.getenv("NC_MACRO_MODEL") or os.getenv("NC_MACRO_MODEL_PATH")
        return cls(
            macro_threshold=env_float("NC_INTENT_THRESHOLD", DEFAULT_THRESHOLD),
            models_dir=models_dir,
            macro_model_path=macro_model or default_macro_model_path(models_dir),
            output_log=env_flag("NEUROCHAIN_OUTPUT_LOG"),
            raw_log=env_flag("NEUROCHAIN_RAW_LOG"),
        )
