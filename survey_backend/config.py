"""
Runtime configuration for the survey form engine.

Defaults point at the bundled data files. A JSON file may override any
key; unknown keys are rejected so typos fail at startup.

Usage:
    from survey_backend.config import load_config
    config = load_config()                      # defaults
    config = load_config("survey_config.json")  # overrides
"""

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"


@dataclass(frozen=True)
class SurveyConfig:
    """
    Engine settings.

    Attributes:
        ruleset_path: Validation rule-set registry (JSON)
        questions_path: Follow-up question catalog for the mock provider (JSON)
        fetch_latency_seconds: Simulated provider latency
        fetch_timeout_seconds: Optional upper bound on a dependent fetch (None = no timeout)
        cancel_superseded_fetches: Cancel in-flight fetches when the topic changes again
        output_dir: Directory for JSON submission files
    """
    ruleset_path: str = str(DATA_DIR / "survey_ruleset.json")
    questions_path: str = str(DATA_DIR / "follow_up_questions.json")
    fetch_latency_seconds: float = 1.0
    fetch_timeout_seconds: Optional[float] = None
    cancel_superseded_fetches: bool = True
    output_dir: str = str(PROJECT_ROOT / "outputs" / "submissions")


def load_config(config_path: Optional[str] = None) -> SurveyConfig:
    """
    Load engine configuration.

    Args:
        config_path: Optional JSON file whose keys override the defaults

    Returns:
        SurveyConfig

    Raises:
        FileNotFoundError: If config_path is given but doesn't exist
        ValueError: If the file contains unknown keys or is not a JSON object
    """
    config = SurveyConfig()

    if config_path is None:
        return config

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        overrides = json.load(f)

    if not isinstance(overrides, dict):
        raise ValueError(f"Config file must contain a JSON object: {config_path}")

    known = {f.name for f in fields(SurveyConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    config = replace(config, **overrides)
    logger.info(f"Loaded config overrides from {config_path}: {sorted(overrides)}")
    return config
