"""
Survey Validator - Rule-set driven validation of survey field values

Responsibilities:
- Evaluate always-required rules against the field values
- Evaluate the conditional rule set registered for the active topic
- Produce an ErrorMap (field name -> human-readable message)

Design principles:
- Stateless: All state comes from the values parameter
- Deterministic: Same input always produces same output
- Pure functions: No side effects, never raises on field values
- Fail fast: Validate ruleset on initialization

Ruleset structure (data/survey_ruleset.json):
{
    "topic_field": "surveyTopic",
    "required_fields": [rule, ...],            # always evaluated
    "topic_rules": {"Technology": [rule, ...]}  # evaluated for the active topic only
}

Rule structure:
    {"field": "email", "check": "email", "message": "Email address is invalid"}
    {"field": "feedback", "check": "min_length", "min_length": 50, "message": "..."}

Only the first failing rule per field is reported, so rule order within the
ruleset matters (e.g. 'required' before 'email').
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from survey_backend.contracts import FIELD_NAMES, TOPIC_FIELD

logger = logging.getLogger(__name__)


# local@domain.tld shape: non-whitespace, @, non-whitespace, '.', non-whitespace
EMAIL_PATTERN = re.compile(r'\S+@\S+\.\S+')


class SurveyValidator:
    """
    Stateless rule-set validator for the survey form.

    Holds only the loaded ruleset; validate() depends on nothing but its
    argument.
    """

    REQUIRED_RULE_KEYS = {"field", "check", "message"}

    def __init__(self, ruleset_path: str):
        """
        Initialize validator with ruleset.

        Args:
            ruleset_path: Path to survey_ruleset.json

        Raises:
            FileNotFoundError: If ruleset doesn't exist
            ValueError: If ruleset missing required keys or has invalid rules
        """
        self.ruleset_path = Path(ruleset_path)

        if not self.ruleset_path.exists():
            raise FileNotFoundError(f"Ruleset not found: {ruleset_path}")

        with open(self.ruleset_path, 'r') as f:
            self.ruleset = json.load(f)

        self.topic_field = self.ruleset.get("topic_field", TOPIC_FIELD)
        self.required_rules: List[dict] = self.ruleset.get("required_fields")
        self.topic_rules: Dict[str, List[dict]] = self.ruleset.get("topic_rules", {})

        self._checks = {
            "required": self._check_required,
            "email": self._check_email,
            "positive_number": self._check_positive_number,
            "min_length": self._check_min_length,
        }

        self._validate_ruleset()

        logger.info(
            f"Survey Validator initialized with {len(self.required_rules)} base rules "
            f"and {len(self.topic_rules)} topic rule sets"
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def validate(self, values: Mapping[str, str]) -> Dict[str, str]:
        """
        Validate field values.

        Args:
            values: FieldValues mapping. Missing keys are treated as ''.

        Returns:
            ErrorMap: {field_name: message}. Empty dict means valid.
        """
        errors: Dict[str, str] = {}

        self._apply_rules(self.required_rules, values, errors)

        topic = values.get(self.topic_field) or ''
        self._apply_rules(self.topic_rules.get(topic, []), values, errors)

        return errors

    def rules_for_topic(self, topic: Optional[str]) -> List[dict]:
        """Return every rule evaluated when `topic` is active (base rules first)."""
        return list(self.required_rules) + list(self.topic_rules.get(topic or '', []))

    # =========================================================================
    # Rule Evaluation
    # =========================================================================

    def _apply_rules(self, rules: List[dict], values: Mapping[str, str],
                     errors: Dict[str, str]) -> None:
        for rule in rules:
            field = rule["field"]

            # First failing rule per field wins
            if field in errors:
                continue

            value = values.get(field) or ''
            if not self._checks[rule["check"]](value, rule):
                errors[field] = rule["message"]

    @staticmethod
    def _check_required(value: str, rule: dict) -> bool:
        return value != ''

    @staticmethod
    def _check_email(value: str, rule: dict) -> bool:
        # Format only matters once something was entered
        if value == '':
            return True
        return EMAIL_PATTERN.search(value) is not None

    @staticmethod
    def _check_positive_number(value: str, rule: dict) -> bool:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return False
        return number > 0

    @staticmethod
    def _check_min_length(value: str, rule: dict) -> bool:
        return len(value) >= rule["min_length"]

    # =========================================================================
    # Ruleset Validation
    # =========================================================================

    def _validate_ruleset(self) -> None:
        """
        Validate ruleset structure.

        Raises:
            ValueError: If ruleset is malformed
        """
        if not isinstance(self.required_rules, list):
            raise ValueError("Ruleset missing 'required_fields' list")

        if not isinstance(self.topic_rules, dict):
            raise ValueError("Ruleset 'topic_rules' must be an object")

        if self.topic_field not in FIELD_NAMES:
            raise ValueError(f"Unknown topic_field: {self.topic_field}")

        self._validate_rules(self.required_rules, "required_fields")

        for topic, rules in self.topic_rules.items():
            if not isinstance(rules, list):
                raise ValueError(f"Rules for topic '{topic}' must be a list")
            self._validate_rules(rules, f"topic_rules.{topic}")

    def _validate_rules(self, rules: List[dict], location: str) -> None:
        for i, rule in enumerate(rules):
            missing = self.REQUIRED_RULE_KEYS - set(rule)
            if missing:
                raise ValueError(f"{location}[{i}] missing required keys: {sorted(missing)}")

            if rule["field"] not in FIELD_NAMES:
                raise ValueError(f"{location}[{i}] references unknown field: {rule['field']}")

            if rule["check"] not in self._checks:
                raise ValueError(f"{location}[{i}] has unknown check: {rule['check']}")

            if rule["check"] == "min_length" and not isinstance(rule.get("min_length"), int):
                raise ValueError(f"{location}[{i}] min_length rule requires integer 'min_length'")
