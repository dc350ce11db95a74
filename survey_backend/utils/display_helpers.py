"""
Display Helpers - Convert form state to human-readable format

Used by the outer surfaces (Flask API, console harness) to describe the
form and report submissions. No rendering - plain data and text only.
"""

import json
from typing import Dict, Any, List, Mapping

from survey_backend.contracts import (
    DEPENDENT_ANSWERS_KEY,
    FIELD_LABELS,
    FIELD_NAMES,
    FIELD_OPTIONS,
    TOPIC_FIELD,
    TOPIC_FIELDS,
    input_type,
)


# Conditional fields across all topics (hidden unless their topic is active)
_CONDITIONAL_FIELDS = {name for fields in TOPIC_FIELDS.values() for name in fields}


def format_field_name(field_name: str) -> str:
    """
    Convert field name to human-readable label.

    Args:
        field_name: Field name (e.g., 'fullName')

    Returns:
        Human-readable label (e.g., 'Full Name')
        Falls back to the raw field name if not in mapping
    """
    return FIELD_LABELS.get(field_name, field_name)


def visible_fields(values: Mapping[str, str]) -> List[str]:
    """
    Fields shown for the current values, in form order.

    Base fields are always visible; conditional fields only for the
    active topic.

    Args:
        values: FieldValues

    Returns:
        list[str]: Visible field names
    """
    active = set(TOPIC_FIELDS.get(values.get(TOPIC_FIELD) or '', ()))
    return [
        name for name in FIELD_NAMES
        if name not in _CONDITIONAL_FIELDS or name in active
    ]


def describe_form(values: Mapping[str, str]) -> List[Dict[str, Any]]:
    """
    Describe the visible fields for a UI.

    Returns:
        list of {'name', 'label', 'input', 'options', 'value'}
    """
    description = []
    for name in visible_fields(values):
        description.append({
            'name': name,
            'label': format_field_name(name),
            'input': input_type(name),
            'options': list(FIELD_OPTIONS.get(name, ())),
            'value': values.get(name, ''),
        })
    return description


def format_errors(errors: Mapping[str, str]) -> List[str]:
    """
    One 'Label: message' line per error, in form order.

    Keys that are not form fields (none today) are appended after.
    """
    ordered = [name for name in FIELD_NAMES if name in errors]
    ordered += [name for name in errors if name not in FIELD_NAMES]
    return [f"{format_field_name(name)}: {errors[name]}" for name in ordered]


def format_submission_message(payload: Mapping[str, Any]) -> str:
    """
    Build the success message shown after finalization.

    Args:
        payload: Finalized payload (values + dependentAnswers)

    Returns:
        str: "Form submitted successfully!" followed by the values and
        the additional-question answers as pretty-printed JSON
    """
    values = {k: v for k, v in payload.items() if k != DEPENDENT_ANSWERS_KEY}
    answers = payload.get(DEPENDENT_ANSWERS_KEY, {})
    answers_json = {str(k): v for k, v in answers.items()}

    return (
        "Form submitted successfully!\n"
        f"{json.dumps(values, indent=2)}\n"
        "Additional Questions:\n"
        f"{json.dumps(answers_json, indent=2)}"
    )
