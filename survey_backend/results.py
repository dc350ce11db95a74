"""
Result types returned by FormSession.handle() and SubmissionController.submit()

These are the ONLY return types from the command handler.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from survey_backend.contracts import FormSnapshot


@dataclass(frozen=True)
class FieldUpdated:
    """
    Field or answer edit applied.

    Returned by: SetField, SetAnswer

    Attributes:
        snapshot: Form state right after the edit
        fetch_started: Whether the edit issued a dependent fetch
    """
    snapshot: FormSnapshot
    fetch_started: bool = False


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of one submit gesture.

    Returned by: SubmitForm

    Attributes:
        accepted: True when validation was clean and the payload was finalized
        errors: ErrorMap from this validation pass (empty when accepted)
        payload: Finalized payload (values + dependentAnswers), None if rejected
        submission_id: Identifier assigned at finalization, None if rejected
        receipt: Whatever the submission sink returned (e.g. file path)
        advisory: Non-blocking provider notice present at submit time
    """
    accepted: bool
    errors: Dict[str, str] = field(default_factory=dict)
    payload: Optional[Dict[str, Any]] = None
    submission_id: Optional[str] = None
    receipt: Optional[Any] = None
    advisory: Optional[str] = None


@dataclass(frozen=True)
class IllegalCommand:
    """
    Command rejected (invalid lifecycle transition or malformed input).

    Examples:
    - SubmitForm while a submission is already pending
    - SetField with an unknown field name

    Attributes:
        reason: Human-readable explanation
        command_type: Name of rejected command type
    """
    reason: str
    command_type: str
