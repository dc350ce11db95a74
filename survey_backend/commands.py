"""
Command types for FormSession control flow.

Commands are the public interface the outer surfaces (Flask API, console
harness) use to drive a form session. Reads go through snapshots.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SetField:
    """
    Overwrite one form field.

    Setting the topic field to a new value triggers the dependent fetch.
    Returns: FieldUpdated
    """
    name: str
    value: str


@dataclass(frozen=True)
class SetAnswer:
    """
    Answer dependent question `index` (0-based position in the question list).

    Returns: FieldUpdated
    """
    index: int
    value: str


@dataclass(frozen=True)
class SubmitForm:
    """
    Submit gesture: validate and, when clean, finalize.

    Returns: SubmissionResult, or IllegalCommand if a submission is
    already pending.
    """
    pass


# Command union type for type hints
Command = SetField | SetAnswer | SubmitForm
