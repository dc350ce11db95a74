"""
Semantic contracts for the survey form engine.

This module defines the data structures and the static form catalog shared
between modules. These are NOT validators - they define shape and semantics
without enforcing rules.

Design principles:
- Frozen dataclasses (immutable after creation)
- No validation logic (contracts, not validators)
- No dependencies on other modules
- Definition layer only (no enforcement)

Contents:
- FIELD_NAMES / TOPIC_FIELD: the fixed field set of the survey form
- QuestionDescriptor: one dependent question returned by a provider
- SubmissionState: Idle / Pending submit lifecycle
- FormSnapshot: immutable read view of the store
- Form catalog: labels, topic options, select-field choices

Usage:
    from survey_backend.contracts import FIELD_NAMES, QuestionDescriptor
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple, Optional


# Topic selector - drives conditional rules and dependent questions
TOPIC_FIELD = 'surveyTopic'

# Fixed key set, in form order. FieldValues always carries every key.
FIELD_NAMES: Tuple[str, ...] = (
    'fullName',
    'email',
    'surveyTopic',
    'favoriteProgrammingLanguage',
    'yearsOfExperience',
    'exerciseFrequency',
    'dietPreference',
    'highestQualification',
    'fieldOfStudy',
    'feedback',
)

# Key under which dependent answers travel in the finalized payload
DEPENDENT_ANSWERS_KEY = 'dependentAnswers'


def initial_values() -> Dict[str, str]:
    """
    Build the all-empty FieldValues assignment used at form mount.

    Returns:
        dict: Every field name mapped to '' (unset)
    """
    return {name: '' for name in FIELD_NAMES}


@dataclass(frozen=True)
class QuestionDescriptor:
    """
    Immutable follow-up question returned by a DependentQuestionsProvider.

    Position in the provider's returned sequence is the answer index,
    so descriptors carry no id of their own.

    Attributes:
        text: Question text shown to the respondent.
            Example: "What is your favorite tech stack?"
    """
    text: str

    def to_json(self) -> dict:
        return {'text': self.text}


class SubmissionState(str, Enum):
    """Submit lifecycle. PENDING returns to IDLE exactly once per gesture."""
    IDLE = 'idle'
    PENDING = 'pending'


@dataclass(frozen=True)
class FormSnapshot:
    """
    Immutable read view of the form state at one instant.

    Returned by FormStateStore.snapshot(). Containers are copies, so
    holding a snapshot never observes later store mutations.

    Attributes:
        values: FieldValues (all keys present)
        answers: Dependent answers keyed by 0-based question index
        errors: ErrorMap from the last validation pass
        questions: Current dependent question list
        submission_state: IDLE or PENDING
        advisory: Non-blocking provider notice, None when absent
        is_fetching: True while a dependent fetch is outstanding
    """
    values: Dict[str, str]
    answers: Dict[int, str]
    errors: Dict[str, str]
    questions: Tuple[QuestionDescriptor, ...] = ()
    submission_state: SubmissionState = SubmissionState.IDLE
    advisory: Optional[str] = None
    is_fetching: bool = False

    def to_json(self) -> dict:
        """
        Serialize to JSON-safe dict.

        Answer indices become strings (JSON object keys).
        """
        return {
            'values': dict(self.values),
            'answers': {str(k): v for k, v in sorted(self.answers.items())},
            'errors': dict(self.errors),
            'questions': [q.to_json() for q in self.questions],
            'submission_state': self.submission_state.value,
            'advisory': self.advisory,
            'is_fetching': self.is_fetching,
        }


# ========================
# Form catalog
# ========================

FIELD_LABELS: Dict[str, str] = {
    'fullName': 'Full Name',
    'email': 'Email',
    'surveyTopic': 'Survey Topic',
    'favoriteProgrammingLanguage': 'Favorite Programming Language',
    'yearsOfExperience': 'Years of Experience',
    'exerciseFrequency': 'Exercise Frequency',
    'dietPreference': 'Diet Preference',
    'highestQualification': 'Highest Qualification',
    'fieldOfStudy': 'Field of Study',
    'feedback': 'Feedback',
}

TOPIC_OPTIONS: Tuple[str, ...] = ('Technology', 'Health', 'Education')

# Conditional fields shown (and validated) only for their topic
TOPIC_FIELDS: Dict[str, Tuple[str, ...]] = {
    'Technology': ('favoriteProgrammingLanguage', 'yearsOfExperience'),
    'Health': ('exerciseFrequency', 'dietPreference'),
    'Education': ('highestQualification', 'fieldOfStudy'),
}

# Choices for select inputs. Descriptive only - not enforced by the validator.
FIELD_OPTIONS: Dict[str, Tuple[str, ...]] = {
    'surveyTopic': TOPIC_OPTIONS,
    'favoriteProgrammingLanguage': ('JavaScript', 'Python', 'Java', 'C#'),
    'exerciseFrequency': ('Daily', 'Weekly', 'Monthly', 'Rarely'),
    'dietPreference': ('Vegetarian', 'Vegan', 'Non-Vegetarian'),
    'highestQualification': ('High School', "Bachelor's", "Master's", 'PhD'),
}

FIELD_INPUT_TYPES: Dict[str, str] = {
    'fullName': 'text',
    'email': 'email',
    'yearsOfExperience': 'number',
    'fieldOfStudy': 'text',
    'feedback': 'textarea',
}


def input_type(field_name: str) -> str:
    """Return the input widget kind for a field ('select' when it has options)."""
    if field_name in FIELD_OPTIONS:
        return 'select'
    return FIELD_INPUT_TYPES.get(field_name, 'text')
