"""
Submission Controller - Submit gesture coordination

Responsibilities:
- Run the validator over current field values
- Store the resulting error map on the form store (wholesale)
- Finalize a clean form: build payload, hand it to the submission sink
- Return the store to Idle exactly once per submit gesture

State machine:
    IDLE --submit--> PENDING (errors = validate(values))
    PENDING --errors empty--> finalize, emit payload --> IDLE
    PENDING --errors present--> IDLE (errors persist until next submit)

Design principles:
- Edge-triggered finalization: one submit gesture, at most one finalization
- Validation errors are results, never exceptions
- Dependent answers are not validated
- Provider failures (advisory) never block finalization
"""

import logging
import uuid
from typing import Any, Callable, Dict, Union

from survey_backend.contracts import DEPENDENT_ANSWERS_KEY, SubmissionState
from survey_backend.results import IllegalCommand, SubmissionResult

logger = logging.getLogger(__name__)


# sink(submission_id, payload) -> receipt
SubmissionSink = Callable[[str, Dict[str, Any]], Any]


def new_submission_id() -> str:
    """Short random id, unique per finalized payload"""
    return uuid.uuid4().hex[:8]


class SubmissionController:
    """Gates submission on validity and finalizes clean forms"""

    def __init__(self, store, validator, sink: SubmissionSink):
        """
        Initialize controller with module references.

        Args:
            store: FormStateStore owning the form state
            validator: SurveyValidator (stateless, safe to share)
            sink: Callable receiving (submission_id, payload)

        Raises:
            TypeError: If any collaborator has the wrong interface
        """
        self._validate_modules(store, validator, sink)

        self.store = store
        self.validator = validator
        self.sink = sink
        self.finalized_count = 0

        logger.info("Submission controller initialized")

    def _validate_modules(self, store, validator, sink):
        """Validate collaborator interfaces"""
        for method in ('begin_submission', 'record_errors', 'complete_submission', 'build_payload'):
            if not callable(getattr(store, method, None)):
                raise TypeError(f"store must have callable {method}() method")

        if not callable(getattr(validator, 'validate', None)):
            raise TypeError("validator must have callable validate() method")

        if not callable(sink):
            raise TypeError("sink must be callable")

    def submit(self) -> Union[SubmissionResult, IllegalCommand]:
        """
        Handle one submit gesture.

        Returns:
            SubmissionResult: accepted=True with payload when the form is
                clean, accepted=False with errors otherwise
            IllegalCommand: If a submission is already pending

        Raises:
            Exception: Whatever the sink raises. The store is back to Idle
                before the exception propagates, so the form stays editable.
        """
        if self.store.submission_state is SubmissionState.PENDING:
            logger.warning("Submit rejected: submission already pending")
            return IllegalCommand(
                reason="A submission is already pending",
                command_type="SubmitForm",
            )

        self.store.begin_submission()

        errors = self.validator.validate(self.store.values)
        self.store.record_errors(errors)

        if errors:
            self.store.complete_submission()
            logger.info(f"Submission rejected with {len(errors)} validation errors: {sorted(errors)}")
            return SubmissionResult(
                accepted=False,
                errors=dict(errors),
                advisory=self.store.advisory,
            )

        return self._finalize()

    def _finalize(self) -> SubmissionResult:
        """Emit the payload once and leave Pending."""
        payload = self.store.build_payload()
        submission_id = new_submission_id()
        advisory = self.store.advisory

        try:
            receipt = self.sink(submission_id, payload)
        finally:
            self.store.complete_submission()

        self.finalized_count += 1
        logger.info(f"Submission {submission_id} finalized "
                    f"({len(payload[DEPENDENT_ANSWERS_KEY])} dependent answers)")

        return SubmissionResult(
            accepted=True,
            errors={},
            payload=payload,
            submission_id=submission_id,
            receipt=receipt,
            advisory=advisory,
        )
