"""
Form State Store - Single-writer container for survey form state

Responsibilities:
- Store field values, dependent answers, error map, question list
- Track the submit lifecycle (Idle / Pending)
- React to topic changes: clear answers, fetch dependent questions
- Apply only the latest topic's fetch result (last-request-wins)

Design principles:
- One explicit FormState owned by the store
- All mutations through named operations (no direct field access)
- No validation on edit (validation happens on submit only)
- Errors persist across edits until the next submit

Concurrency:
- The dependent fetch is the only asynchronous operation. It runs as a task
  on the event loop that owns the store; set_field/set_answer keep working
  while it is outstanding.
- Every fetch is tagged with a monotonically increasing request id and the
  topic it was issued for. On resolution the tag is compared against the
  current request id and topic; stale results are discarded.
- The store is not thread-safe. Callers on other threads must marshal every
  operation onto the owning loop (see survey_backend.session.FormSession).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from survey_backend.contracts import (
    DEPENDENT_ANSWERS_KEY,
    TOPIC_FIELD,
    FormSnapshot,
    QuestionDescriptor,
    SubmissionState,
    initial_values,
)

logger = logging.getLogger(__name__)


@dataclass
class FormState:
    """Mutable form state. Owned exclusively by FormStateStore."""
    values: Dict[str, str] = field(default_factory=initial_values)
    answers: Dict[int, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    questions: List[QuestionDescriptor] = field(default_factory=list)
    submission_state: SubmissionState = SubmissionState.IDLE
    advisory: Optional[str] = None


class FormStateStore:
    """Owns survey form state and sequences dependent-question fetches"""

    ADVISORY_TEMPLATE = "Follow-up questions for '{topic}' are unavailable right now."

    def __init__(self, provider, fetch_timeout_seconds: Optional[float] = None,
                 cancel_superseded_fetches: bool = True,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize empty form state.

        Args:
            provider: DependentQuestionsProvider (awaitable fetch(topic))
            fetch_timeout_seconds: Optional bound on each fetch; a timeout
                counts as a provider failure
            cancel_superseded_fetches: Cancel an in-flight fetch when a newer
                topic change supersedes it
            loop: Event loop that owns the store. Defaults to the running loop
                at the time a fetch is issued.

        Raises:
            TypeError: If provider has no callable fetch()
        """
        if not callable(getattr(provider, 'fetch', None)):
            raise TypeError("provider must have callable fetch() method")

        self.provider = provider
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.cancel_superseded_fetches = cancel_superseded_fetches
        self._loop = loop

        self._state = FormState()
        self._request_id = 0
        self._fetch_task: Optional[asyncio.Task] = None
        # Strong refs so superseded-but-uncancelled fetches aren't collected mid-flight
        self._inflight: Set[asyncio.Task] = set()

        logger.info("Form state store initialized")

    # ========================
    # Read access (copies only)
    # ========================

    @property
    def values(self) -> Dict[str, str]:
        return dict(self._state.values)

    @property
    def answers(self) -> Dict[int, str]:
        return dict(self._state.answers)

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self._state.errors)

    @property
    def questions(self) -> List[QuestionDescriptor]:
        return list(self._state.questions)

    @property
    def submission_state(self) -> SubmissionState:
        return self._state.submission_state

    @property
    def advisory(self) -> Optional[str]:
        return self._state.advisory

    @property
    def is_fetching(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    def snapshot(self) -> FormSnapshot:
        """Return an immutable copy of the current form state."""
        return FormSnapshot(
            values=self.values,
            answers=self.answers,
            errors=self.errors,
            questions=tuple(self._state.questions),
            submission_state=self._state.submission_state,
            advisory=self._state.advisory,
            is_fetching=self.is_fetching,
        )

    def build_payload(self) -> dict:
        """
        Build the finalized submission payload.

        Returns:
            dict: All field values plus dependentAnswers (index -> answer)
        """
        payload = self.values
        payload[DEPENDENT_ANSWERS_KEY] = dict(sorted(self._state.answers.items()))
        return payload

    # ========================
    # Field mutations
    # ========================

    def set_field(self, name: str, value: str) -> None:
        """
        Overwrite one field value.

        No validation is performed. A changed topic value clears dependent
        answers and questions immediately and starts the dependent fetch.

        Args:
            name: Field name (one of FIELD_NAMES)
            value: New value ('' = unset)

        Raises:
            KeyError: If name is not a form field
            RuntimeError: If a new topic needs a fetch but the store has no
                event loop and none is running
        """
        if name not in self._state.values:
            raise KeyError(f"Unknown form field: {name}")

        previous = self._state.values[name]
        topic_changed = name == TOPIC_FIELD and value != previous

        # Resolve the loop before touching state so a failure leaves it intact
        loop = self._event_loop() if topic_changed and value else None

        self._state.values[name] = value

        if topic_changed:
            self._on_topic_changed(value, loop)

    def set_answer(self, index: int, value: str) -> None:
        """
        Overwrite the answer to dependent question `index` (0-based).

        Args:
            index: Question position in the current question list
            value: Answer text
        """
        self._state.answers[index] = value

    # ========================
    # Submission lifecycle
    # ========================

    def begin_submission(self) -> None:
        self._state.submission_state = SubmissionState.PENDING

    def record_errors(self, errors: Dict[str, str]) -> None:
        """Replace the error map wholesale (never patched incrementally)."""
        self._state.errors = dict(errors)

    def complete_submission(self) -> None:
        self._state.submission_state = SubmissionState.IDLE

    # ========================
    # Dependent-fetch protocol
    # ========================

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError(
                "FormStateStore needs an event loop to fetch dependent questions: "
                "pass loop= or change the topic from a running loop"
            ) from None

    def _on_topic_changed(self, topic: str, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """Clear topic-bound state and issue (or skip) the dependent fetch."""
        self._state.answers = {}
        self._state.questions = []
        self._state.advisory = None

        # Every topic change supersedes whatever is in flight
        self._request_id += 1
        request_id = self._request_id

        if self.cancel_superseded_fetches and self.is_fetching:
            self._fetch_task.cancel()

        if not topic:
            self._fetch_task = None
            logger.info("Survey topic cleared, dependent questions reset")
            return

        self._fetch_task = loop.create_task(self._fetch_questions(topic, request_id))
        self._inflight.add(self._fetch_task)
        self._fetch_task.add_done_callback(self._inflight.discard)
        logger.info(f"Fetching dependent questions for topic '{topic}' (request {request_id})")

    def _is_current(self, request_id: int, topic: str) -> bool:
        return request_id == self._request_id and self._state.values[TOPIC_FIELD] == topic

    async def _fetch_questions(self, topic: str, request_id: int) -> None:
        try:
            if self.fetch_timeout_seconds is not None:
                questions = await asyncio.wait_for(
                    self.provider.fetch(topic), timeout=self.fetch_timeout_seconds
                )
            else:
                questions = await self.provider.fetch(topic)
        except asyncio.CancelledError:
            logger.debug(f"Fetch for topic '{topic}' cancelled (request {request_id})")
            raise
        except Exception as e:
            if not self._is_current(request_id, topic):
                logger.debug(f"Discarding failed stale fetch for topic '{topic}' (request {request_id})")
                return
            logger.warning(f"Dependent question fetch failed for topic '{topic}': {e!r}")
            self._state.questions = []
            self._state.advisory = self.ADVISORY_TEMPLATE.format(topic=topic)
            return

        if not self._is_current(request_id, topic):
            logger.debug(f"Discarding stale fetch for topic '{topic}' "
                         f"(request {request_id}, current {self._request_id})")
            return

        self._state.questions = list(questions)
        logger.info(f"Applied {len(self._state.questions)} dependent questions for topic '{topic}'")

    async def wait_for_questions(self) -> None:
        """Wait until no dependent fetch is outstanding (follows superseding fetches)."""
        while self.is_fetching:
            await asyncio.wait({self._fetch_task})

    def cancel_pending_fetch(self) -> None:
        """Cancel any outstanding fetch. Used when the form instance ends."""
        self._request_id += 1
        for task in list(self._inflight):
            task.cancel()
        self._fetch_task = None
