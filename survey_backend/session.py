"""
Form Session - Thread-safe command interface to one survey form instance

The form store is single-writer and lives on an asyncio event loop. A
FormSession runs that loop on a background thread and marshals every
command onto it, so callers on any thread (Flask request handlers, the
console harness) see serialized mutations while dependent fetches keep
running between calls.

Usage:
    session = FormSession(config, sink=JSONFileSubmissionSink())
    session.handle(SetField('surveyTopic', 'Health'))
    session.wait_for_questions(timeout=5)
    result = session.handle(SubmitForm())
    session.close()
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Optional

from survey_backend.commands import Command, SetAnswer, SetField, SubmitForm
from survey_backend.config import SurveyConfig, load_config
from survey_backend.contracts import TOPIC_FIELD, FormSnapshot
from survey_backend.core.form_state_store import FormStateStore
from survey_backend.core.question_provider import MockQuestionProvider
from survey_backend.core.submission_controller import (
    SubmissionController,
    SubmissionSink,
    new_submission_id,
)
from survey_backend.core.survey_validator import SurveyValidator
from survey_backend.results import FieldUpdated, IllegalCommand
from survey_backend.submission_sink import LoggingSubmissionSink

logger = logging.getLogger(__name__)


class FormSession:
    """Owns one form instance and the event loop its store runs on"""

    # Upper bound on a single marshalled call (not on fetches)
    CALL_TIMEOUT_SECONDS = 10.0

    def __init__(self, config: Optional[SurveyConfig] = None, provider=None,
                 sink: Optional[SubmissionSink] = None, validator=None):
        """
        Start the session loop and build the form modules.

        Args:
            config: Engine settings (defaults from load_config())
            provider: DependentQuestionsProvider (defaults to MockQuestionProvider)
            sink: Submission sink (defaults to LoggingSubmissionSink)
            validator: Validator (defaults to SurveyValidator on config.ruleset_path)
        """
        self.config = config or load_config()
        self.session_id = new_submission_id()

        self.validator = validator or SurveyValidator(self.config.ruleset_path)
        self.provider = provider or MockQuestionProvider(
            self.config.questions_path,
            latency_seconds=self.config.fetch_latency_seconds,
        )

        self._loop = asyncio.new_event_loop()
        self._closed = False

        self.store = FormStateStore(
            self.provider,
            fetch_timeout_seconds=self.config.fetch_timeout_seconds,
            cancel_superseded_fetches=self.config.cancel_superseded_fetches,
            loop=self._loop,
        )
        self.controller = SubmissionController(
            self.store, self.validator, sink or LoggingSubmissionSink()
        )

        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"FormSession-{self.session_id}",
            daemon=True,
        )
        self._thread.start()

        logger.info(f"Form session {self.session_id} started")

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _call(self, fn, *args):
        """Run fn(*args) on the session loop and return its result."""
        if self._closed:
            raise RuntimeError(f"Form session {self.session_id} is closed")

        async def runner():
            return fn(*args)

        future = asyncio.run_coroutine_threadsafe(runner(), self._loop)
        return future.result(timeout=self.CALL_TIMEOUT_SECONDS)

    # ========================
    # Public API
    # ========================

    def handle(self, command: Command):
        """
        Apply one command to the form.

        Args:
            command: SetField, SetAnswer or SubmitForm

        Returns:
            FieldUpdated, SubmissionResult or IllegalCommand
        """
        return self._call(self._dispatch, command)

    def snapshot(self) -> FormSnapshot:
        return self._call(self.store.snapshot)

    def wait_for_questions(self, timeout: Optional[float] = None) -> FormSnapshot:
        """
        Block until no dependent fetch is outstanding.

        Args:
            timeout: Seconds to wait (None = no limit)

        Returns:
            FormSnapshot after the fetch settled

        Raises:
            TimeoutError: If the fetch is still outstanding after timeout
        """
        if self._closed:
            raise RuntimeError(f"Form session {self.session_id} is closed")

        future = asyncio.run_coroutine_threadsafe(self.store.wait_for_questions(), self._loop)
        try:
            future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise
        return self.snapshot()

    def close(self) -> None:
        """Cancel outstanding fetches and stop the session loop."""
        if self._closed:
            return

        self._call(self.store.cancel_pending_fetch)
        self._closed = True

        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=self.CALL_TIMEOUT_SECONDS)

        # Let cancelled fetch tasks unwind before the loop is closed
        pending = asyncio.all_tasks(self._loop)
        if pending:
            self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        self._loop.close()
        logger.info(f"Form session {self.session_id} closed")

    def __enter__(self) -> "FormSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========================
    # Command dispatch (runs on the session loop)
    # ========================

    def _dispatch(self, command: Command):
        if isinstance(command, SetField):
            previous_topic = self.store.values[TOPIC_FIELD]
            try:
                self.store.set_field(command.name, command.value)
            except KeyError as e:
                return IllegalCommand(reason=e.args[0], command_type="SetField")
            fetch_started = (command.name == TOPIC_FIELD and command.value != previous_topic
                             and command.value != "")
            return FieldUpdated(snapshot=self.store.snapshot(), fetch_started=fetch_started)

        if isinstance(command, SetAnswer):
            self.store.set_answer(command.index, command.value)
            return FieldUpdated(snapshot=self.store.snapshot())

        if isinstance(command, SubmitForm):
            return self.controller.submit()

        return IllegalCommand(
            reason=f"Unsupported command: {command!r}",
            command_type=type(command).__name__,
        )
