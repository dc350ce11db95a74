"""
Unit tests for Submission Controller

Tests the submit gesture: validation gating, exactly-once finalization,
payload shape, and error persistence.
"""

import asyncio
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from survey_backend.config import SurveyConfig
from survey_backend.contracts import QuestionDescriptor, SubmissionState
from survey_backend.core.form_state_store import FormStateStore
from survey_backend.core.submission_controller import SubmissionController
from survey_backend.core.survey_validator import SurveyValidator
from survey_backend.results import IllegalCommand


FEEDBACK = "The survey was clear and the follow-up questions were relevant to me."


# ========================
# Mock Modules
# ========================

class QuestionProvider:
    """Resolves immediately with two questions per topic"""

    async def fetch(self, topic):
        await asyncio.sleep(0)
        return [QuestionDescriptor(text=f"{topic} question {i}") for i in range(2)]


class FailingProvider:
    async def fetch(self, topic):
        raise TimeoutError("upstream timeout")


class CollectingSink:
    """Records every finalized payload"""

    def __init__(self):
        self.calls = []

    def __call__(self, submission_id, payload):
        self.calls.append((submission_id, payload))
        return f"receipt-{len(self.calls)}"


def build(provider=None, sink=None):
    store = FormStateStore(provider or QuestionProvider())
    validator = SurveyValidator(SurveyConfig().ruleset_path)
    sink = sink or CollectingSink()
    return store, SubmissionController(store, validator, sink), sink


def fill_education(store):
    store.set_field('fullName', 'Ada')
    store.set_field('email', 'ada@x.io')
    store.set_field('surveyTopic', 'Education')
    store.set_field('highestQualification', 'PhD')
    store.set_field('fieldOfStudy', 'Math')
    store.set_field('feedback', FEEDBACK)


# ========================
# Construction
# ========================

def test_rejects_validator_without_validate():
    store = FormStateStore(QuestionProvider())

    with pytest.raises(TypeError, match="validate"):
        SubmissionController(store, object(), CollectingSink())


def test_rejects_non_callable_sink():
    store = FormStateStore(QuestionProvider())
    validator = SurveyValidator(SurveyConfig().ruleset_path)

    with pytest.raises(TypeError, match="sink"):
        SubmissionController(store, validator, "not a sink")


# ========================
# Validation gating
# ========================

def test_empty_form_rejected():
    store, controller, sink = build()

    result = controller.submit()

    assert result.accepted is False
    assert {'fullName', 'email', 'surveyTopic', 'feedback'} <= set(result.errors)
    assert result.payload is None
    assert result.submission_id is None
    assert store.errors == result.errors
    assert store.submission_state is SubmissionState.IDLE
    assert sink.calls == []


def test_errors_persist_until_resubmit():
    async def scenario():
        store, controller, sink = build()
        store.set_field('surveyTopic', 'Technology')
        controller.submit()

        store.set_field('fullName', 'Ada')
        after_edit = store.errors

        controller.submit()
        return store, after_edit

    store, after_edit = asyncio.run(scenario())

    assert 'fullName' in after_edit
    assert 'fullName' not in store.errors
    assert 'favoriteProgrammingLanguage' in store.errors


def test_fix_and_resubmit_finalizes():
    async def scenario():
        store, controller, sink = build()
        fill_education(store)
        store.set_field('email', 'broken')
        first = controller.submit()

        store.set_field('email', 'ada@x.io')
        second = controller.submit()
        return store, sink, first, second

    store, sink, first, second = asyncio.run(scenario())

    assert first.errors == {'email': 'Email address is invalid'}
    assert second.accepted is True
    assert store.errors == {}
    assert len(sink.calls) == 1


# ========================
# Finalization
# ========================

def test_end_to_end_without_dependent_answers():
    """Submitting before the fetch resolves finalizes with empty answers"""
    async def scenario():
        store, controller, sink = build()
        fill_education(store)
        return controller.submit(), sink

    result, sink = asyncio.run(scenario())

    assert result.accepted is True
    assert result.errors == {}
    assert result.payload['fullName'] == 'Ada'
    assert result.payload['email'] == 'ada@x.io'
    assert result.payload['surveyTopic'] == 'Education'
    assert result.payload['highestQualification'] == 'PhD'
    assert result.payload['fieldOfStudy'] == 'Math'
    assert result.payload['feedback'] == FEEDBACK
    assert result.payload['dependentAnswers'] == {}
    assert result.receipt == 'receipt-1'
    assert sink.calls[0] == (result.submission_id, result.payload)


def test_end_to_end_with_dependent_answers():
    async def scenario():
        store, controller, sink = build()
        fill_education(store)
        await store.wait_for_questions()
        store.set_answer(0, 'Calculus')
        store.set_answer(1, 'Offline')
        return controller.submit()

    result = asyncio.run(scenario())

    assert result.accepted is True
    assert result.payload['dependentAnswers'] == {0: 'Calculus', 1: 'Offline'}


def test_dependent_answers_not_validated():
    async def scenario():
        store, controller, sink = build()
        fill_education(store)
        await store.wait_for_questions()
        return controller.submit()

    result = asyncio.run(scenario())

    assert result.accepted is True
    assert result.payload['dependentAnswers'] == {}


def test_finalizes_exactly_once_per_gesture():
    async def scenario():
        store, controller, sink = build()
        fill_education(store)
        controller.submit()

        # Reading state never re-triggers finalization
        store.snapshot()
        store.snapshot()
        once = len(sink.calls)

        controller.submit()
        return once, sink, controller

    once, sink, controller = asyncio.run(scenario())

    assert once == 1
    assert len(sink.calls) == 2
    assert controller.finalized_count == 2
    assert sink.calls[0][0] != sink.calls[1][0]


def test_reentrant_submit_rejected():
    """A submit issued while Pending never finalizes a second time"""
    reentrant_results = []

    async def scenario():
        store = FormStateStore(QuestionProvider())
        validator = SurveyValidator(SurveyConfig().ruleset_path)
        calls = []

        def sink(submission_id, payload):
            calls.append(submission_id)
            reentrant_results.append(controller.submit())

        controller = SubmissionController(store, validator, sink)
        fill_education(store)
        result = controller.submit()
        return result, calls, store

    result, calls, store = asyncio.run(scenario())

    assert result.accepted is True
    assert len(calls) == 1
    assert isinstance(reentrant_results[0], IllegalCommand)
    assert reentrant_results[0].command_type == 'SubmitForm'
    assert store.submission_state is SubmissionState.IDLE


def test_sink_failure_leaves_form_editable():
    def broken_sink(submission_id, payload):
        raise OSError("disk full")

    async def scenario():
        store, controller, _ = build(sink=broken_sink)
        fill_education(store)
        with pytest.raises(OSError, match="disk full"):
            controller.submit()
        return store

    store = asyncio.run(scenario())

    assert store.submission_state is SubmissionState.IDLE


def test_provider_failure_does_not_block_finalization():
    async def scenario():
        store, controller, sink = build(provider=FailingProvider())
        fill_education(store)
        await store.wait_for_questions()
        return controller.submit()

    result = asyncio.run(scenario())

    assert result.accepted is True
    assert result.advisory is not None
    assert 'advisory' not in result.errors


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
