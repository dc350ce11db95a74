"""
Integration tests for FormSession

Drives the full engine (validator, mock provider, store, controller)
through commands from the test thread, with the store on the session loop.
"""

import os
import sys
import threading
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from survey_backend.commands import SetAnswer, SetField, SubmitForm
from survey_backend.config import SurveyConfig
from survey_backend.contracts import SubmissionState
from survey_backend.results import FieldUpdated, IllegalCommand, SubmissionResult
from survey_backend.session import FormSession


FEEDBACK = "I enjoy learning new things and this survey made me think about it."


class CollectingSink:
    def __init__(self):
        self.payloads = []

    def __call__(self, submission_id, payload):
        self.payloads.append(payload)
        return submission_id


@pytest.fixture
def sink():
    return CollectingSink()


@pytest.fixture
def session(sink):
    config = SurveyConfig(fetch_latency_seconds=0.01)
    form = FormSession(config=config, sink=sink)
    yield form
    form.close()


def test_set_field_returns_snapshot(session):
    result = session.handle(SetField(name='fullName', value='Ada'))

    assert isinstance(result, FieldUpdated)
    assert result.fetch_started is False
    assert result.snapshot.values['fullName'] == 'Ada'


def test_topic_fetch_through_session(session):
    result = session.handle(SetField(name='surveyTopic', value='Technology'))
    assert result.fetch_started is True

    snapshot = session.wait_for_questions(timeout=5)

    assert [q.text for q in snapshot.questions] == [
        'What is your favorite tech stack?',
        'How do you stay updated with the latest tech trends?',
    ]
    assert snapshot.is_fetching is False


def test_clearing_topic_does_not_start_fetch(session):
    session.handle(SetField(name='surveyTopic', value='Health'))

    result = session.handle(SetField(name='surveyTopic', value=''))

    assert result.fetch_started is False
    assert session.wait_for_questions(timeout=5).questions == ()


def test_unknown_field_is_illegal(session):
    result = session.handle(SetField(name='age', value='42'))

    assert isinstance(result, IllegalCommand)
    assert result.command_type == 'SetField'
    assert 'age' in result.reason


def test_unsupported_command(session):
    result = session.handle("submit please")

    assert isinstance(result, IllegalCommand)
    assert result.command_type == 'str'


def test_full_survey_flow(session, sink):
    for name, value in [
        ('fullName', 'Ada'),
        ('email', 'ada@x.io'),
        ('surveyTopic', 'Health'),
        ('exerciseFrequency', 'Daily'),
        ('dietPreference', 'Vegan'),
        ('feedback', FEEDBACK),
    ]:
        session.handle(SetField(name=name, value=value))

    session.wait_for_questions(timeout=5)
    session.handle(SetAnswer(index=0, value='7'))
    session.handle(SetAnswer(index=1, value='Pollen'))

    result = session.handle(SubmitForm())

    assert isinstance(result, SubmissionResult)
    assert result.accepted is True
    assert result.payload['dependentAnswers'] == {0: '7', 1: 'Pollen'}
    assert sink.payloads == [result.payload]
    assert session.snapshot().submission_state is SubmissionState.IDLE


def test_rejected_submission_keeps_errors(session, sink):
    result = session.handle(SubmitForm())

    assert result.accepted is False
    assert session.snapshot().errors == result.errors
    assert sink.payloads == []


def test_commands_from_many_threads_are_serialized(session):
    def answer(index):
        session.handle(SetAnswer(index=index, value=f"answer {index}"))

    threads = [threading.Thread(target=answer, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert session.snapshot().answers == {i: f"answer {i}" for i in range(20)}


def test_closed_session_rejects_commands(sink):
    form = FormSession(config=SurveyConfig(fetch_latency_seconds=0), sink=sink)
    form.handle(SetField(name='surveyTopic', value='Education'))
    form.close()
    form.close()

    with pytest.raises(RuntimeError, match="closed"):
        form.handle(SetField(name='fullName', value='Ada'))


def test_context_manager_closes(sink):
    with FormSession(config=SurveyConfig(fetch_latency_seconds=0), sink=sink) as form:
        form.handle(SetField(name='fullName', value='Ada'))

    with pytest.raises(RuntimeError):
        form.snapshot()
