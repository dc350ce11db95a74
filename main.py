"""
Console Harness for the Survey Form

Walks the form field by field, answers follow-up questions, and submits.
Re-prompts only the fields with errors until the submission is accepted.
"""

import logging
import sys

from survey_backend.commands import SetAnswer, SetField, SubmitForm
from survey_backend.config import load_config
from survey_backend.contracts import FIELD_OPTIONS, TOPIC_FIELD, TOPIC_FIELDS
from survey_backend.session import FormSession
from survey_backend.submission_sink import JSONFileSubmissionSink
from survey_backend.utils.display_helpers import (
    format_errors,
    format_field_name,
    format_submission_message,
    visible_fields,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"quit", "exit", "stop"}


class ExitRequested(Exception):
    """User typed an exit command"""


def print_separator(char="=", length=60):
    """Print a separator line"""
    print(char * length)


def prompt(label, options=()):
    """Read one value; exit commands abort the walk"""
    if options:
        print(f"{label} ({' / '.join(options)})")
    value = input(f"{label}: ").strip()
    if value.lower() in EXIT_COMMANDS:
        raise ExitRequested()
    return value


def fill_fields(session, names):
    """Prompt for each field in turn, following topic changes"""
    for name in names:
        value = prompt(format_field_name(name), FIELD_OPTIONS.get(name, ()))
        session.handle(SetField(name=name, value=value))

        if name == TOPIC_FIELD:
            # Topic-specific fields only appear once the topic is set
            extra = [f for f in TOPIC_FIELDS.get(value, ()) if f not in names]
            fill_fields(session, extra)


def answer_questions(session):
    """Wait for dependent questions and answer each one"""
    print("\nLoading follow-up questions...")
    snapshot = session.wait_for_questions(timeout=30)

    if snapshot.advisory:
        print(f"Note: {snapshot.advisory}")

    if not snapshot.questions:
        return

    print("\nAdditional Questions")
    for index, question in enumerate(snapshot.questions):
        value = prompt(question.text)
        session.handle(SetAnswer(index=index, value=value))


def main():
    """Run console survey"""
    print_separator()
    print("SURVEY FORM - CONSOLE")
    print_separator()
    print("Type 'quit', 'exit', or 'stop' to end early\n")

    try:
        config = load_config(sys.argv[1] if len(sys.argv) > 1 else None)
        session = FormSession(config=config, sink=JSONFileSubmissionSink(config.output_dir))
    except Exception as e:
        print(f"\nFailed to initialize: {e}")
        import traceback
        traceback.print_exc()
        return 1

    try:
        snapshot = session.snapshot()
        fill_fields(session, [n for n in visible_fields(snapshot.values) if n != 'feedback'])
        answer_questions(session)
        fill_fields(session, ['feedback'])

        while True:
            result = session.handle(SubmitForm())

            if result.accepted:
                print_separator()
                print(format_submission_message(result.payload))
                print(f"\nSaved to: {result.receipt}")
                print_separator()
                break

            print("\nPlease fix the following:")
            for line in format_errors(result.errors):
                print(f"  - {line}")
            print()

            fill_fields(session, [n for n in visible_fields(session.snapshot().values)
                                  if n in result.errors])
            if TOPIC_FIELD in result.errors:
                answer_questions(session)

    except (KeyboardInterrupt, ExitRequested):
        print("\n\nSurvey ended by user")

    finally:
        session.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
