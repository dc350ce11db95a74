"""
Flask Web Application for the Survey Form

JSON API over a single FormSession. Rendering is left to the client.
"""

from flask import Flask, request, jsonify
import concurrent.futures
import logging
import os

from survey_backend.commands import SetAnswer, SetField, SubmitForm
from survey_backend.config import load_config
from survey_backend.contracts import FIELD_LABELS, FIELD_OPTIONS, TOPIC_FIELDS
from survey_backend.results import IllegalCommand
from survey_backend.session import FormSession
from survey_backend.submission_sink import JSONFileSubmissionSink
from survey_backend.utils.display_helpers import describe_form, format_errors

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

# Global state for current form session
current_session = {
    'session': None,
    'is_active': False,
}


def create_new_session(config=None, provider=None, sink=None):
    """Create new form session, then close any previous one"""
    global current_session

    config = config or load_config(os.environ.get('SURVEY_CONFIG'))
    session = FormSession(
        config=config,
        provider=provider,
        sink=sink or JSONFileSubmissionSink(config.output_dir),
    )

    previous = current_session['session']
    current_session = {
        'session': session,
        'is_active': True,
    }

    if previous is not None:
        previous.close()

    logger.info(f"New form session created: {session.session_id}")
    return session.session_id


def _state_payload(snapshot):
    """Snapshot as JSON plus the visible-field description"""
    data = snapshot.to_json()
    data['fields'] = describe_form(snapshot.values)
    return data


def _no_session_response():
    return jsonify({
        'success': False,
        'error': 'No active form session'
    }), 400


@app.route('/api/form', methods=['GET'])
def form_catalog():
    """Static form catalog (labels, options, topic-specific fields)"""
    return jsonify({
        'success': True,
        'labels': FIELD_LABELS,
        'options': {name: list(opts) for name, opts in FIELD_OPTIONS.items()},
        'topic_fields': {topic: list(names) for topic, names in TOPIC_FIELDS.items()},
    })


@app.route('/api/start', methods=['POST'])
def start_session():
    """Start new form session"""
    try:
        session_id = create_new_session()
        snapshot = current_session['session'].snapshot()

        return jsonify({
            'success': True,
            'session_id': session_id,
            'state': _state_payload(snapshot)
        })

    except Exception as e:
        logger.error(f"Error starting form session: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@app.route('/api/field', methods=['POST'])
def set_field():
    """Set one form field"""
    try:
        if not current_session['is_active']:
            return _no_session_response()

        data = request.get_json(silent=True) or {}
        name = data.get('name')
        value = data.get('value', '')

        if not isinstance(name, str) or not isinstance(value, str):
            return jsonify({
                'success': False,
                'error': "'name' and 'value' must be strings"
            }), 400

        result = current_session['session'].handle(SetField(name=name, value=value))

        if isinstance(result, IllegalCommand):
            return jsonify({
                'success': False,
                'error': result.reason
            }), 400

        return jsonify({
            'success': True,
            'fetch_started': result.fetch_started,
            'state': _state_payload(result.snapshot)
        })

    except Exception as e:
        logger.error(f"Error setting field: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@app.route('/api/answer', methods=['POST'])
def set_answer():
    """Answer one dependent question"""
    try:
        if not current_session['is_active']:
            return _no_session_response()

        data = request.get_json(silent=True) or {}
        index = data.get('index')
        value = data.get('value', '')

        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            return jsonify({
                'success': False,
                'error': "'index' must be a non-negative integer"
            }), 400

        if not isinstance(value, str):
            return jsonify({
                'success': False,
                'error': "'value' must be a string"
            }), 400

        result = current_session['session'].handle(SetAnswer(index=index, value=value))

        return jsonify({
            'success': True,
            'state': _state_payload(result.snapshot)
        })

    except Exception as e:
        logger.error(f"Error setting answer: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@app.route('/api/state', methods=['GET'])
def get_state():
    """Current form state. ?wait=1 blocks until dependent questions settle."""
    try:
        if not current_session['is_active']:
            return _no_session_response()

        session = current_session['session']
        if request.args.get('wait') in ('1', 'true'):
            snapshot = session.wait_for_questions(timeout=session.CALL_TIMEOUT_SECONDS)
        else:
            snapshot = session.snapshot()

        return jsonify({
            'success': True,
            'state': _state_payload(snapshot)
        })

    except concurrent.futures.TimeoutError:
        logger.warning("Timed out waiting for follow-up questions")
        return jsonify({
            'success': False,
            'error': 'Follow-up questions still loading'
        }), 504

    except Exception as e:
        logger.error(f"Error reading form state: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@app.route('/api/submit', methods=['POST'])
def submit_form():
    """Submit gesture: validate and finalize when clean"""
    try:
        if not current_session['is_active']:
            return _no_session_response()

        result = current_session['session'].handle(SubmitForm())

        if isinstance(result, IllegalCommand):
            return jsonify({
                'success': False,
                'error': result.reason
            }), 409

        if not result.accepted:
            return jsonify({
                'success': True,
                'accepted': False,
                'errors': result.errors,
                'messages': format_errors(result.errors),
                'advisory': result.advisory
            })

        return jsonify({
            'success': True,
            'accepted': True,
            'submission_id': result.submission_id,
            'payload': result.payload,
            'advisory': result.advisory
        })

    except Exception as e:
        logger.error(f"Error submitting form: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


if __name__ == '__main__':
    print("\n" + "="*60)
    print("SURVEY FORM - JSON API")
    print("="*60)
    print("\nServer starting on http://localhost:5000")
    print("\nPress Ctrl+C to stop the server")
    print("="*60 + "\n")

    app.run(debug=False, host='0.0.0.0', port=5000)
