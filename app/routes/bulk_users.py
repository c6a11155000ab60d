from threading import Event

from flask import Blueprint, Response, request, jsonify, current_app, stream_with_context

from app.models.vicidial_user import ConnectionProfile, RowTemplate, IdRange
from app.services.bulk_user_creator import BulkUserCreator
from app.services.error_handler import (
    BulkUserErrorHandler, ErrorCategory, ErrorSeverity, RequestValidationError, describe_db_error
)
from app.services import vicidial_db

bp = Blueprint('bulk_users', __name__, url_prefix='/api')


def _log_rejection(error: RequestValidationError, endpoint: str):
    BulkUserErrorHandler(current_app.logger).record(
        error, ErrorCategory.VALIDATION, ErrorSeverity.LOW, {'endpoint': endpoint}
    )


@bp.route('/create-users', methods=['POST'])
def create_users():
    """
    Create vicidial users for an ID range, streaming one JSON line per event

    Expected JSON payload:
    {
        "dbConfig": {"host": "localhost", "user": "...", "password": "...",
                     "database": "asterisk", "socketPath": "/var/run/mysql/mysql.sock"},
        "userFields": {"pass": "...", "full_name": "", "user_level": "1",
                       "user_group": "AGENTS", "phone_login": "", "phone_pass": "...",
                       "pass_hash": "", "agentcall_manual": "AUTO",
                       "startUserId": 1000, "endUserId": 1010}
    }
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'No JSON data provided'}), 400

    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    settings = current_app.config['APP_SETTINGS']

    try:
        profile = ConnectionProfile.from_dict(data.get('dbConfig'))
        template = RowTemplate.from_dict(data.get('userFields'))
        id_range = IdRange.from_dict(data.get('userFields'), max_users=settings.max_users_per_request)
    except RequestValidationError as e:
        _log_rejection(e, 'create-users')
        return jsonify({'error': str(e)}), 400

    creator = BulkUserCreator(
        row_interval=settings.row_interval_seconds,
        connect_timeout=settings.db_connect_timeout,
    )

    cancel_event = Event()

    def generate():
        for event in creator.stream_run(profile, template, id_range, cancel_event):
            yield event.to_line()

    response = Response(
        stream_with_context(generate()),
        mimetype='text/plain',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )
    response.call_on_close(cancel_event.set)
    return response


@bp.route('/test-connection', methods=['POST'])
def test_connection():
    """Check that the posted connection profile reaches the database"""
    data = request.get_json(silent=True)

    try:
        profile = ConnectionProfile.from_dict(data, name='Request body')
    except RequestValidationError as e:
        _log_rejection(e, 'test-connection')
        return jsonify({'success': False, 'error': str(e)}), 400

    try:
        settings = current_app.config['APP_SETTINGS']
        vicidial_db.check_connection(profile, settings.db_connect_timeout)
    except Exception as e:
        message = describe_db_error(e)
        current_app.logger.warning(f'Connection test failed: {message}')
        return jsonify({'success': False, 'error': message}), 400

    current_app.logger.info(f'Connection test succeeded for {profile.describe()}')
    return jsonify({'success': True}), 200
