from flask import Blueprint, render_template, current_app

bp = Blueprint('main', __name__)

DEFAULT_USER_FIELDS = {
    'pass': '',
    'full_name': '',
    'user_level': '1',
    'user_group': '',
    'phone_login': '',
    'phone_pass': '',
    'pass_hash': '',
    'agentcall_manual': 'AUTO',
    'startUserId': 1000,
    'endUserId': 1010,
}


@bp.route('/')
def index():
    current_app.logger.info('User manager page accessed', extra={
        'event_type': 'page_view',
        'page': 'home'
    })

    settings = current_app.config['APP_SETTINGS']
    return render_template(
        'index.html',
        db_config=settings.form_defaults(),
        user_fields=DEFAULT_USER_FIELDS,
    )


@bp.route('/health')
def health():
    current_app.logger.debug('Health check endpoint called')
    return {'status': 'healthy'}, 200
