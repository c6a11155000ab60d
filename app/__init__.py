from flask import Flask, g

from app.config import AppConfig


def create_app(config=None):
    app = Flask(__name__)

    # Configuration is read once; the access gate keeps its allow-list for the process lifetime
    config = config or AppConfig.from_env()
    app.config['SECRET_KEY'] = config.secret_key
    app.config['APP_SETTINGS'] = config

    # Setup logging
    from app.logging_config import setup_logging
    setup_logging(app, config)

    # IP allow-list gate runs before every request
    from app.services.security_service import SecurityService, AccessGateConfig
    SecurityService(AccessGateConfig.from_app_config(config)).init_app(app)

    # New Relic Custom Attributes for request tracking
    from app.newrelic_utils import set_request_attributes

    @app.before_request
    def add_newrelic_request_attributes():
        """Add the resolved client address as a custom attribute"""
        set_request_attributes(g.get('client_ip'))

    # Register blueprints
    from app.routes import main, bulk_users
    app.register_blueprint(main.bp)
    app.register_blueprint(bulk_users.bp)

    return app
