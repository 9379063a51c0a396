"""
app.py — Flask entry point for the fertilizer ledger.

Initializes the Flask app, registers all route blueprints, calls init_db()
on startup and creates the change channel shared by the store writes.

Run: python app.py → localhost:5000
"""

import logging
import os

from flask import Flask, jsonify
from flask_wtf.csrf import CSRFProtect, generate_csrf

from database import init_db
from notifications import ChangeChannel
from program_table import DEFAULT_PROGRAM_YEARS
from routes.main import main_bp
from routes.program import program_bp
from routes.calendar import calendar_bp
from routes.history import history_bp


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('FLASK_SECRET_KEY', 'fertilizer-ledger-local-secret-key')
    app.config['DATABASE'] = os.environ.get('FERTILIZER_DB_PATH')
    app.config['PROGRAM_YEARS'] = DEFAULT_PROGRAM_YEARS
    app.config['WTF_CSRF_CHECK_DEFAULT'] = True

    if test_config:
        app.config.update(test_config)

    CSRFProtect(app)

    app.extensions['change_channel'] = ChangeChannel()

    with app.app_context():
        init_db()

    app.register_blueprint(main_bp)
    app.register_blueprint(program_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(history_bp)

    @app.route('/csrf-token')
    def csrf_token():
        """Token for JSON clients (send back as X-CSRFToken)."""
        return jsonify({'csrf_token': generate_csrf()})

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app = create_app()
    # Set FLASK_DEBUG=0 to disable debug mode
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
