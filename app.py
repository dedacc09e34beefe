import logging
import os

from cachelib.file import FileSystemCache
from flask import Flask, jsonify
from flask_cors import CORS
from flask_session import Session
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from appointments import appointments_bp
from auth import auth_bp
from blood_requests import blood_requests_bp
from config import Config, DevelopmentConfig
from dashboard import dashboard_bp
from database import db
from donations import donations_bp
from inventory import inventory_bp
from schemas import validation_messages
from users import users_bp

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def validation_failed(error):
        return jsonify({'error': validation_messages(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled error: {error}")
        return jsonify({'error': 'Internal server error'}), 500


def create_app(config_object=Config, test_config=None):
    """Flask application factory"""
    app = Flask(__name__)
    app.config.from_object(config_object)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'))

    CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}},
         supports_credentials=True)
    if not app.config.get('SESSION_CACHELIB'):
        app.config['SESSION_CACHELIB'] = FileSystemCache(app.config['SESSION_DIR'], threshold=500)
    Session(app)
    db.init_app(app)

    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(inventory_bp, url_prefix='/api/blood-inventory')
    app.register_blueprint(donations_bp, url_prefix='/api/donations')
    app.register_blueprint(appointments_bp, url_prefix='/api/appointments')
    app.register_blueprint(blood_requests_bp, url_prefix='/api/blood-requests')
    app.register_blueprint(dashboard_bp, url_prefix='/api/admin')

    register_error_handlers(app)

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        try:
            db.session.execute(text('SELECT 1'))
        except SQLAlchemyError as e:
            logger.error(f"Database connection error: {e}")
            return jsonify({'status': 'unhealthy', 'database': 'disconnected'}), 500
        return jsonify({'status': 'healthy', 'database': 'connected'})

    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    app = create_app(DevelopmentConfig)
    logger.info("Starting Blood Bank Management API")
    app.run(debug=True, host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
