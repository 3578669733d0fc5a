"""
Clip Jury - Results Application
===============================
Main application entry point that configures Flask and registers blueprints.

This module:
- Creates the Flask application factory
- Attaches the judging session the routes work on
- Registers the results blueprint
- Defines core routes (/health)

Route Organization:
- /health               -> Health check
- /api/results/*        -> Results, edits and judge imports
"""

from flask import Flask, jsonify
from dotenv import load_dotenv
from flask_cors import CORS

# Import blueprints
from jury.routes.results_routes import results_bp

# Import configuration system
from jury.config import get_config, apply_environment_overrides

# Import logging system
from jury.logging_config import get_jury_logger

from jury.models import OFFICIAL_RUBRIC
from jury.services.judging_session import JudgingSession

# Load environment variables
load_dotenv()

# Initialize configuration with environment overrides
config = get_config()
apply_environment_overrides(config)

# Configure logging
logger = get_jury_logger("app", log_to_file=False)


def create_app(config_override=None, session=None):
    """
    Application factory function.

    Creates and configures the Flask application with:
    - CORS support
    - Blueprint registration
    - The judging session shared by the routes

    Args:
        config_override: Optional AppConfig instance to use instead of global config
        session: Optional JudgingSession; defaults to an empty session on the
            official rubric

    Returns:
        Configured Flask application instance
    """
    app_config = config_override or get_config()

    app = Flask(__name__)
    CORS(app, origins=app_config.flask.cors_origins)

    # Store config and session in app for access in routes
    app.app_config = app_config
    app.judging_session = session if session is not None else JudgingSession(rubric=OFFICIAL_RUBRIC)

    # ==========================================================================
    # REGISTER BLUEPRINTS
    # ==========================================================================

    app.register_blueprint(results_bp, url_prefix='/api/results')

    # ==========================================================================
    # CONFIGURE DIRECTORIES
    # ==========================================================================

    if app_config.logging.log_to_file:
        app_config.paths.ensure_directories()

    app.config['SECRET_KEY'] = app_config.flask.secret_key

    logger.info(
        f"Initialized Flask app",
        extra={
            'session_name': app_config.logging.session_name,
            'distribution_strategy': app_config.scoring.distribution_strategy,
            'entries': len(app.judging_session.entries)
        }
    )

    # ==========================================================================
    # CORE ROUTES
    # ==========================================================================

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring."""
        return {
            'status': 'healthy',
            'session': app_config.logging.session_name,
            'version': '1.0.0'
        }, 200

    # ==========================================================================
    # ERROR HANDLERS
    # ==========================================================================

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal server error: {error}")
        return jsonify({'error': 'Internal server error'}), 500

    return app


if __name__ == '__main__':
    app = create_app()
    flask_config = get_config().flask
    app.run(
        debug=flask_config.debug,
        host=flask_config.host,
        port=flask_config.port
    )
