"""
Aircraft Monitor Flask Application.

Main entry point for the web application. Initializes:
- Broadcast hub for connected observers
- Telemetry pipeline (generate, classify, broadcast)
- API routes and Socket.IO transport

Usage:
    python -m aircraft_monitor.app
"""

import logging

from flask import Flask
from flask_cors import CORS

from aircraft_monitor.config import config
from aircraft_monitor.api import aircraft_bp, socketio
from aircraft_monitor.services import BroadcastHub
from aircraft_monitor.simulation import TelemetryPipeline

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(start_simulation: bool = True) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_simulation: Whether to start the background telemetry pipeline.
                          Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Core components, owned by this app instance
    hub = BroadcastHub()
    pipeline = TelemetryPipeline(hub=hub)
    app.config['BROADCAST_HUB'] = hub
    app.config['TELEMETRY_PIPELINE'] = pipeline

    # Register API blueprints and the observer transport
    app.register_blueprint(aircraft_bp)
    socketio.init_app(
        app,
        path=config.broadcast.socket_path.strip('/'),
        cors_allowed_origins='*',
        async_mode='threading',
        always_connect=True,  # Greeting is sent from the connect handler
    )

    if start_simulation:
        pipeline.start_background()
        logger.info(f'Telemetry generation started with interval {pipeline.interval}s')
    else:
        logger.info('Telemetry generation disabled')

    @app.route('/health')
    def health():
        """Simple liveness check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    logger.info(f'Starting Aircraft Monitor on http://localhost:{config.port}')
    logger.info(f'Observers connect via Socket.IO at {config.broadcast.socket_path}')

    try:
        socketio.run(
            app,
            host='0.0.0.0',
            port=config.port,
            debug=config.debug,
            use_reloader=False,  # Disable reloader to prevent duplicate pipeline threads
            allow_unsafe_werkzeug=True,
        )
    finally:
        app.config['TELEMETRY_PIPELINE'].stop()
        app.config['BROADCAST_HUB'].close()


if __name__ == '__main__':
    run_development_server()
