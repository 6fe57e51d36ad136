import os
import logging
from dotenv import load_dotenv

# Load Environment Variables BEFORE other imports might need them
load_dotenv()

from flask import Flask

from routes.studio_routes import studio_bp
from services.generation_service import GenerationClient
from services.loop_runner import LoopRunner
from services.studio_state import StudioController
from services.task_planner import TaskPlanner

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def build_controller() -> StudioController:
    """
    Wires the Generation Client into the planner and controller.
    Raises ConfigurationError if GOOGLE_API_KEY is missing.
    """
    generation_client = GenerationClient()
    return StudioController(TaskPlanner(generation_client), generation_client)


def create_app(controller=None, runner=None) -> Flask:
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024  # Form text only

    app.extensions["studio"] = {
        "controller": controller or build_controller(),
        "runner": runner or LoopRunner(),
    }
    app.register_blueprint(studio_bp)

    @app.template_filter('css_aspect_ratio')
    def css_aspect_ratio(aspect_ratio):
        """'16:9' -> '16 / 9' for the CSS aspect-ratio property."""
        return aspect_ratio.value.replace(':', ' / ')

    return app


if __name__ == "__main__":
    # Missing GOOGLE_API_KEY raises ConfigurationError here and stops the server
    app = create_app()
    port = int(os.getenv("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG") == "1", use_reloader=False)
