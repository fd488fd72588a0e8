"""aimindmap API server"""

import logging
from typing import Optional

from flask import Flask, jsonify

from .canvas import MindMapCanvas
from .config import Config, load_config
from .generator import Generator
from .ideas import IdeaGenerator
from .newsletter import PdfRenderer, Scraper, Summarizer
from .routes import register_routes
from .store import MindMapStore


class AIMindMapServer:
    """Flask API server for the mind map editor and the newsletter creator"""

    def __init__(
        self,
        name: str = "aimindmap",
        config_path: Optional[str] = None,
        config: Optional[Config] = None,
    ):
        self.config = config if config is not None else load_config(config_path)

        self.app = Flask(name)
        self.app.logger.setLevel(logging.INFO)
        register_routes(self)
        self.add_errorhandlers()

        self.generator = Generator(self.config)
        self.store = MindMapStore.from_config(self.config)
        self.idea_generator = IdeaGenerator(self.config, self.generator)
        self.canvas = MindMapCanvas.from_config(self.config, self.store, self.idea_generator)

        self.scraper = Scraper(self.config)
        self.summarizer = Summarizer(self.config, self.generator)
        self.pdf_renderer = PdfRenderer(self.config)

    def add_errorhandlers(self):
        """Register Flask error handlers"""

        @self.app.errorhandler(404)
        def not_found(_exception):
            return jsonify({"error": "The requested resource was not found."}), 404

        @self.app.errorhandler(405)
        def method_not_allowed(_exception):
            return jsonify({"error": "Method not allowed."}), 405

        @self.app.errorhandler(500)
        def server_error(exception):
            """Manually raise an internal server error:
            flask.abort(500)
            """
            self.app.logger.error("Error occured: %s", exception)
            return jsonify({"error": "An internal server error occurred."}), 500
