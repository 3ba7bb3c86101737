import argparse
import io
import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

import yaml
from docx.opc.exceptions import PackageNotFoundError
from flask import Flask, Response, request, send_file
from flask_restx import Api, Resource, fields, inputs
from werkzeug.datastructures import FileStorage

from publish_ats.config import ConfigLoader, configure_logging
from publish_ats.converter import (
    DOCX_EXTENSION,
    MD_EXTENSION,
    PDF_EXTENSION,
    optimize_markdown,
    publish,
)
from publish_ats.docx_to_markdown import docx_to_markdown

logger = logging.getLogger(__name__)

SCRIPT_DIR = Path(__file__).parent
API_CONFIG_FILE = Path("api_config.yaml")
DEFAULT_SERVER = {"host": "localhost", "port": 3000}
DEFAULT_MIMETYPES = {
    DOCX_EXTENSION: [
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    ],
    PDF_EXTENSION: ["application/pdf"],
    MD_EXTENSION: ["text/markdown"],
    "error": ["application/json"],
}


class ApiConfig:
    """Application configuration class"""

    def __init__(self, api_config_file: Path):
        """Initialize the application configuration

        Args:
            api_config_file (Path): Path to the API configuration file
        """
        self._config_file = api_config_file
        self._config_file_realpath = api_config_file.absolute().resolve()
        self._config = self.load_app_config()

    @property
    def config_file(self) -> Path:
        return Path(self._config_file)

    @property
    def config(self) -> dict:
        """Get the entire configuration dictionary

        Returns:
            dict: Complete configuration dictionary
        """
        return self._config

    @property
    def server(self) -> dict:
        """Get the host and port for the API

        Returns:
            dict: Server configuration
        """
        return {**DEFAULT_SERVER, **(self._config.get("server") or {})}

    @property
    def mimetypes(self) -> dict[str, list[str]]:
        """Get mimetypes settings

        Returns:
            dict: Mimetypes configuration
        """
        return {**DEFAULT_MIMETYPES, **(self._config.get("mimetypes") or {})}

    @property
    def cors(self) -> dict:
        return self._config.get("cors") or {}

    @property
    def logging(self) -> dict:
        return self._config.get("logging") or {}

    @property
    def input(self) -> dict:
        return self._config.get("input") or {}

    def load_app_config(self) -> dict[str, Any]:
        """Load API configuration from api_config.yaml

        Returns:
            dict: Application configuration, empty when the file is missing
            or unreadable
        """
        if os.path.exists(self._config_file_realpath):
            try:
                with open(
                    self._config_file_realpath, "r", encoding="utf-8", errors="replace"
                ) as f:
                    return yaml.safe_load(f) or {}
            except (yaml.YAMLError, OSError) as e:
                logger.error(f"Error loading app config: {e}")
                return {}
        else:
            logger.warning(
                f"{self._config_file_realpath} not found, using defaults"
            )
            return {}


class BaseApi:
    """Base class for Flask application"""

    def __init__(self, api_config_file: Path):
        """Initialize the API Base

        Args:
            api_config_file (Path): Path to the API configuration file
        """
        api_config = ApiConfig(api_config_file)

        app = Flask(__name__.split(".")[0])

        self._app = app
        self._api_config = api_config
        self._api = Api(
            app,
            version="1.0",
            title="Publish ATS API",
            description="API for converting resumes between Word, Markdown and PDF "
            "and optimizing them for Applicant Tracking Systems",
            doc="/swagger",
        )
        self._ns = self._api.namespace(
            "convert", description="Resume conversion operations"
        )

        self._host = self._api_config.server.get("host")
        self._port = self._api_config.server.get("port")
        self._app.config["SERVER_NAME"] = f"{self._host}:{self._port}"

        self._arg_parser = self._api.parser()

        self._configure_logging()
        self._configure_cors()

        self._app.logger.debug(f"API host: {self._host}")
        self._app.logger.debug(f"API port: {self._port}")
        self._app.logger.debug(f"API cors: {self._api_config.cors}")

    @property
    def app(self) -> Flask:
        return self._app

    @property
    def api(self) -> Api:
        return self._api

    @property
    def api_config(self) -> ApiConfig:
        return self._api_config

    @property
    def ns(self):
        return self._ns

    @property
    def arg_parser(self):
        return self._arg_parser

    def run(self, program_description: str = None, epilog_text: str = None) -> None:
        """Run the Flask development server

        Args:
            program_description (str): Description of the program
            epilog_text (str): Epilog text for the help message
        """
        parser = argparse.ArgumentParser(
            description=program_description,
            epilog=epilog_text,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        parser.add_argument(
            "--debug",
            action="store_true",
            dest="debug",
            help="Enable debug mode for the Flask application",
            default=False,
        )

        args = parser.parse_args()

        self._app.debug = args.debug
        self._app.run(host=self._host, port=self._port)

    def _configure_logging(self) -> None:
        """Configure logging for the API"""
        log_level_name = str(self._api_config.logging.get("level", "INFO")).upper()
        configure_logging(log_level_name)
        self._app.logger.setLevel(getattr(logging, log_level_name, logging.INFO))
        self._app.logger.info(f"Logging level set to {log_level_name}")

    def _configure_cors(self) -> None:
        """Configure CORS for the API"""
        cors_config = self._api_config.cors
        if cors_config.get("enabled", False):
            from flask_cors import CORS

            self._app.logger.info(f"Configuring CORS with: {cors_config}")
            CORS(
                self._app,
                resources={
                    r"/convert/*": {
                        "origins": cors_config.get("origins", "*"),
                        "expose_headers": cors_config.get(
                            "expose_headers", ["Content-Disposition"]
                        ),
                    }
                },
                supports_credentials=cors_config.get("supports_credentials", False),
            )
        else:
            self._app.logger.info("CORS disabled")


class App(BaseApi):
    """API class for handling resume conversion"""

    TEXT_SCHEMA = {
        "type": "string",
        "format": "text",
        "description": "Raw markdown content for conversion",
        "nullable": True,
    }

    def __init__(self, api_config_file: Path):
        super().__init__(api_config_file)

        self._arg_parser.add_argument(
            "input_file",
            location="files",
            type=FileStorage,
            required=False,
            help="Markdown resume file (or Word file for /convert/markdown)",
        )
        self._arg_parser.add_argument(
            "config_options",
            type=str,
            location=("form", "args"),
            required=False,
            help="JSON string with configuration overrides",
        )
        self._arg_parser.add_argument(
            "ats",
            type=inputs.boolean,
            location="args",
            required=False,
            default=False,
            help="Highlight ATS keywords before converting",
        )

    @property
    def response_model(self):
        return self._api.model(
            "Response",
            {
                "success": fields.Boolean(
                    description="Whether the operation was successful"
                ),
                "message": fields.String(description="Status message"),
            },
        )

    def error_response(
        self, code: int, error: object, message: str = None
    ) -> tuple[dict[str, Any], int]:
        """Return a JSON error response

        Args:
            code (int): HTTP status code
            error: The error to report
            message (str): Optional context prepended to the error

        Returns:
            tuple: JSON response with error message and status code
        """
        msg = f"{message}: {str(error)}" if message else str(error)
        self._app.logger.error(msg)
        return {
            "success": False,
            "message": msg,
        }, code

    def _load_config(self, args: dict) -> ConfigLoader:
        """Load the default configuration merged with request overrides

        Raises:
            ValueError: If config_options is not valid JSON
        """
        config_loader = ConfigLoader()
        if args.get("config_options"):
            try:
                overrides = json.loads(args["config_options"])
            except json.JSONDecodeError as e:
                raise ValueError(
                    f"Invalid JSON in config_options parameter: {e}"
                ) from e

            self._app.logger.info(f"Merging custom configuration: {overrides}")
            config_loader.update(overrides)
        return config_loader

    def _markdown_input(
        self, args: dict, request_body: str | None
    ) -> tuple[Path, str]:
        """Pick the markdown source from the upload or the request body

        Returns:
            tuple: (input filename, markdown text)

        Raises:
            ValueError: If neither an upload nor a body was sent
        """
        input_file = args.get("input_file")
        prefer_file = self._api_config.input.get("prefer_file", True)
        use_file_input = input_file is not None and (prefer_file or not request_body)

        self._app.logger.info(f"Using file input: {use_file_input}")

        if use_file_input:
            content = input_file.read().decode("utf-8", errors="replace")
            return Path(input_file.filename or "resume.md").with_suffix(".md"), content

        if not request_body:
            raise ValueError(
                "Either input_file or request body must be provided"
            )
        return Path(uuid.uuid4().hex).with_suffix(".md"), request_body

    def convert(
        self, output_format: str, request_body: str | None = None
    ) -> Response | tuple[dict[str, Any], int]:
        """Convert markdown to a Word or PDF file download

        Args:
            output_format (str): 'docx' or 'pdf'
            request_body (str): Raw markdown content from the request body

        Returns:
            Response: The generated file, or a JSON error
        """
        try:
            args = self._arg_parser.parse_args()
            config_loader = self._load_config(args)
            input_filename, markdown_text = self._markdown_input(args, request_body)

            with tempfile.TemporaryDirectory() as temp_dir:
                input_path = Path(temp_dir) / input_filename.name
                input_path.write_text(markdown_text, encoding="utf-8")

                written = publish(
                    input_path,
                    [output_format],
                    optimize=args.get("ats", False),
                    config_loader=config_loader,
                )
                output_file = written[0]
                payload = io.BytesIO(output_file.read_bytes())

            self._app.logger.info(f"Successfully created: {output_file.name}")
            return send_file(
                payload,
                as_attachment=True,
                download_name=output_file.name,
                mimetype=self._api_config.mimetypes[output_format][0],
            )
        except ValueError as e:
            return self.error_response(400, e, "Value error")
        except FileNotFoundError as e:
            return self.error_response(404, e, "File not found")
        except Exception as e:
            return self.error_response(500, e, "Error")

    def extract_markdown(self) -> Response | tuple[dict[str, Any], int]:
        """Convert an uploaded Word document to markdown

        Returns:
            Response: Markdown text, or a JSON error
        """
        try:
            args = self._arg_parser.parse_args()
            input_file = args.get("input_file")
            if input_file is None:
                raise ValueError("input_file must be provided")

            filename = Path(input_file.filename or "")
            if filename.suffix.lower() != f".{DOCX_EXTENSION}":
                raise ValueError(
                    f"Invalid file extension: .{DOCX_EXTENSION} is expected"
                )

            markdown_text = docx_to_markdown(io.BytesIO(input_file.read()))
            if args.get("ats", False):
                markdown_text = optimize_markdown(
                    markdown_text, self._load_config(args)
                )

            return Response(
                markdown_text,
                mimetype=self._api_config.mimetypes[MD_EXTENSION][0],
            )
        except (ValueError, PackageNotFoundError, BadZipFile) as e:
            return self.error_response(400, e, "Value error")
        except Exception as e:
            return self.error_response(500, e, "Error")

    def optimize(self, request_body: str | None) -> Response | tuple[dict, int]:
        """Highlight ATS keywords in markdown

        Returns:
            Response: Optimized markdown, or a JSON error
        """
        try:
            args = self._arg_parser.parse_args()
            config_loader = self._load_config(args)
            _, markdown_text = self._markdown_input(args, request_body)
            return Response(
                optimize_markdown(markdown_text, config_loader),
                mimetype=self._api_config.mimetypes[MD_EXTENSION][0],
            )
        except ValueError as e:
            return self.error_response(400, e, "Value error")
        except Exception as e:
            return self.error_response(500, e, "Error")


app = App(SCRIPT_DIR / API_CONFIG_FILE)


def _error_responses(func):
    """Document the shared JSON error responses on a resource method"""
    for code, description in (
        (400, "Bad Request"),
        (404, "File Not Found"),
        (500, "Server Error"),
    ):
        func = app.ns.response(
            code,
            description,
            app.response_model,
            produces=app.api_config.mimetypes.get("error"),
        )(func)
    return func


@app.ns.route("/docx", methods=["POST"])
class ConvertDocxResource(Resource):
    @app.ns.doc(
        "convert_markdown_to_docx",
        consumes=["text/plain", "multipart/form-data"],
    )
    @app.ns.expect(app.arg_parser)
    @app.ns.response(200, "Success - Returns DOCX file download")
    @_error_responses
    @app.ns.param(
        "payload",
        "Raw markdown content",
        _in="body",
        required=False,
        schema=App.TEXT_SCHEMA,
    )
    def post(self):
        """Convert markdown resume to DOCX

        You can provide the markdown content either:
        - As a file upload (input_file)
        - Directly in the request body (Content-Type: text/plain)
        """
        content = request.get_data(as_text=True)
        return app.convert(output_format=DOCX_EXTENSION, request_body=content)


@app.ns.route("/pdf", methods=["POST"])
class ConvertPdfResource(Resource):
    @app.ns.doc(
        "convert_markdown_to_pdf",
        consumes=["text/plain", "multipart/form-data"],
    )
    @app.ns.expect(app.arg_parser)
    @app.ns.response(200, "Success - Returns PDF file download")
    @_error_responses
    @app.ns.param(
        "payload",
        "Raw markdown content",
        _in="body",
        required=False,
        schema=App.TEXT_SCHEMA,
    )
    def post(self):
        """Convert markdown resume to PDF

        You can provide the markdown content either:
        - As a file upload (input_file)
        - Directly in the request body (Content-Type: text/plain)
        """
        content = request.get_data(as_text=True)
        return app.convert(output_format=PDF_EXTENSION, request_body=content)


@app.ns.route("/markdown", methods=["POST"])
class ConvertMarkdownResource(Resource):
    @app.ns.doc(
        "convert_docx_to_markdown",
        consumes=["multipart/form-data"],
    )
    @app.ns.expect(app.arg_parser)
    @app.ns.response(200, "Success - Returns markdown text")
    @_error_responses
    def post(self):
        """Convert a Word resume (input_file upload) to markdown"""
        return app.extract_markdown()


@app.ns.route("/optimize", methods=["POST"])
class OptimizeResource(Resource):
    @app.ns.doc(
        "optimize_markdown",
        consumes=["text/plain", "multipart/form-data"],
    )
    @app.ns.expect(app.arg_parser)
    @app.ns.response(200, "Success - Returns optimized markdown text")
    @_error_responses
    @app.ns.param(
        "payload",
        "Raw markdown content",
        _in="body",
        required=False,
        schema=App.TEXT_SCHEMA,
    )
    def post(self):
        """Highlight ATS keywords in a markdown resume and prepend a summary"""
        content = request.get_data(as_text=True)
        return app.optimize(request_body=content)


# Export the Flask application object, this is what serverless-wsgi needs
application = app.app


if __name__ == "__main__":
    program_description = """
Publish ATS API
--------------------------------
Converts resumes between Word, Markdown and PDF and optimizes them for
Applicant Tracking Systems.
"""

    epilog_text = """
Example usage:
# Start the API server
python -m publish_ats.api --debug

# Convert a markdown resume to DOCX with ATS highlights
curl -X POST "http://localhost:3000/convert/docx?ats=true" \\
-H "Content-Type: multipart/form-data" \\
-F "input_file=@resume.md"
"""

    app.run(program_description, epilog_text)
