from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from flask import Flask, request, jsonify, current_app, g, has_app_context
import uuid
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException as WerkzeugHTTPException
from slotpi_be.exceptions import AppException
from slotpi_be.error_codes import ErrorCodes
import logging
from pythonjsonlogger import jsonlogger
from marshmallow import ValidationError
from http import HTTPStatus
import click

from .models import db
from .config import Config
from .services.payment_service import upsert_user_from_profile
from .routes.game import game_bp
from .routes.balance import balance_bp
from .routes.payments import payments_bp


# Custom Logging Filter for Request ID
class RequestIdFilter(logging.Filter):
    def filter(self, record):
        record.request_id = g.get('request_id', 'N/A') if has_app_context() else 'N/A'
        return True


def _error_body(request_id, error_code, status_message, details=None, action_button=None):
    return {
        'request_id': request_id,
        'status': False,
        'error_code': error_code,
        'status_message': status_message,
        'details': details or {},
        'action_button': action_button,
    }


def configure_logging(app):
    if not app.debug:
        logger = app.logger
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(request_id)s %(module)s %(funcName)s %(lineno)d %(message)s'
        )
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        if logger.hasHandlers():
            logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    elif not app.logger.handlers:
        logging.basicConfig(level=logging.DEBUG)


def register_error_handlers(app):

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        request_id = g.get('request_id', 'N/A')
        current_app.logger.warning(
            f"Request ID: {request_id} - Validation error: {e.messages} - Error Code: {ErrorCodes.VALIDATION_ERROR}"
        )
        return jsonify(_error_body(request_id, ErrorCodes.VALIDATION_ERROR, 'Input validation failed.',
                                   {'errors': e.messages})), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        request_id = g.get('request_id', 'N/A')
        db.session.rollback()
        current_app.logger.error(
            f"Request ID: {request_id} - Database error. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return jsonify(_error_body(request_id, ErrorCodes.INTERNAL_SERVER_ERROR,
                                   'A database error occurred. Please try again later.')), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(WerkzeugHTTPException)
    def handle_werkzeug_http_exception(e):
        request_id = g.get('request_id', 'N/A')
        error_code = ErrorCodes.GENERIC_ERROR
        if e.code == 404:
            error_code = ErrorCodes.NOT_FOUND
        elif e.code == 405:
            error_code = ErrorCodes.METHOD_NOT_ALLOWED
        elif e.code >= 500:
            error_code = ErrorCodes.INTERNAL_SERVER_ERROR

        current_app.logger.warning(
            f"Request ID: {request_id} - Werkzeug HTTPException: {e.code} - {e.name}: {e.description} - Error Code: {error_code}"
        )
        response = e.get_response()
        response.data = jsonify(_error_body(request_id, error_code, e.name, {'description': e.description})).data
        response.content_type = "application/json"
        return response

    @app.errorhandler(404)
    def handle_flask_not_found(e):
        request_id = g.get('request_id', 'N/A')
        current_app.logger.warning(
            f"Request ID: {request_id} - HTTP 404 Not Found: {request.url} - Error Code: {ErrorCodes.NOT_FOUND}"
        )
        return jsonify(_error_body(request_id, ErrorCodes.NOT_FOUND, 'The requested resource was not found.',
                                   {'path': request.path})), HTTPStatus.NOT_FOUND

    # --- Global Error Handler (catch-all) ---
    @app.errorhandler(Exception)
    def handle_global_exception(e):
        request_id = g.get('request_id', 'N/A')

        if isinstance(e, AppException):
            log = current_app.logger.error if e.status_code >= 500 else current_app.logger.warning
            log(
                f"Request ID: {request_id} - AppException: {e.error_code} - {e.status_message} - Details: {e.details}",
                exc_info=e.status_code >= 500
            )
            return jsonify(_error_body(request_id, e.error_code, e.status_message, e.details,
                                       e.action_button)), e.status_code

        if isinstance(e, WerkzeugHTTPException):
            return handle_werkzeug_http_exception(e)

        current_app.logger.critical(
            f"Request ID: {request_id} - Unhandled Critical Exception. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return jsonify(_error_body(request_id, ErrorCodes.INTERNAL_SERVER_ERROR,
                                   'An unexpected internal server error occurred. Please try again later.')), HTTPStatus.INTERNAL_SERVER_ERROR


def register_cli_commands(app):

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command('create-user')
    @click.option('-u', '--pi-uid', required=True, help='Pi Network user uid')
    @click.option('-n', '--username', default=None, help='Display name')
    def create_user_command(pi_uid, username):
        """Create (or refresh) a local user for a Pi uid."""
        user = upsert_user_from_profile(pi_uid, username)
        click.echo(f"User {user.id} ready for Pi uid '{pi_uid}'.")


def create_app(config_class=Config):
    """Application factory."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    @app.before_request
    def assign_request_id():
        g.request_id = str(uuid.uuid4())

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Request-ID'] = g.get('request_id', 'N/A')
        return response

    db.init_app(app)

    register_error_handlers(app)
    register_cli_commands(app)

    app.register_blueprint(game_bp)
    app.register_blueprint(balance_bp)
    app.register_blueprint(payments_bp)

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000, debug=app.debug)
