"""
JSON error responses for the dashboard API.

Every error body has the shape ``{"error": <short title>, "message": <detail>}``.
"""
import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from scoring.payload import MalformedPayload, RoundAppendError
from .tournament_registry import ConcurrentUpdateError, CorruptTournamentInfo, TournamentNotFound
from .user_registry import DuplicateAccountError

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Request body is missing or has an invalid field (400)."""

    def __init__(self, error: str, message: str):
        self.error = error
        self.message = message
        super().__init__(message)


def error_response(error: str, message: str, status: int, **extra):
    return jsonify({'error': error, 'message': message, **extra}), status


def json_object_body() -> dict:
    """Return the request's JSON body, requiring an object when one is sent."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Invalid request body', 'request body must be a JSON object')
    return data


def register_error_handlers(app: Flask):

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return error_response(e.error, e.message, 400)

    @app.errorhandler(MalformedPayload)
    def handle_malformed_payload(e: MalformedPayload):
        return error_response('Invalid tournament info', str(e), 400)

    @app.errorhandler(RoundAppendError)
    def handle_round_append_error(e: RoundAppendError):
        return error_response('Invalid round', e.reason, 400, expected_round=e.expected_round)

    @app.errorhandler(TournamentNotFound)
    def handle_tournament_not_found(e: TournamentNotFound):
        return error_response('Tournament not found', str(e), 404)

    @app.errorhandler(ConcurrentUpdateError)
    def handle_concurrent_update(e: ConcurrentUpdateError):
        return error_response('Concurrent update', str(e), 409)

    @app.errorhandler(CorruptTournamentInfo)
    def handle_corrupt_tournament_info(e: CorruptTournamentInfo):
        return error_response('Corrupt tournament info', str(e), 409)

    @app.errorhandler(DuplicateAccountError)
    def handle_duplicate_account(e: DuplicateAccountError):
        return error_response('Account already exists', 'This account is already registered', 409)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        if e.code == 404:
            return error_response('Not Found', f'Route {request.path} not found', 404)
        return error_response(e.name, e.description, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        message = str(e) if app.debug else 'Something went wrong'
        return error_response('Internal Server Error', message, 500)
