"""
Scoped Token Azure Functions App

HTTP surface of the token core:

    POST /api/tokens/issue     issue a token for an owner
    POST /api/tokens/validate  validate-and-consume, returns a grant
    POST /api/tokens/revoke    owner revokes a token
    POST /api/tokens/access    validate-and-consume plus the bounded view
    POST /api/bookings         spend a booking grant on an appointment
    GET  /api/tokens           owner lists their tokens (?subjectId=...&requestedBy=...)

Run with: func start (store from DATABASE_URL, or DB_* environment variables when unset)
"""

import json

import azure.functions as func

from scoped_token_core.api.handlers import ApiResponse, TokenApi
from scoped_token_core.db.db_config import initialize_db
from scoped_token_core.utils.logger import configure_logging

app = func.FunctionApp()

logger = configure_logging("scoped_tokens")
initialize_db()
token_api = TokenApi()

CORRELATION_HEADER = "x-correlation-id"


def _to_http(response: ApiResponse) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(response.body),
        status_code=response.status_code,
        mimetype="application/json",
    )


@app.function_name(name="IssueToken")
@app.route(route="tokens/issue", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def issue_token(req: func.HttpRequest) -> func.HttpResponse:
    return _to_http(token_api.issue(req.get_body(), req.headers.get(CORRELATION_HEADER)))


@app.function_name(name="ValidateToken")
@app.route(route="tokens/validate", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def validate_token(req: func.HttpRequest) -> func.HttpResponse:
    return _to_http(token_api.validate(req.get_body(), req.headers.get(CORRELATION_HEADER)))


@app.function_name(name="RevokeToken")
@app.route(route="tokens/revoke", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def revoke_token(req: func.HttpRequest) -> func.HttpResponse:
    return _to_http(token_api.revoke(req.get_body(), req.headers.get(CORRELATION_HEADER)))


@app.function_name(name="AccessResource")
@app.route(route="tokens/access", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def access_resource(req: func.HttpRequest) -> func.HttpResponse:
    """Scanner endpoint: one call redeems the token and returns the view."""
    return _to_http(token_api.access(req.get_body(), req.headers.get(CORRELATION_HEADER)))


@app.function_name(name="BookAppointment")
@app.route(route="bookings", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def book_appointment(req: func.HttpRequest) -> func.HttpResponse:
    return _to_http(token_api.book(req.get_body(), req.headers.get(CORRELATION_HEADER)))


@app.function_name(name="ListTokens")
@app.route(route="tokens", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def list_tokens(req: func.HttpRequest) -> func.HttpResponse:
    return _to_http(token_api.list_tokens(dict(req.params), req.headers.get(CORRELATION_HEADER)))
