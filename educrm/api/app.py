"""
HTTP application.

Every workflow is exposed as a POST handler. Services are injected through
``create_app`` so tests can pass an in-memory store, a scripted reasoning
backend and a recording mailer.

Error mapping:
    CRMError subclasses -> their status_code (400/401/403/404/409/502)
    request body validation -> 400
    anything else -> 500 with a sanitized body; details are logged only
"""

import os
import uuid
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from educrm.api.dependencies import IdentityResolver, header_identity
from educrm.api.routes import analytics, applications, engagement, leads, outreach, students
from educrm.models.config import SystemParams
from educrm.store.jsonl_store import open_jsonl_store
from educrm.store.repository import EntityStore
from educrm.utils.errors import CRMError
from educrm.utils.logger import configure_logging, get_logger
from educrm.utils.mailer import Mailer, SmtpMailer
from educrm.utils.reasoning import ReasoningClient

CORRELATION_HEADER = "X-Correlation-Id"
INTERNAL_ERROR = "Internal server error"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid.uuid4())


def _server_error(request: Request, message: str, exc: Exception, status_code: int = 500) -> JSONResponse:
    correlation_id = _correlation_id(request)
    logger = get_logger(correlation_id=correlation_id, phase="api", component="error_handler")
    logger.error(
        "Request failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=status_code, content={"error": message, "details": correlation_id})


def create_app(
    store: Optional[EntityStore] = None,
    reasoner: Optional[ReasoningClient] = None,
    params: Optional[SystemParams] = None,
    mailer: Optional[Mailer] = None,
    identity_resolver: Optional[IdentityResolver] = None,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        store: Entity store (default: JSONL files under $EDUCRM_DATA_DIR or ./data)
        reasoner: Reasoning client (default: Claude backend configured from params)
        params: System parameters (default: SystemParams.load())
        mailer: Email delivery (default: SmtpMailer from environment)
        identity_resolver: Maps a request to a CurrentUser (default: X-User-* headers)
    """
    load_dotenv()
    params = params or SystemParams.load()
    configure_logging(log_file=params.log_file, log_level=params.log_level)

    app = FastAPI(
        title="EduCRM Insights Engine",
        description="Analytics and AI workflows for an education-consulting CRM",
        version="1.0.0",
    )
    app.state.params = params
    app.state.store = store or open_jsonl_store(os.getenv("EDUCRM_DATA_DIR", "data"))
    app.state.reasoner = reasoner or ReasoningClient.from_params(params)
    app.state.mailer = mailer or SmtpMailer()
    app.state.identity_resolver = identity_resolver or header_identity

    @app.middleware("http")
    async def bind_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        logger = get_logger(correlation_id=correlation_id, phase="api", component="request")
        logger.debug("Request received", method=request.method, path=request.url.path)
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response

    @app.exception_handler(CRMError)
    async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
        if exc.status_code >= 500:
            return _server_error(request, exc.public_message, exc, exc.status_code)
        logger = get_logger(correlation_id=_correlation_id(request), phase="api", component="error_handler")
        logger.warning(
            "Request rejected",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return _server_error(request, INTERNAL_ERROR, exc)

    for module in (analytics, students, leads, outreach, applications, engagement):
        app.include_router(module.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app
