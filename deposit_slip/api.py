"""
FastAPI REST API Module

Deposit slip application factory: the submission endpoint, the rule
manifest consumed by the browser client, a health check and the static
client assets. The document store is acquired once when the application
starts and closed when it shuts down.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional
from fastapi import FastAPI, Depends, Request, status
from fastapi.responses import JSONResponse
import uvicorn

from . import __version__
from .assets import router as assets_router
from .config import DepositSlipConfig, get_config
from .logging_config import setup_logging, get_logger, log_action
from .schemas import DepositResponse, ErrorResponse
from .storage import AsyncDocumentStore, StorageError, create_document_store
from .submission import DepositSubmissionHandler
from .validation import DepositValidator, DepositValidationError, rule_manifest


DEPOSIT_RECEIVED = "Deposit received"
DEPOSIT_SAVE_FAILED = "Failed to save deposit"

logger = get_logger("deposit_slip.api")


async def read_submitted_form(request: Request) -> Dict[str, str]:
    """Read a form-urlencoded or JSON object body into a field mapping"""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise DepositValidationError("Request body must be a JSON object.")
        if not isinstance(payload, dict):
            raise DepositValidationError("Request body must be a JSON object.")
        return {
            key: "" if value is None else str(value)
            for key, value in payload.items()
        }

    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def get_submission_handler(request: Request) -> DepositSubmissionHandler:
    return request.app.state.submission_handler


def create_app(config: Optional[DepositSlipConfig] = None,
               store: Optional[AsyncDocumentStore] = None,
               validator: Optional[DepositValidator] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Service configuration, defaults to the environment configuration
        store: Document store to use instead of the configured backend
        validator: Validator to use instead of the default rule table
    """
    config = config or get_config()
    setup_logging(config.log_level, config.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        document_store = store or create_document_store(config)
        try:
            await document_store.initialize()
        except StorageError:
            log_action(
                logger, "critical", "Failed to connect to document store",
                action="startup", resource=f"storage:{document_store.backend_name}",
                exc_info=True
            )
            raise

        app.state.store = document_store
        app.state.submission_handler = DepositSubmissionHandler(document_store, validator)
        log_action(
            logger, "info", "Connected to document store",
            action="startup", resource=f"storage:{document_store.backend_name}"
        )

        try:
            yield
        finally:
            await document_store.close()
            log_action(logger, "info", "Document store closed", action="shutdown")

    app = FastAPI(
        title="Deposit Slip API",
        description="Bank deposit slip submission and validation",
        version=__version__,
        lifespan=lifespan
    )
    app.state.static_dir = Path(config.static_dir)

    @app.exception_handler(DepositValidationError)
    async def handle_validation_error(request: Request, exc: DepositValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(message=exc.message).model_dump()
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        # Driver detail stays in the log
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(message=DEPOSIT_SAVE_FAILED).model_dump()
        )

    @app.post(
        "/api/deposit",
        status_code=status.HTTP_201_CREATED,
        response_model=DepositResponse,
        response_model_exclude_none=True
    )
    async def submit_deposit(
        request: Request,
        handler: DepositSubmissionHandler = Depends(get_submission_handler)
    ):
        """Validate a deposit slip and store it"""
        form = await read_submitted_form(request)
        record = await handler.submit(form, correlation_id=request.headers.get("x-request-id"))
        return DepositResponse(message=DEPOSIT_RECEIVED, deposit=record)

    @app.get("/api/deposit/rules")
    async def get_deposit_rules(
        handler: DepositSubmissionHandler = Depends(get_submission_handler)
    ):
        """Rule table evaluated by the browser client before submitting"""
        return rule_manifest(handler.validator.rules)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        document_store = request.app.state.store
        reachable = await document_store.ping()
        return {
            "status": "healthy" if reachable else "degraded",
            "service": "deposit_slip",
            "version": __version__,
            "storage": document_store.backend_name
        }

    # Catch-all asset route goes last
    app.include_router(assets_router)

    return app


def run_server(config: Optional[DepositSlipConfig] = None):
    """Run the FastAPI server"""
    config = config or get_config()
    uvicorn.run(
        create_app(config),
        host=config.api_host,
        port=config.api_port,
        log_level=config.log_level.lower()
    )
