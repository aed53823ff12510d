"""Main FastAPI application"""
import os
import logging
import logging.config
from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from routes import router as api_router, envelope, ALLOWED_METHODS
from services.expenses_service import ExpenseStore, MAX_BODY_SIZE
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

# Load environment variables from a .env file in the working directory or its parents
load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
RELOAD = os.getenv("RELOAD", "false").lower() == "true"

EXPENSES_ENDPOINT_PATH = "/api/expenses"

# --- Unified Logging Configuration with Rich ---
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            # RichHandler adds its own timestamp and level columns
            "format": "%(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "class": "rich.logging.RichHandler",
            "formatter": "default",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_time": True,
            "show_path": False,
            "log_time_format": "%Y-%m-%d %H:%M:%S",
            "markup": False,
        },
    },
    "loggers": {
        "uvicorn": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "": {  # Root logger for our application
            "handlers": ["default"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

logging.config.dictConfig(LOGGING_CONFIG)

logger = logging.getLogger(__name__)

# Application state holding the per-process expense store
app_state = {}

# --- Middleware for CORS headers and the body size limit ---
class ExpenseAPIMiddleware(BaseHTTPMiddleware):
    """
    Adds the CORS headers to every response and rejects bodies whose declared
    Content-Length is over MAX_BODY_SIZE before they are read. Chunked bodies
    without a Content-Length are capped while streaming in the service layer.
    """
    async def dispatch(self, request: Request, call_next):
        response = None
        if request.url.path == EXPENSES_ENDPOINT_PATH and request.method == "POST":
            content_length_header = request.headers.get("content-length")
            if content_length_header:
                try:
                    content_length = int(content_length_header)
                except ValueError:
                    logger.warning("Request rejected: Invalid Content-Length header.")
                    response = envelope(400, success=False, error="Invalid Content-Length header")
                else:
                    if content_length > MAX_BODY_SIZE:
                        logger.warning(f"Request rejected: body size {content_length} exceeds limit {MAX_BODY_SIZE}.")
                        response = envelope(500, success=False, error="Server error", details="Request body too large")

        if response is None:
            response = await call_next(request)

        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: a fresh, empty store per process
    app_state["expense_store"] = ExpenseStore()
    logger.info(f"Expense store initialised (in-memory, per process). Log level: {LOG_LEVEL}")

    yield  # Application runs here

    # Shutdown: the in-memory store is discarded with the process
    store = app_state.pop("expense_store", None)
    if store is not None:
        logger.info(f"Shutting down; discarding {len(store)} in-memory expenses.")

app = FastAPI(
    title="Expense Ledger API",
    description="Records and lists expenses in process memory.",
    version="0.1.0",
    lifespan=lifespan
)

@app.exception_handler(StarletteHTTPException)
async def http_exception_envelope_handler(request: Request, exc: StarletteHTTPException):
    """Renders every HTTP error, including Starlette's own 404/405, as a JSON envelope."""
    if exc.status_code == 405:
        logger.warning(f"{request.method} {request.url.path} rejected: method not allowed.")
        fields = {"error": "Method not allowed"}
    elif isinstance(exc.detail, dict):
        fields = exc.detail
    else:
        fields = {"error": str(exc.detail)}
    response = envelope(exc.status_code, success=False, **fields)
    if exc.headers:
        response.headers.update(exc.headers)
    if exc.status_code == 405:
        # Starlette fills Allow from whichever route matched the path first
        response.headers["Allow"] = ALLOWED_METHODS
    return response

app.add_middleware(ExpenseAPIMiddleware)

app.include_router(
    api_router,
    prefix="/api",
    tags=["api"],
)

# Make app state accessible to the routes
@app.middleware("http")
async def add_app_state_to_request(request: Request, call_next):
    """Adds the expense store to the request state."""
    request.state.expense_store = app_state.get("expense_store")
    response = await call_next(request)
    return response

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=HOST,
        port=PORT,
        reload=RELOAD,
        log_config=LOGGING_CONFIG,
    )
