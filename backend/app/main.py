"""
Clinic Billing Backend.

ARCHITECTURE:
- Billing store: bills, bill items, expenses
- Inventory store: drug catalog and stock levels
- FastAPI: bill lifecycle (compose → pending → confirm) and reports

CONSISTENCY MODEL:
- The two stores never share a transaction
- Stock is reserved before bill rows are written; failed writes release
  the reservations they made (see app.services.compensation)
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import bills, stock
from app.core.config import settings
from app.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: create billing and inventory tables if missing.
    """
    logger.info("Initializing databases...")
    init_db()
    logger.info("Databases initialized")
    yield


app = FastAPI(
    title="Clinic Billing API",
    description="Bills, pending items and stock reservations across the billing and inventory stores.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin"],
    max_age=600,  # Cache preflight for 10 minutes
)


@app.exception_handler(StarletteHTTPException)
async def http_error_body(request: Request, exc: StarletteHTTPException):
    """Render errors as {"error": ..., "message": ...} instead of {"detail": ...}."""
    if isinstance(exc.detail, dict):
        body = exc.detail
    else:
        body = {"error": str(exc.detail), "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_shape_error_body(request: Request, exc: RequestValidationError):
    """Malformed bodies, query strings and path params are 400 with the same error shape."""
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "message": "; ".join(problems)},
    )


app.include_router(bills.router, prefix="/bills", tags=["bills"])
app.include_router(stock.router, prefix="/stock", tags=["stock"])


@app.get("/health")
def health():
    return {"status": "ok"}
