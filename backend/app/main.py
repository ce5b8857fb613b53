"""
GST Billing Backend.

ARCHITECTURE:
- FastAPI routers: thin HTTP layer, no business rules
- services/: tax calculator, invoice tax aggregator, balance ledger
- BillingRepository: the only code that talks to the database
- SQLite by default, any SQLAlchemy URL via DATABASE_URL

Balances (invoice amount due, unadjusted payment amounts) are always
re-derived from adjustment rows, never patched incrementally.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import invoices, payments
from app.core.config import settings
from app.core.exceptions import BillingError, BusinessError
from app.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized")
    yield


app = FastAPI(
    title="GST Billing API",
    description="Invoice GST computation, invoice tax rows and payment adjustments.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
    ],
    max_age=600,
)


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    http_error = BusinessError.from_billing_error(exc)
    return JSONResponse(status_code=http_error.status_code, content={"detail": http_error.detail})


app.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])


@app.get("/health")
def health():
    return {"status": "ok"}
