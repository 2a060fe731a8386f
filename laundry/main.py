import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from laundry.api.catalog import router as catalog_router
from laundry.api.customers import router as customers_router
from laundry.api.orders import router as orders_router
from laundry.api.payments import router as payments_router
from laundry.config import settings
from laundry.errors import (
    ConflictError,
    LaundryError,
    NotFoundError,
    OrderValidationError,
    PersistenceError,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFoundError: 404,
    OrderValidationError: 422,
    ConflictError: 409,
    PersistenceError: 500,
}

app = FastAPI(
    title="Laundry Management API",
    version="0.1.0",
)


@app.exception_handler(LaundryError)
async def laundry_error_handler(request: Request, exc: LaundryError) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(customers_router)
app.include_router(catalog_router)
app.include_router(orders_router)
app.include_router(payments_router)
