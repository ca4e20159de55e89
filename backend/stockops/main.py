import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from stockops.core.config import settings
from stockops.core.exceptions import StockOpsError
from stockops.core.init_db import init_db
from stockops.api import (
    auth,
    catalog,
    config,
    mappings,
    materials,
    orders,
    purchase_orders,
    stock_ledger,
    suppliers,
)
import stockops.models  # Implicitly registers models

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="StockOps Inventory API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StockOpsError)
async def stockops_error_handler(request: Request, exc: StockOpsError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.on_event("startup")
async def startup():
    await init_db()
    logger.info("Database initialized")


app.include_router(auth.router)
app.include_router(config.router)
app.include_router(materials.router)
app.include_router(mappings.router)
app.include_router(stock_ledger.router)
app.include_router(orders.router)
app.include_router(catalog.router)
app.include_router(suppliers.router)
app.include_router(purchase_orders.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
