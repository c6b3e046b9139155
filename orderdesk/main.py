import logging

from fastapi import FastAPI
from orderdesk.database import create_db_and_tables
from orderdesk.config import settings
from orderdesk.routes import (
    health,
    invoices,
    orders,
)

from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Orderdesk API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "order_endpoints": [
            "/orders", "/orders/filter-options", "/orders/past-by-phones",
            "/orders/{order_id}", "/orders/{order_id}/events",
            "/orders/{order_id}/timeline",
            "/orders/{order_id}/actions/{action}",
            "/orders/{order_id}/verification",
            "/orders/{order_id}/refund", "/orders/{order_id}/return",
            "/orders/{order_id}/exchange", "/orders/{order_id}/address",
        ],
        "invoice_endpoints": [
            "/invoices", "/invoices/{order_id}/download"
        ],
        "health": ["/health/check"],
    }
