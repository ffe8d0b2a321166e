import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.database import plaza_engine, Base
from shared.exception_handler import setup_exception_handlers

from . import models  # registers every table on Base
from .router.tenants import businesses_router
from .router.financials import (
    bills_router, advances_router, partial_payments_router, payments_router)
from .router.energy import meter_readings_router
from .router.scheduler import scheduler_router
from .router.system import activity_logs_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(title="Plaza Billing Service API")

# Create all tables
Base.metadata.create_all(bind=plaza_engine)

# Allow requests from your React app
origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8003"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Include routers
app.include_router(businesses_router.router)
app.include_router(bills_router.router)
app.include_router(advances_router.router)
app.include_router(partial_payments_router.router)
app.include_router(payments_router.router)
app.include_router(meter_readings_router.router)
app.include_router(scheduler_router.router)
app.include_router(activity_logs_router.router)


@app.get("/")
def root():
    return {"message": "Plaza Billing Service API is running"}
