import logging

from fastapi import FastAPI

from panel.api.v1.router import router as v1_router
from panel.core.config import settings
from panel.core.telemetry import setup_telemetry

logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Shop Panel API", version="0.1.0")

setup_telemetry(app)
app.include_router(v1_router)
