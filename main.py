from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from core.config_loader import settings
from core.logging_config import configure_logging

from series.router import series_router
from occurrence.router import occurrence_router
from availability.router import availability_router
from blackout.router import blackout_router
from schedulingconfig.router import scheduling_config_router
import models_bootstrap

configure_logging()

openapi_tags = [
    {
        "name": "Series",
        "description": "Recurring class series, generation and conflict preview",
    },
    {
        "name": "Health Checks",
        "description": "Application health checks",
    }
]

app = FastAPI(title="classplan", openapi_tags=openapi_tags)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip("/") for origin in settings.cors_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(series_router, prefix="/api")
app.include_router(occurrence_router, prefix="/api")
app.include_router(availability_router, prefix="/api")
app.include_router(blackout_router, prefix="/api")
app.include_router(scheduling_config_router, prefix="/api")


@app.get("/health", tags=['Health Checks'])
def read_root():
    return {"health": "true"}
