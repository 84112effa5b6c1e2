"""
FastAPI app for the group walk engine.

Thin HTTP layer over the use cases; the host application owns auth and persistence.
"""

from fastapi import FastAPI

from walkgroups.api.router import router
from walkgroups.application.config import settings
from walkgroups.application.logging_config import configure_logging

configure_logging(settings.log_level)

app = FastAPI(
    title="Group Walk Engine",
    description="Group formation, slot search and join/leave evaluation",
    version="1.0.0",
)

app.include_router(router, prefix="/v1")


@app.get("/")
def root():
    """Endpoint raíz"""
    return {"message": "Group Walk Engine", "status": "ok"}
