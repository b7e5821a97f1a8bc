"""Route registration for the DeskPilot API."""

from fastapi import FastAPI

from .chat import router as chat_router
from .realtime import router as realtime_router
from .schedules import router as schedules_router
from .status import router as status_router


def register_routes(app: FastAPI):
    app.include_router(status_router)
    app.include_router(chat_router)
    app.include_router(schedules_router)
    app.include_router(realtime_router)
