from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from habitual.core.config import settings
from habitual.core.errors import (
    HabitualException,
    habitual_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from habitual.core.logging import configure_logging
from habitual.db.base import get_db
from habitual.routers import confirmations as confirmations_router
from habitual.routers import habits as habits_router
from habitual.routers import reminders as reminders_router
from habitual.services.overdue_queue import OverdueQueueManager
from habitual.services.reminders import InMemoryReminderAdapter, ReminderAdapter


def create_app(
    overdue_queue: OverdueQueueManager | None = None,
    reminder_adapter: ReminderAdapter | None = None,
) -> FastAPI:
    """
    Composition root: one overdue queue and one reminder adapter per
    process, held on app.state and injected into the routers.
    """
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Habitual API",
        description=(
            "**Habit reminder scheduling engine**\n\n"
            "Tracks recurring habits, grows or shrinks each reminder interval from "
            "success / failure / later responses, and queues overdue habits for "
            "confirmation one at a time.\n\n"
            "All error responses follow the `{code, message, details}` envelope."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if overdue_queue is None:
        overdue_queue = OverdueQueueManager()
    if reminder_adapter is None:
        reminder_adapter = InMemoryReminderAdapter(permission_granted=settings.REMINDERS_ENABLED)
    app.state.overdue_queue = overdue_queue
    app.state.reminder_adapter = reminder_adapter

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers, most specific first
    app.add_exception_handler(HabitualException, habitual_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --- Routers ---
    app.include_router(habits_router.router)
    app.include_router(confirmations_router.router)
    app.include_router(reminders_router.router)

    @app.get("/health", tags=["health"], summary="Health check")
    def health(db: Session = Depends(get_db)):
        """
        Returns `{"status": "ok", "db": "ok"}` when both the API and the database
        are reachable. Returns HTTP 503 if the DB is down.
        """
        try:
            db.execute(text("SELECT 1"))
            db_status = "ok"
        except Exception:
            db_status = "unreachable"

        if db_status != "ok":
            return JSONResponse(
                status_code=503,
                content={"status": "error", "db": db_status},
            )
        return {"status": "ok", "db": "ok", "env": settings.APP_ENV}

    return app


app = create_app()
