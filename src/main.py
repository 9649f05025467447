from contextlib import asynccontextmanager

from fastapi import FastAPI

from .logging_config import setup_logging
from .routers.users import router as users_router
from .routers.expenses import router as expenses_router
from .routers.recurring import router as recurring_router
from .services.scheduler import RecurringExpenseScheduler, RECURRING_JOB_ENABLED


def create_app(scheduler: RecurringExpenseScheduler = None, start_scheduler: bool = RECURRING_JOB_ENABLED) -> FastAPI:
    """Build the API; the recurring job runs alongside it unless disabled."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler:
            app.state.recurring_scheduler.start()
        yield
        await app.state.recurring_scheduler.stop()

    app = FastAPI(title="Budget AI", lifespan=lifespan)
    app.state.recurring_scheduler = scheduler or RecurringExpenseScheduler()

    app.include_router(users_router)
    app.include_router(expenses_router)
    app.include_router(recurring_router)

    @app.get("/")
    def read_root():
        return "Server is running."

    return app


setup_logging()
app = create_app()
