from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rentalhub.api.health import router as health_router
from rentalhub.api.routes_availability import router as availability_router
from rentalhub.api.routes_reservations import router as reservations_router
from rentalhub.config import settings
from rentalhub.db import SessionLocal, init_db
from rentalhub.services.reservation_service import arbiter_for_session
from rentalhub.utils.log import get_logger

log = get_logger("app")


def expire_job():
    db = SessionLocal()
    try:
        arbiter_for_session(db).expire_stale()
    except Exception:
        log.exception("Expiry sweep failed")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    scheduler = None
    if settings.ENABLE_EXPIRY_SWEEP:
        # quotation holds lapse on a timer so they don't lock stock forever
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            expire_job,
            "interval",
            seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
            id="expire_reservations",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        log.info("Expiry sweep scheduled every %ss", settings.EXPIRY_SWEEP_INTERVAL_SECONDS)

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


app = FastAPI(title="RentalHub - Reservations", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(reservations_router, tags=["reservations"])

app.include_router(availability_router, tags=["availability"])
