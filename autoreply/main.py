"""
Email Auto-Reply Service
FastAPI application whose lifespan runs the mailbox polling loop
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from pydantic import BaseModel, ValidationError

from .config import Settings
from .logging_config import log_startup_banner, setup_logging
from .models import CycleReport
from .processor import AutoReplyProcessor
from .time_window import now_in_timezone, within_active_hours

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Global state
settings: Optional[Settings] = None
processor: Optional[AutoReplyProcessor] = None
polling_task: Optional[asyncio.Task] = None


async def poll_mailbox(processor: AutoReplyProcessor, interval: int):
    """
    Run a cycle immediately, then one every `interval` seconds.

    The delay starts only after the previous cycle finished, so cycles never
    overlap.
    """
    logger.info(f"Starting mailbox polling loop (interval: {interval}s)")

    while True:
        try:
            await asyncio.to_thread(processor.run_cycle)
        except Exception as e:
            logger.error(f"Error during polling cycle: {e}", exc_info=True)

        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown"""
    global settings, processor, polling_task

    # Startup
    try:
        settings = Settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Invalid configuration: {e}")
        raise RuntimeError("Missing or invalid mailbox configuration") from e

    log = setup_logging(settings)
    log_startup_banner(settings, log)

    processor = AutoReplyProcessor(settings)
    polling_task = asyncio.create_task(poll_mailbox(processor, settings.check_interval))

    yield

    # Shutdown
    logger.info("Shutting down Email Auto-Reply Service")
    if polling_task:
        polling_task.cancel()
        try:
            await polling_task
        except asyncio.CancelledError:
            pass


# Create FastAPI app
app = FastAPI(
    title="Email Auto-Reply Service",
    description="Acknowledges inbound email outside office hours",
    version="1.0.0",
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    service: str = "email-auto-reply"
    mode: Optional[str] = None
    active_now: Optional[bool] = None
    check_interval: Optional[int] = None
    last_cycle: Optional[CycleReport] = None


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    if settings is None:
        return HealthResponse(status="starting")

    return HealthResponse(
        status="healthy",
        mode="DEBUG" if settings.debug_mode else "PRODUCTION",
        active_now=within_active_hours(now_in_timezone(settings.timezone), settings),
        check_interval=settings.check_interval,
        last_cycle=processor.last_report if processor else None,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("SERVICE_PORT", "8000")))
