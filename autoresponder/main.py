"""
Vacation Responder - HTTP trigger surface
Hitting / authorizes the mailbox and starts the randomized triage loop
"""

import sys
import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from . import __version__
from .auth import CredentialProvider
from .composer import ReplyComposer, decode_raw_message
from .config import Config
from .errors import (
    ConfigurationError,
    CredentialsError,
    LabelNotFoundError,
    MailboxError,
    ResponderError,
    TickInProgressError,
)
from .models import ResponderStatus, TriageReport, TriggerResponse
from .responder import VacationResponder

logger = logging.getLogger(__name__)

# ==================== CONFIGURATION ====================
config = Config()

responder: Optional[VacationResponder] = None
server: Optional[uvicorn.Server] = None
fatal_errors: List[BaseException] = []


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


# ==================== FATAL ERRORS ====================
def report_fatal(exc: BaseException):
    """Record a process-level error and ask the HTTP server to exit"""
    logger.critical("Shutting down the server due to unhandled error: %s", exc, exc_info=exc)
    fatal_errors.append(exc)
    if server is not None:
        server.should_exit = True


def _loop_exception_handler(loop, context):
    exc = context.get("exception")
    if exc is not None and ("task" in context or "future" in context):
        report_fatal(exc)
    else:
        loop.default_exception_handler(context)


def _get_responder() -> VacationResponder:
    if responder is None:
        raise HTTPException(status_code=503, detail="Responder is not initialized")
    return responder


# ==================== FASTAPI APPLICATION ====================
app = FastAPI(
    title="Vacation Responder",
    description="Replies once to every unanswered Gmail message while you are away",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ==================== STARTUP ====================
@app.on_event("startup")
async def startup():
    """Validate configuration and credentials before serving the trigger"""
    global responder

    missing_configs = config.validate_required_configs()
    if missing_configs:
        raise ConfigurationError(f"Missing configurations: {', '.join(missing_configs)}")

    asyncio.get_running_loop().set_exception_handler(_loop_exception_handler)

    if responder is None:
        responder = VacationResponder(
            config,
            provider=CredentialProvider.from_config(config),
            on_fatal=report_fatal
        )
    await responder.authorize()
    logger.info("Vacation Responder ready, label %r", config.LABEL_NAME)


@app.on_event("shutdown")
async def shutdown():
    """Let the message in flight finish before exiting"""
    if responder is not None:
        await responder.shutdown()
    logger.info("Vacation Responder stopped")


# ==================== API ENDPOINTS ====================

@app.get("/", response_model=TriggerResponse)
async def trigger():
    """Authorize and start the responder; does not wait for any run"""
    current = _get_responder()
    try:
        return await current.trigger()
    except CredentialsError as e:
        report_fatal(e)
        raise HTTPException(status_code=500, detail=f"Authorization failed: {e}")


@app.post("/run", response_model=TriageReport)
async def run_now():
    """Run one triage pass immediately"""
    current = _get_responder()
    try:
        return await current.run_now()
    except TickInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CredentialsError as e:
        report_fatal(e)
        raise HTTPException(status_code=500, detail=f"Authorization failed: {e}")
    except (MailboxError, LabelNotFoundError) as e:
        # only label resolution lets mailbox errors out of a run
        report_fatal(e)
        raise HTTPException(status_code=500, detail=f"Label resolution failed: {e}")


@app.post("/stop")
async def stop():
    current = _get_responder()
    await current.shutdown()
    return {"status": "stopped", "timestamp": datetime.now().isoformat()}


@app.get("/status", response_model=ResponderStatus)
def get_status():
    return _get_responder().get_status()


# ==================== HEALTH CHECK ====================
@app.get("/health")
def health_check() -> Dict:
    """Health check endpoint"""
    return {
        "status": "healthy" if not fatal_errors else "failing",
        "timestamp": datetime.now().isoformat(),
        "responder_running": bool(responder and responder.get_status().is_running)
    }


# ==================== DEV ENDPOINTS ====================
if config.DEBUG:
    @app.post("/dev/preview-reply")
    def preview_reply(headers: Dict[str, str], message_id: str = "preview"):
        """Show the reply that would be sent for the given headers (dev only)"""
        composer = ReplyComposer(config.reply_body(), sender=config.REPLY_SENDER)
        try:
            raw = composer.encode(composer.compose(message_id, headers))
        except ResponderError as e:
            raise HTTPException(status_code=422, detail=str(e))
        decoded = decode_raw_message(raw)
        return {"raw": raw, "headers": dict(decoded.items()), "body": decoded.get_payload()}


# ==================== MAIN ====================
def run():
    """Console entry point: serve the trigger and exit non-zero on fatal errors"""
    global server
    configure_logging(config.LOG_LEVEL)

    missing_configs = config.validate_required_configs()
    if missing_configs:
        logger.error("Missing configurations: %s", ", ".join(missing_configs))
        sys.exit(1)

    logger.info("Starting Vacation Responder on http://%s:%d", config.HOST, config.PORT)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower()
    ))
    server.run()

    if fatal_errors or not server.started:
        sys.exit(1)


if __name__ == "__main__":
    run()
