import uvicorn
import os
from logging_config import setup_logging

# Setup logging before uvicorn imports the app
log_level = os.getenv("LOG_LEVEL", "DEBUG")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)

from constants import WS_PING_INTERVAL, WS_PING_TIMEOUT, OUTBOX_MAX, SHUTDOWN_FLUSH_TIMEOUT
from logging_config import get_logger

logger = get_logger(__name__)


def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    reload = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")
    logger.info(f"Starting Collab Rooms server on {host}:{port}")
    logger.info(
        f"WebSocket keepalive every {WS_PING_INTERVAL}s (timeout {WS_PING_TIMEOUT}s), "
        f"outbox limit {OUTBOX_MAX} events, stroke flush on stop {SHUTDOWN_FLUSH_TIMEOUT}s"
    )
    # A silently dropped client only surfaces as a disconnect once a ping goes
    # unanswered; that disconnect is what removes it from its room.
    uvicorn.run(
        "app:app",
        host=host,
        port=port,
        reload=reload,
        ws_ping_interval=WS_PING_INTERVAL,
        ws_ping_timeout=WS_PING_TIMEOUT,
        timeout_graceful_shutdown=int(SHUTDOWN_FLUSH_TIMEOUT) + 1,
        log_config=None,
    )


if __name__ == "__main__":
    main()
