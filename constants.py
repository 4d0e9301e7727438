import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_DB = int(os.getenv("REDIS_DB", 0))

# 0 keeps room metadata and stroke logs until explicitly removed
ROOM_TTL_SECONDS = int(os.getenv("ROOM_TTL_SECONDS", 0))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Seconds to wait for queued stroke writes when the server stops
SHUTDOWN_FLUSH_TIMEOUT = float(os.getenv("SHUTDOWN_FLUSH_TIMEOUT", 5.0))

# Events queued for one client before it is treated as stalled and dropped
OUTBOX_MAX = int(os.getenv("OUTBOX_MAX", 1000))

# Keepalive pings let uvicorn notice sockets that vanished without a close frame
WS_PING_INTERVAL = float(os.getenv("WS_PING_INTERVAL", 20.0))
WS_PING_TIMEOUT = float(os.getenv("WS_PING_TIMEOUT", 20.0))
