"""
FastAPI application for real-time room synchronization.
Clients connect over WebSocket to a named room; the room's kind decides what
state the server keeps for it and how messages are relayed.
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from room_manager import room_manager
from room_models import RoomInfo

# ============ ENVIRONMENT CONFIG ============
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()]
HTTP_RATE_LIMIT = os.getenv("HTTP_RATE_LIMIT", "60/minute")
MAX_MESSAGE_BYTES = int(os.getenv("MAX_MESSAGE_BYTES", str(2 * 1024 * 1024)))

# Configure logging (handlers are installed by identity.py on import)
logging.getLogger().setLevel(logging.DEBUG if DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

room_manager.max_message_bytes = MAX_MESSAGE_BYTES

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)


# ============ LIFESPAN CONTEXT ============
@asynccontextmanager
async def lifespan(app):
    """Log startup and shutdown. Room state is in memory and dies with the process."""
    logger.info("Room relay started successfully")
    yield
    logger.info(f"Room relay shutting down, dropping {len(room_manager.rooms)} room(s)")


app = FastAPI(title="Room Relay", docs_url=None, redoc_url=None, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS + (["http://localhost:1999", "http://127.0.0.1:1999"] if DEBUG else []),
    allow_credentials="*" not in ALLOWED_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # Prevent content type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # HSTS - enforce HTTPS in production
        if not DEBUG:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

app.add_middleware(SecurityHeadersMiddleware)

# Trusted Host Middleware - prevent host header attacks
app.add_middleware(TrustedHostMiddleware, allowed_hosts=ALLOWED_HOSTS)


@app.get("/health")
async def health():
    return JSONResponse({"status": "ok", "rooms": len(room_manager.rooms)})


# ============ ROOM ENDPOINTS ============

@app.api_route("/parties/main/{room_id}", methods=["GET", "POST"], response_class=PlainTextResponse)
@limiter.limit(HTTP_RATE_LIMIT)
async def room_request(request: Request, room_id: str):
    """
    Plain HTTP access to a room.
    The counter room answers with its value (POST increments first); other rooms answer "ok".
    """
    body = await room_manager.handle_request(room_id, request.method)
    return PlainTextResponse(body)


@app.get("/rooms/{room_id}/info")
async def get_room_info(room_id: str):
    """Get room status information."""
    room = room_manager.get_room(room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomInfo(
        room_id=room.room_id,
        kind=room.kind.value if room.kind else None,
        connection_count=room.connection_count,
        created_at=room.created_at.isoformat(),
    )


@app.websocket("/parties/main/{room_id}")
async def websocket_room(websocket: WebSocket, room_id: str, pk: Optional[str] = Query(None, alias="_pk")):
    """
    WebSocket endpoint for real-time room communication.
    Connect with: ws://host/parties/main/chat-abc?_pk=<connection id>
    """
    connection = await room_manager.connect(websocket, room_id, pk)

    try:
        # Listen for messages
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            data = message.get("text")
            if data is None:
                logger.debug(f"Dropping binary frame from {connection.conn_id}")
                continue
            await room_manager.handle_message(connection, data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"Connection {connection.conn_id} in {room_id} failed: {e!r}")
    finally:
        # Shielded so a cancelled handler still leaves the registry
        await asyncio.shield(room_manager.disconnect(connection))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
