"""
Socket.IO channel where clients join one room per coin id.

Rooms are only joined here; nothing in the service publishes to them yet.
"""
import logging

import socketio

from market_proxy.config import CORS_ORIGINS

logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*" if "*" in CORS_ORIGINS else CORS_ORIGINS,
    logger=False,
    engineio_logger=False
)


@sio.event
async def connect(sid, environ, auth=None):
    logger.info(f"Client connected: {sid}")


@sio.event
async def subscribe(sid, coin_id):
    """Join the room named after ``coin_id``"""
    if not isinstance(coin_id, str) or not coin_id:
        logger.warning(f"Ignoring subscribe from {sid} with invalid coin id: {coin_id!r}")
        return
    await sio.enter_room(sid, coin_id)
    logger.info(f"Client {sid} subscribed to {coin_id}")


@sio.event
async def disconnect(sid, reason=None):
    # The server drops the sid from all of its rooms
    logger.info(f"Client disconnected: {sid}")


def wrap_asgi(app) -> socketio.ASGIApp:
    """Serve Socket.IO on /socket.io and hand every other request to ``app``"""
    return socketio.ASGIApp(sio, other_asgi_app=app)
