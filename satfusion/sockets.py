# satfusion/sockets.py
"""
Push channel: clients join `user:`, `dataset:` and `job:` rooms and receive
the analysis lifecycle events published by ProgressEmitter.
"""
import logging

from flask import current_app, request
from flask_socketio import SocketIO, emit, join_room

from satfusion.errors import ServiceError, Unauthenticated
from satfusion.services.progress_emitter import channel_for

logger = logging.getLogger(__name__)

socketio = SocketIO()

# sid -> user id resolved at connect time (only for token-carrying clients)
_identities = {}


def init_socketio(app):
    socketio.init_app(
        app,
        message_queue=app.config.get("SOCKETIO_MESSAGE_QUEUE"),
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "threading"),
        cors_allowed_origins=app.config.get("SOCKETIO_CORS_ORIGINS", "*"),
    )
    return socketio


def _token_from(auth):
    if isinstance(auth, dict):
        return auth.get("token")
    return None


@socketio.on("connect")
def on_connect(auth=None):
    from satfusion.auth import user_id_from_token

    token = _token_from(auth)
    if token:
        try:
            _identities[request.sid] = user_id_from_token(token)
        except Unauthenticated as e:
            logger.info("socket rejected: %s", e.message)
            return False
    elif current_app.config.get("SOCKETIO_REQUIRE_AUTH"):
        logger.info("socket rejected: no token")
        return False
    logger.info("client connected: %s", request.sid)


@socketio.on("disconnect")
def on_disconnect(*args):
    _identities.pop(request.sid, None)
    logger.info("client disconnected: %s", request.sid)


@socketio.on("join_room")
def on_join_room(user_id):
    if isinstance(user_id, dict):
        user_id = user_id.get("user_id") or user_id.get("userId")
    if not user_id:
        emit("error", {"message": "user id required"})
        return
    user_id = str(user_id)

    known = _identities.get(request.sid)
    if known is not None and known != user_id:
        emit("error", {"message": "cannot join another user's channel"})
        return

    join_room(channel_for("user", user_id))
    emit("room_joined", {"message": "Connected to real-time updates", "channel": channel_for("user", user_id)})


def _owner_or_refuse(kind: str, ident) -> bool:
    """Only token holders subscribe, and only to what they own."""
    user_id = _identities.get(request.sid)
    if user_id is None:
        emit("error", {"message": "authentication required"})
        return False
    try:
        if kind == "dataset":
            owned = current_app.extensions["satfusion.datasets"].lookup(str(ident), user_id) is not None
        else:
            job = current_app.extensions["satfusion.analysis"].store.get(str(ident))
            owned = job is not None and job.owner_id == user_id
    except ServiceError as e:
        emit("error", {"message": e.message})
        return False
    if not owned:
        # same answer for foreign and missing ids
        emit("error", {"message": f"{kind} not found"})
        return False
    return True


@socketio.on("subscribe_dataset")
def on_subscribe_dataset(dataset_id):
    if not dataset_id:
        emit("error", {"message": "dataset id required"})
        return
    if not _owner_or_refuse("dataset", dataset_id):
        return
    join_room(channel_for("dataset", dataset_id))
    emit("subscribed", {"dataset_id": dataset_id})


@socketio.on("subscribe_analysis")
def on_subscribe_analysis(analysis_id):
    if not analysis_id:
        emit("error", {"message": "analysis id required"})
        return
    if not _owner_or_refuse("analysis", analysis_id):
        return
    join_room(channel_for("job", analysis_id))
    emit("subscribed", {"analysis_id": analysis_id})
