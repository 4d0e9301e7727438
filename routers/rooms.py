from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError
from schemas.rooms import CreateRoomRequest, CreateRoomResponse, JoinRoomResponse, LiveParticipant, RoomDetailsResponse, RoomFilesResponse, SharedFile
import secrets
from datetime import datetime
from typing import Optional
from backend import PersistenceError
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def generate_room_id() -> str:
    # 8 hex chars, e.g. "ab12cd34"
    return secrets.token_hex(4)


def build_ws_url(request: Request) -> str:
    base_url = str(request.base_url).rstrip('/')
    ws_base = base_url.replace("http://", "ws://").replace("https://", "wss://")
    return f"{ws_base}/ws"


def live_participants(request: Request, room_id: str) -> list[LiveParticipant]:
    registry = request.app.state.coordinator.registry
    return [LiveParticipant(**p.to_dict()) for p in registry.list(room_id)]


async def load_room(request: Request, room_id: str) -> Optional[dict]:
    try:
        return await request.app.state.store.get_room(room_id)
    except PersistenceError as e:
        logger.error(f"Room lookup failed for {room_id}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Room store unavailable")


@rooms_router.post("/", status_code=201)
async def create_room(room: CreateRoomRequest, request: Request):
    # Body: { "name": "optional", "user_id": "creator id from the auth layer" }
    # Response 201: { "room_id": "ab12cd34", "ws_url": "ws://host/ws", "created_at": "..." }
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room creation request from {client_host}, name: {room.name}")
    store = request.app.state.store
    room_id = generate_room_id()
    created_at = datetime.now().isoformat()

    try:
        await store.create_room(room_id, {
            "room_id": room_id,
            "name": room.name,
            "created_by": room.user_id,
            "created_at": created_at,
        })
    except PersistenceError as e:
        logger.error(f"Error creating room: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Failed to create room")

    logger.info(f"Room {room_id} created successfully: name={room.name}")
    return CreateRoomResponse(
        room_id=room_id,
        ws_url=build_ws_url(request),
        created_at=created_at,
    )


@rooms_router.post("/{room_id}/join", response_model=JoinRoomResponse)
async def join_room(room_id: str, request: Request):
    # Validates the room and hands back where to connect. The participant is
    # only added to the live room once it sends join-room over the socket.
    room = await load_room(request, room_id)
    if not room:
        logger.warning(f"Join room failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    participants = live_participants(request, room_id)
    logger.info(f"Join room check passed for {room_id}: {len(participants)} online")
    return JoinRoomResponse(
        room_id=room_id,
        ws_url=build_ws_url(request),
        participants=participants,
    )


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get room details with the participants connected right now.

    Returns:
    - room_id, name, created_by, created_at: stored room metadata
    - online_users_count / participants: live membership on this server
    - stroke_count: length of the stored whiteboard log
    """
    room = await load_room(request, room_id)
    if not room:
        logger.warning(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    try:
        stroke_count = await request.app.state.store.count_strokes(room_id)
    except PersistenceError as e:
        logger.error(f"Stroke count failed for {room_id}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Room store unavailable")

    participants = live_participants(request, room_id)
    logger.info(f"Room details retrieved for {room_id}: {len(participants)} users online")
    return RoomDetailsResponse(
        room_id=room_id,
        name=room.get("name"),
        created_by=room.get("created_by"),
        created_at=room.get("created_at", ""),
        online_users_count=len(participants),
        participants=participants,
        stroke_count=stroke_count,
    )


@rooms_router.get("/{room_id}/files", response_model=RoomFilesResponse)
async def get_room_files(room_id: str, request: Request):
    # Metadata of files announced with file-uploaded, oldest first
    room = await load_room(request, room_id)
    if not room:
        logger.warning(f"Room files failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    try:
        files = await request.app.state.store.get_files(room_id)
    except PersistenceError as e:
        logger.error(f"File listing failed for {room_id}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Room store unavailable")

    shared = []
    for f in files:
        try:
            shared.append(SharedFile.model_validate(f))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable file record in room {room_id}: {e}")

    logger.info(f"Listed {len(shared)} files for room {room_id}")
    return RoomFilesResponse(room_id=room_id, files=shared)
