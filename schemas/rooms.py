from pydantic import BaseModel, ConfigDict
from typing import Optional


class CreateRoomRequest(BaseModel):
    name: Optional[str] = None
    user_id: Optional[str] = None

class CreateRoomResponse(BaseModel):
    room_id: str
    ws_url: str
    created_at: str

class LiveParticipant(BaseModel):
    ref: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None

class JoinRoomResponse(BaseModel):
    room_id: str
    ws_url: str
    participants: list[LiveParticipant]

class RoomDetailsResponse(BaseModel):
    room_id: str
    name: Optional[str]
    created_by: Optional[str]
    created_at: str
    online_users_count: int
    participants: list[LiveParticipant]
    stroke_count: int

class SharedFile(BaseModel):
    # Keys come from the upload service; anything extra is passed through
    model_config = ConfigDict(extra="allow")

    filename: Optional[str] = None
    fileId: Optional[str] = None
    uploadedBy: Optional[str] = None
    uploadedAt: Optional[str] = None

class RoomFilesResponse(BaseModel):
    room_id: str
    files: list[SharedFile]
