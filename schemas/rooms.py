from pydantic import BaseModel, ConfigDict, Field


class RoomSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    user_count: int = Field(alias="userCount")


class RoomMember(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    username: str


class RoomDetailsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    user_count: int = Field(alias="userCount")
    members: list[RoomMember]


class HealthResponse(BaseModel):
    status: str
    timestamp: str
