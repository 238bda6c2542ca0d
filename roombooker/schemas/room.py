from datetime import time
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    capacity: int
    location: Optional[str] = None
    available: bool


class SlotResponse(BaseModel):
    start_time: time
    end_time: time
