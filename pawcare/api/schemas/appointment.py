from datetime import time
from pydantic import BaseModel


class SlotInfo(BaseModel):
    start_time: time
    end_time: time
    label: str  # e.g. "9:00 AM"
    available: bool


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD
    veterinarian_id: int
    slots: list[SlotInfo]
