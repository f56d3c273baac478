from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional
import datetime as dt


class WarehouseIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: Optional[str] = None


class WarehouseOut(BaseModel):
    id: str
    name: str
    location: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TimeSlotIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    from_time: dt.time
    to_time: dt.time

    @model_validator(mode="after")
    def _check_window(self):
        if self.from_time >= self.to_time:
            raise ValueError("from_time must be earlier than to_time")
        return self

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Morning", "from_time": "09:00", "to_time": "11:00"}}
    )


class TimeSlotOut(BaseModel):
    id: str
    warehouse_id: str
    name: str
    from_time: dt.time
    to_time: dt.time
    model_config = ConfigDict(from_attributes=True)


class WarehouseDetailOut(WarehouseOut):
    time_slots: List[TimeSlotOut] = []
