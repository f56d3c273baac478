from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class VisitorTypeIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class VisitorTypeOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)
