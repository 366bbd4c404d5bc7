from __future__ import annotations
from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict, model_validator


class BlackoutSchema(BaseModel):
    id: int
    branch_id: Optional[int] = None
    label: str
    start_date: date
    end_date: date
    is_recurring: bool = False
    model_config = ConfigDict(from_attributes=True)


class BlackoutCreatePayload(BaseModel):
    branch_id: Optional[int] = None
    label: str
    start_date: date
    end_date: date
    is_recurring: bool = False
    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_range(self):
        # recurring periods may wrap across the new year
        if not self.is_recurring and self.end_date < self.start_date:
            raise ValueError("end_date must be on/after start_date")
        return self
