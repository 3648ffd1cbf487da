"""Pydantic schemas for todos.

Learn: Separate schemas for create/patch/read keeps the API clean.
- TodoForm: what you POST (create) or PUT (full replace)
- TodoPatch: what you PATCH (every field optional)
- TodoRead: what the API returns

The wire format is camelCase (startDate, startAt, userId) to match the
web client; Python code uses snake_case. populate_by_name lets tests and
services build these with either spelling.
"""

from datetime import date, datetime, time, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

TodoStatus = Literal["pending", "active", "done"]

_camel = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TodoForm(BaseModel):
    """Create / full-replace body. Start and end arrive as date + time pairs."""

    model_config = _camel

    text: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: TodoStatus = "pending"
    start_date: date
    start_time: time
    end_date: date
    end_time: time


class TodoPatch(BaseModel):
    """Partial update — only fields present in the body are applied."""

    model_config = _camel

    text: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TodoStatus] = None
    start_date: Optional[date] = None
    start_time: Optional[time] = None
    end_date: Optional[date] = None
    end_time: Optional[time] = None

    @model_validator(mode="after")
    def dates_come_with_times(self):
        if (self.start_date is None) != (self.start_time is None):
            raise ValueError("startDate and startTime must be supplied together")
        if (self.end_date is None) != (self.end_time is None):
            raise ValueError("endDate and endTime must be supplied together")
        return self


class TodoRead(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    user_id: str
    text: str
    description: Optional[str]
    status: str
    start_at: datetime
    end_at: datetime
    created_at: datetime
    updated_at: datetime

    @field_validator("start_at", "end_at", "created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops the offset on the way back; everything is stored as UTC
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
