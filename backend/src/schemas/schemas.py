from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator


class PublishRequest(BaseModel):
    topic: Optional[str] = None
    type: Optional[str] = None
    attributes: Any = None
    # payload: JSON value or plain text; omitted means {}
    data: Any = None

    @field_validator("topic", "type", mode="before")
    @classmethod
    def _strings_only(cls, v):
        # non-string values count as missing
        return v.strip() if isinstance(v, str) else None


class TopicsResponse(BaseModel):
    topics: List[str]


class MessagesResponse(BaseModel):
    count: int
    items: List[Dict[str, Any]]


class StatsResponse(BaseModel):
    uptime_sec: int
    buffered: int
    capacity: int
    pollers: List[str]
