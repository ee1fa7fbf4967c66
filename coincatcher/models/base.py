# coincatcher/models/base.py
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Optional
from pydantic import BaseModel, PlainSerializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Fixed-width UTC form, so stored timestamps sort as text"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


Timestamp = Annotated[datetime, PlainSerializer(format_timestamp, return_type=str, when_used="json")]


class TimeStampedModel(BaseModel):
    """Base model with timestamp fields"""
    created_at: Timestamp
    updated_at: Optional[Timestamp] = None

    def to_document(self) -> Dict[str, Any]:
        """JSON-safe dict as stored in the document store"""
        return self.model_dump(mode="json")
