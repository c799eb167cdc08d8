from datetime import datetime, timezone

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, Field, ConfigDict, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_id() -> str:
    """Opaque record id; ObjectId hex so ids sort roughly by creation."""
    return str(ObjectId())


class LedgerModel(BaseModel):
    """Base for stored records: string id kept in Mongo's ``_id``."""
    id: str = Field(default_factory=new_id, validation_alias=AliasChoices("_id", "id"))
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def to_document(self) -> dict:
        doc = self.model_dump(mode="python", exclude={"id"})
        doc["_id"] = self.id
        return doc
