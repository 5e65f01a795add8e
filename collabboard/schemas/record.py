"""Shared base for records stored as documents."""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Any, Dict, TypeVar

from collabboard.store.base import Document

RecordT = TypeVar("RecordT", bound="Record")


class Record(BaseModel):
    """
    A typed view of one document.

    Python attributes are snake_case; stored fields and API payloads use the
    camelCase aliases (``ownerId``, ``createdAt``, ...).
    """

    id: str = ""

    @classmethod
    def from_document(cls: type[RecordT], document: Document) -> RecordT:
        return cls.model_validate({**document.data, "id": document.id})

    def to_fields(self) -> Dict[str, Any]:
        """Document body without the id, keyed by stored field names."""
        return self.model_dump(by_alias=True, exclude={"id"}, mode="json")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
