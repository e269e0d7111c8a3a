"""
Wire shapes of persisted documents.

Records are stored as JSON text under ``prefix + id`` using camelCase keys
(``boardVersion``, ``createdAt``, ``updatedAt``) so the stored form stays
readable by other tools working on the same store.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class FileMetadata(BaseModel):
    # Extra keys are kept: metadata patches are shallow-merged, not replaced.
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")


class FileRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    content: str = ""
    board_version: Optional[str] = Field(default=None, alias="boardVersion")
    metadata: FileMetadata

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def summary(self) -> "FileSummary":
        return FileSummary(
            id=self.id,
            name=self.name,
            board_version=self.board_version,
            metadata=self.metadata,
        )


class FileSummary(BaseModel):
    """A record without its content, as returned by listings."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    board_version: Optional[str] = Field(default=None, alias="boardVersion")
    metadata: FileMetadata
