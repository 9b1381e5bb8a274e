from __future__ import annotations

import time
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_CHUNK_SIZE = 8192


def now_millis() -> int:
    return int(time.time() * 1000)


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class NamespaceKey(NamedTuple):
    category: str
    version: int

    def __str__(self) -> str:
        return f"{self.category}-{self.version}"


class FileRecord(DTOBase):
    """Metadata of one index file stored under a (category, version) namespace."""

    record_id: int | None = None
    category: str
    version: int = Field(ge=0)
    name: str
    length: int = Field(ge=0)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    last_modified: int = Field(default_factory=now_millis, ge=0)

    @field_validator("category", "name")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @property
    def namespace(self) -> NamespaceKey:
        return NamespaceKey(self.category, self.version)
