from typing import List, Optional

from pydantic import BaseModel


class FileRecord(BaseModel):
    name: str
    content: Optional[str] = None


class FileEntry(BaseModel):
    name: str


class Envelope(BaseModel):
    msg: str
    files: Optional[List[FileEntry]] = None

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)
