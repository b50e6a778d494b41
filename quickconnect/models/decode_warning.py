"""Non-fatal problems found while decoding stored data."""

from pydantic import BaseModel


class DecodeWarning(BaseModel):
    """A malformed row or field that decoding recovered from."""

    row: int  # 1-based record number, header included; 0 for the whole document
    message: str
    field: str | None = None

    def __str__(self) -> str:
        location = f"row {self.row}" if self.row else "document"
        if self.field:
            location = f"{location}, {self.field}"
        return f"{location}: {self.message}"
