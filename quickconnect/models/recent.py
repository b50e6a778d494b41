"""Recent connection model."""

from pydantic import BaseModel, Field


class RecentConnection(BaseModel):
    """A host the user connected to recently."""

    hostname: str
    description: str = ""
    timestamp: int = Field(..., ge=0)  # Unix seconds

    @property
    def key(self) -> str:
        """Case-insensitive identity of the connected host."""
        return self.hostname.strip().casefold()
