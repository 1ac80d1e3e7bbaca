from datetime import datetime
from typing import List

from pydantic import BaseModel


class StatusResponse(BaseModel):
    status: str
    message: str


class LogEntry(BaseModel):
    timestamp: datetime
    level: str
    logger: str
    message: str

    def as_line(self) -> str:
        return f"{self.timestamp.isoformat()} {self.level:<8} {self.logger}: {self.message}"


class LogPage(BaseModel):
    items: List[LogEntry]
    total: int
