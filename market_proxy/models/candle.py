from pydantic import BaseModel
from typing import Any, Optional

class Candle(BaseModel):
    time: str
    open: float
    high: float
    low: float
    close: float
    volume: float

class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
