"""Pydantic schemas for line simulation models."""

import uuid
from enum import Enum

from pydantic import BaseModel, Field

MAX_BUFFER_CAPACITY = 100


class StationState(str, Enum):
    """Station states shown by the colored state indicator."""

    WAITING = "WAITING"
    BUSY = "BUSY"
    REPAIR = "REPAIR"


class Item(BaseModel):
    """A unit of production flowing through the line."""

    uid: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])


class StationParams(BaseModel):
    """Station timing and reliability parameters."""

    name: str
    tp_time: int = Field(default=2, ge=0)  # Throughput time (ticks)
    p_fail: float = Field(default=0.0, ge=0.0, le=1.0)  # Per completed cycle
    t_repair: int = Field(default=50, ge=0)  # Repair time (ticks)

    # On-screen center of the station box
    x: float = 0.0
    y: float = 0.0


class BufferParams(BaseModel):
    """FIFO buffer parameters."""

    name: str
    capacity: int = Field(default=50, ge=0, le=MAX_BUFFER_CAPACITY)

    x: float = 0.0
    y: float = 0.0
