"""
Order Timing - Preparation model parameters

Kept separate from Settings so an engine can be built with an explicit
model in tests and batch jobs without touching environment variables.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EstimateMode(str, Enum):
    # Real remaining minutes of the order at the tail of the queue
    CUMULATIVE = "cumulative"
    # Fixed per_position_minutes for every order ranked ahead
    FLAT = "flat"


class TimingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    per_item_minutes: int = Field(2, ge=0)
    per_position_minutes: int = Field(5, ge=0)
    floor_minutes: int = Field(5, ge=1)
    retention_window_minutes: int = Field(1440, ge=0)
    estimate_mode: EstimateMode = EstimateMode.CUMULATIVE
