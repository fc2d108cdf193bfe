"""Pydantic models for service layer return types."""

from datetime import date

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PeriodicTaskStats(BaseModel):
    """Completion summary of the tasks a periodic task has generated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_generated: int
    completed: int
    pending: int


class RangeGenerationResult(BaseModel):
    """Outcome of a backfill over a date range."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_date: date
    end_date: date
    generated: int
