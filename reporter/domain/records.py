from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

Dimensions = tuple[tuple[str, str], ...]


class OutputRecord(BaseModel):
    """One metric's worth of data handed to the publisher on a drain.

    Counter, Sum and LastValue records carry ``value``; Summary records
    carry ``values`` in receipt order.
    """

    model_config = ConfigDict(frozen=True)

    metric_name: str
    value: Optional[float] = None
    values: Optional[list[float]] = None
    dimensions: Dimensions = Field(default=(), max_length=10)
    unit: str = "None"
    storage_resolution: int = 60

    @property
    def point_count(self) -> int:
        return len(self.values) if self.values is not None else 1
