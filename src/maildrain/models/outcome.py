"""Drain outcome model."""

from pydantic import BaseModel

from maildrain.models.enums import TerminatedBy


class DrainOutcome(BaseModel):
    """Terminal result of one drain run."""

    resource_id: str
    items_processed: int = 0
    terminated_by: TerminatedBy

    @property
    def is_clean(self) -> bool:
        return self.terminated_by.is_clean()
