"""Everything a section builder may read, computed once per report."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..engine.temperature import TemperatureSummary
from ..engine.training import TrainingMatrix
from ..models import (
    GatheredData,
    ReportRequest,
    ReportWindow,
    SiteContext,
    SourceKind,
    TemperatureReading,
)


@dataclass
class ReportContext:
    """Normalized inputs shared by all section builders.

    Builders must treat it as read-only.
    """
    request: ReportRequest
    site_context: SiteContext
    data: GatheredData
    readings: list[TemperatureReading]
    temperature: TemperatureSummary
    training: TrainingMatrix
    generated_at: datetime

    @property
    def window(self) -> ReportWindow:
        return self.request.window

    @property
    def today(self) -> date:
        return self.request.today

    @property
    def site_name(self) -> str:
        return self.site_context.site.name

    def rows(self, kind: SourceKind) -> list[dict[str, Any]]:
        return self.data.rows(kind)

    @property
    def prepared_by(self) -> Optional[str]:
        actor = self.request.actor
        if actor is None:
            return None
        return actor.display_name or actor.user_id
