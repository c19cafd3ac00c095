"""Request/response envelopes used only by the HTTP layer."""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from retireplan.models import PlanInput


class PingResponse(BaseModel):
    message: str


class ProjectionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan: PlanInput
    maxAge: Optional[float] = None
    inflationAdjusted: bool = False
