"""Plan aggregate: weeks of days of items, each item with optional set groups."""

from pydantic import BaseModel
from pydantic import Field

from ..utils.schema_builders import Status
from ..utils.schema_builders import generate_id


class SetGroup(BaseModel):
    """A run of identical sets within an item."""

    id: str = Field(default_factory=lambda: generate_id("sg"))
    count: int = Field(default=1, gt=0, description="Number of sets")
    reps: int | None = None
    reps_max: int | None = None
    duration: float | None = None
    weight: float | None = None
    weight_max: float | None = None
    weight_lbs: float | None = None
    intensity_percent: float | None = None
    intensity_percent_max: float | None = None
    rpe: float | None = None
    rpe_max: float | None = None
    rest: int | None = None


class PlanItem(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("item"))
    name: str
    sets: int | None = None
    reps: int | None = None
    weight: float | None = None
    rpe: float | None = None
    rest: int | None = None
    notes: str | None = None
    set_groups: list[SetGroup] = Field(default_factory=list)


class PlanDay(BaseModel):
    day_number: int = Field(..., ge=1)
    name: str | None = None
    items: list[PlanItem] = Field(default_factory=list)


class PlanWeek(BaseModel):
    week_number: int = Field(..., ge=1)
    name: str | None = None
    days: list[PlanDay] = Field(default_factory=list)


class Plan(BaseModel):
    """A versioned multi-week plan owned by one user."""

    id: str = Field(default_factory=lambda: generate_id("plan"))
    owner_id: str | None = None
    name: str
    description: str | None = None
    status: Status = Status.DRAFT
    version: int = Field(default=1, ge=1)
    weeks: list[PlanWeek] = Field(default_factory=list)

    @property
    def total_days(self) -> int:
        return sum(len(week.days) for week in self.weeks)

    def to_state(self) -> dict:
        return self.model_dump(mode="json")
