"""Reference domain: versioned multi-week plans."""

from .actions import PLAN_ACTIONS
from .models import Plan
from .models import PlanDay
from .models import PlanItem
from .models import PlanWeek
from .models import SetGroup
from .service import PlanModificationService
from .tool import PLAN_DOMAIN
from .tool import PLAN_TOOL_NAME
from .tool import create_plan_store
from .tool import create_plan_tool

__all__ = [
    "PLAN_ACTIONS",
    "PLAN_DOMAIN",
    "PLAN_TOOL_NAME",
    "Plan",
    "PlanDay",
    "PlanItem",
    "PlanModificationService",
    "PlanWeek",
    "SetGroup",
    "create_plan_store",
    "create_plan_tool",
]
