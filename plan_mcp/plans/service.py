"""Whole-subtree replacement of plan weeks and days.

Used when a week or day is regenerated wholesale rather than edited action
by action. Each replacement goes through the same snapshot-then-update commit
as the modification tool.
"""

from __future__ import annotations

import logging
from typing import Any

from ..context import ToolContext
from ..exceptions import EntityNotFoundError
from ..exceptions import InvalidRequestError
from ..exceptions import UnauthorizedError
from ..persistence import SqlEntityStore
from .models import Plan
from .models import PlanDay
from .models import PlanWeek
from .tool import PLAN_DOMAIN

logger = logging.getLogger(__name__)


class PlanModificationService:
    def __init__(self, plans: SqlEntityStore[Plan]):
        self.plans = plans

    async def _load_owned(self, plan_id: str, user_id: str) -> Plan:
        plan = await self.plans.resolve_entity(plan_id)
        if plan is None:
            raise EntityNotFoundError(PLAN_DOMAIN, plan_id)
        if plan.owner_id != user_id:
            raise UnauthorizedError(PLAN_DOMAIN, plan_id, user_id)
        return plan

    async def _commit(self, plan: Plan, prior_state: dict[str, Any], user_id: str) -> Plan:
        await self.plans.save_entity(
            plan.id,
            plan,
            ToolContext(user_id=user_id),
            prior_state=prior_state,
            expected_version=plan.version,
        )
        refreshed = await self.plans.resolve_entity(plan.id)
        if refreshed is None:
            raise EntityNotFoundError(PLAN_DOMAIN, plan.id)
        return refreshed

    async def replace_week(
        self, plan_id: str, week_number: int, week: PlanWeek | dict[str, Any], user_id: str
    ) -> Plan:
        """Replace week ``week_number`` (1-based) and return the committed plan.

        Raises:
            EntityNotFoundError: If the plan does not exist
            UnauthorizedError: If the plan belongs to someone else
            InvalidRequestError: If ``week_number`` is out of range
            PersistenceError: If the commit fails
        """
        plan = await self._load_owned(plan_id, user_id)
        total = len(plan.weeks)
        if week_number < 1 or week_number > total:
            raise InvalidRequestError(f"Invalid week number: {week_number}. Plan has {total} week(s)")

        prior_state = plan.to_state()
        replacement = PlanWeek.model_validate(week if isinstance(week, dict) else week.model_dump())
        replacement.week_number = week_number
        plan.weeks[week_number - 1] = replacement

        logger.info("Replacing week %d of plan %s", week_number, plan_id)
        return await self._commit(plan, prior_state, user_id)

    async def replace_day(
        self, plan_id: str, day_number: int, day: PlanDay | dict[str, Any], user_id: str
    ) -> Plan:
        """Replace day ``day_number``, counted 1-based across all weeks."""
        plan = await self._load_owned(plan_id, user_id)
        total = plan.total_days
        if day_number < 1 or day_number > total:
            raise InvalidRequestError(f"Invalid day number: {day_number}. Plan has {total} day(s)")

        prior_state = plan.to_state()
        replacement = PlanDay.model_validate(day if isinstance(day, dict) else day.model_dump())

        counter = 0
        for week in plan.weeks:
            if counter + len(week.days) >= day_number:
                index = day_number - counter - 1
                replacement.day_number = week.days[index].day_number
                week.days[index] = replacement
                break
            counter += len(week.days)

        logger.info("Replacing day %d of plan %s", day_number, plan_id)
        return await self._commit(plan, prior_state, user_id)
