"""The pytest configuration for Plan MCP testing.

Environment overrides are applied before ``plan_mcp`` is imported so the
loggers write into a throwaway directory and metrics stay off.
"""

import os
import tempfile

os.environ.setdefault("PLAN_MCP_LOG_DIR", tempfile.mkdtemp(prefix="plan_mcp_logs_"))
os.environ["PLAN_MCP_ENABLE_METRICS"] = "false"
os.environ["PLAN_MCP_DATABASE_URL"] = "sqlite:///:memory:"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from plan_mcp.config import Settings  # noqa: E402
from plan_mcp.config import reset_settings  # noqa: E402
from plan_mcp.context import ToolContext  # noqa: E402
from plan_mcp.persistence import SqlTransactionalStore  # noqa: E402
from plan_mcp.persistence import create_engine_from_settings  # noqa: E402
from plan_mcp.plans import Plan  # noqa: E402
from plan_mcp.plans import PlanDay  # noqa: E402
from plan_mcp.plans import PlanItem  # noqa: E402
from plan_mcp.plans import PlanWeek  # noqa: E402
from plan_mcp.plans import SetGroup  # noqa: E402
from plan_mcp.plans import create_plan_store  # noqa: E402
from plan_mcp.plans import create_plan_tool  # noqa: E402

PLAN_ID = "plan_1"
OWNER_ID = "user_1"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Every test starts from a freshly read Settings instance."""
    reset_settings()
    yield
    reset_settings()


def build_sample_plan() -> Plan:
    """Two weeks; week 1 day 1 holds Bench then Squat."""
    return Plan(
        id=PLAN_ID,
        owner_id=OWNER_ID,
        name="Strength Block",
        weeks=[
            PlanWeek(
                week_number=1,
                days=[
                    PlanDay(
                        day_number=1,
                        name="Push",
                        items=[
                            PlanItem(
                                id="item_bench",
                                name="Bench",
                                sets=3,
                                reps=5,
                                weight=80,
                                set_groups=[SetGroup(id="sg_bench", count=3, reps=5, weight=80)],
                            ),
                            PlanItem(id="item_squat", name="Squat", sets=3, reps=5, weight=100),
                        ],
                    ),
                    PlanDay(day_number=2, name="Pull", items=[PlanItem(id="item_dl", name="Deadlift", reps=3)]),
                ],
            ),
            PlanWeek(
                week_number=2,
                days=[
                    PlanDay(
                        day_number=1,
                        name="Push",
                        items=[
                            PlanItem(id="item_bench_2", name="Bench", sets=3, reps=5),
                            PlanItem(id="item_squat_2", name="Squat", sets=3, reps=5),
                        ],
                    )
                ],
            ),
        ],
    )


@pytest.fixture
def sample_plan() -> Plan:
    return build_sample_plan()


@pytest.fixture
def sql_store():
    """Transactional store over a private in-memory SQLite database."""
    engine = create_engine_from_settings(Settings(database_url="sqlite:///:memory:"))
    store = SqlTransactionalStore(engine)
    store.create_all()
    yield store
    engine.dispose()


@pytest.fixture
def plan_store(sql_store):
    return create_plan_store(sql_store)


@pytest_asyncio.fixture
async def seeded_plan_store(plan_store):
    """Plan store holding the sample plan at version 1."""
    await plan_store.create_entity(PLAN_ID, build_sample_plan(), owner_id=OWNER_ID)
    return plan_store


@pytest.fixture
def plan_tool(seeded_plan_store):
    return create_plan_tool(seeded_plan_store)


@pytest.fixture
def owner_context() -> ToolContext:
    return ToolContext(user_id=OWNER_ID, domain="plan")
