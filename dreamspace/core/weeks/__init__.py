"""
Weekly goals: templates, current week, archive, and rollover.
"""

from .isoweek import IsoWeek, completion_rate, round_half_up
from .models import (
    CurrentWeek,
    DurationType,
    PastWeekSummary,
    PastWeeks,
    Recurrence,
    WeekGoal,
    WeeklyGoalTemplate,
    WeekState,
)
from .rollover import (
    TemplateSource,
    WeekStore,
    WeeklyRolloverEngine,
    instantiate_goals,
    summarize_week,
    week_state,
)

__all__ = [
    "IsoWeek",
    "completion_rate",
    "round_half_up",
    "CurrentWeek",
    "DurationType",
    "PastWeekSummary",
    "PastWeeks",
    "Recurrence",
    "WeekGoal",
    "WeeklyGoalTemplate",
    "WeekState",
    "TemplateSource",
    "WeekStore",
    "WeeklyRolloverEngine",
    "instantiate_goals",
    "summarize_week",
    "week_state",
]
