from .habit import Habit, ProgressRule
from .entry import HabitEntry
from .sub_task import SubTask, SubTaskLog
from .overview import WeeklyOverview, MonthlyOverview

__all__ = [
    "Habit",
    "ProgressRule",
    "HabitEntry",
    "SubTask",
    "SubTaskLog",
    "WeeklyOverview",
    "MonthlyOverview",
]
