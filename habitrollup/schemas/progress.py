"""
Progress schemas.

GET /progress/analytics   → AnalyticsResponse
GET /progress/range       → RangeRollupResponse
GET /progress/monthly     → MonthlyOverviewResponse
GET /progress/weekly      → WeeklyProgressResponse
GET /progress/global      → GlobalProgressResponse
GET /stats                → MonthStatsResponse
"""
from typing import Optional
from pydantic import BaseModel, Field


class DailyBucketResponse(BaseModel):
    date: str = Field(description="YYYY-MM-DD")
    completed: int
    total: int
    percentage: int


class WeekBucketResponse(BaseModel):
    week: int = Field(description="1-based position of the week in the range.")
    completed: int
    total: int
    percentage: int


class AnalyticsResponse(BaseModel):
    """Month analytics: every day of the month plus fixed positional weeks."""
    daily: list[DailyBucketResponse]
    weekly: list[WeekBucketResponse]


class RangeWeekBucketResponse(WeekBucketResponse):
    start: str
    end: str


class RangeRollupResponse(BaseModel):
    start: str
    end: str
    habit_id: Optional[int] = None
    completed: int
    total: int
    percentage: int
    daily: list[DailyBucketResponse]
    weekly: list[RangeWeekBucketResponse]


class MonthlyOverviewResponse(BaseModel):
    year: int
    month: int
    month_start: str
    month_end: str
    completed: int
    target: int
    left: int
    percentage: int
    month_name: str = Field(serialization_alias="monthName", examples=["March"])


class WeeklyHabitProgress(BaseModel):
    habit_id: int
    habit_name: str
    habit_emoji: str
    completed: int
    target: int
    percentage: int
    ratio: str = Field(examples=["4/7"])


class WeeklyProgressResponse(BaseModel):
    week_start: str
    week_end: str
    data: list[WeeklyHabitProgress]


class HabitProgressResponse(BaseModel):
    habit_id: int
    name: str
    emoji: str
    completed: int
    total: int
    percentage: int


class GlobalProgressResponse(BaseModel):
    total_habits: int
    completed_today: int
    completed_this_week: int
    completed_this_month: int
    weekly_target: int
    monthly_target: int
    weekly_percentage: int
    monthly_percentage: int
    top_habits: list[HabitProgressResponse]


class BestHabitResponse(BaseModel):
    habit_id: int
    name: str
    emoji: str
    completion_rate: int


class MonthStatsResponse(BaseModel):
    year: int
    month: int
    total_habits: int
    current_streak: int
    completion_percentage: int
    best_habit: Optional[BestHabitResponse] = None
