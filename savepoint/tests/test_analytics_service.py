"""
Tests for AnalyticsService.

Tests cover:
1. Heatmap and daily trends over the completion ledger
2. Category breakdown
3. Weekly (Sunday to Saturday) and monthly summaries
4. Personal records
"""
import pytest
from datetime import date, datetime, timedelta

from savepoint.services.habit_service import HabitService
from savepoint.services.analytics_service import AnalyticsService
from savepoint.exceptions import ValidationException, NotAuthorizedException
from savepoint.tests.conftest import create_user, create_habit, create_task, days_ago


def complete(db, user, habit, day, now, note=""):
    HabitService(db, catalog=()).complete_habit(user, habit.id, day=day, note=note, now=now)


def complete_task_at(db, user, title, completed_at):
    task = create_task(db, user, title=title, status="completed")
    task.completed_at = completed_at
    db.commit()
    return task


class TestHeatmap:
    """Tests for get_heatmap"""

    def test_days_with_completions(self, db_session, user, now, today, yesterday):
        walk = create_habit(db_session, user, title="Walk")
        read = create_habit(db_session, user, title="Read", category="learning")
        complete(db_session, user, walk, yesterday, now)
        complete(db_session, user, walk, today, now)
        complete(db_session, user, read, today, now, note="two chapters")

        heatmap = AnalyticsService(db_session).get_heatmap(user, today=today)

        assert [(d["date"], d["count"]) for d in heatmap] == [(yesterday, 1), (today, 2)]
        assert {h["title"]: h["note"] for h in heatmap[1]["habits"]} == {
            "Walk": "", "Read": "two chapters"
        }

    def test_range_and_single_habit(self, db_session, user, now, today, yesterday):
        walk = create_habit(db_session, user, title="Walk")
        read = create_habit(db_session, user, title="Read")
        complete(db_session, user, walk, yesterday, now)
        complete(db_session, user, read, today, now)
        service = AnalyticsService(db_session)

        ranged = service.get_heatmap(user, start=today.isoformat(), today=today)
        single = service.get_heatmap(user, habit_id=walk.id, today=today)

        assert [d["date"] for d in ranged] == [today]
        assert [d["date"] for d in single] == [yesterday]

    def test_start_after_end_rejected(self, db_session, user, today):
        with pytest.raises(ValidationException):
            AnalyticsService(db_session).get_heatmap(
                user, start=today.isoformat(), end=days_ago(today, 1).isoformat(), today=today
            )

    def test_other_users_habit(self, db_session, user, today):
        habit = create_habit(db_session, create_user(db_session, "stranger"))

        with pytest.raises(NotAuthorizedException):
            AnalyticsService(db_session).get_heatmap(user, habit_id=habit.id, today=today)


class TestTrends:
    """Tests for get_trends"""

    def test_daily_rates(self, db_session, user, now, today, yesterday):
        walk = create_habit(db_session, user, title="Walk")
        read = create_habit(db_session, user, title="Read")
        complete(db_session, user, walk, yesterday, now)
        complete(db_session, user, walk, today, now)
        complete(db_session, user, read, today, now)

        trends = AnalyticsService(db_session).get_trends(user, days=2, today=today)

        assert [d["date"] for d in trends] == [days_ago(today, 2), yesterday, today]
        assert [d["completion_rate"] for d in trends] == [0, 50, 100]
        assert all(d["total_habits"] == 2 for d in trends)

    def test_days_bounded(self, db_session, user, today):
        with pytest.raises(ValidationException):
            AnalyticsService(db_session).get_trends(user, days=0, today=today)


class TestCategoryBreakdown:
    """Tests for get_category_breakdown"""

    def test_habits_and_tasks(self, db_session, user, now, today):
        habit = create_habit(db_session, user, category="health")
        complete(db_session, user, habit, today, now)
        create_task(db_session, user, title="Draft", category="work")
        create_task(db_session, user, title="Review", category="work", status="in-progress")
        create_task(db_session, user, title="Groceries", category="personal", status="completed")

        breakdown = AnalyticsService(db_session).get_category_breakdown(user)

        assert breakdown["habits"] == {
            "health": {"count": 1, "completions": 1, "active_streaks": 1, "points": 14}
        }
        assert breakdown["tasks"]["work"] == {"total": 2, "completed": 0, "in_progress": 1, "todo": 1}
        assert breakdown["tasks"]["personal"]["completed"] == 1


class TestWeeklySummary:
    """Tests for get_weekly_summary"""

    def test_sunday_to_saturday(self, db_session, user, now, today):
        """Friday 2024-03-15 falls in the week of Sunday 2024-03-10"""
        walk = create_habit(db_session, user, title="Walk")
        read = create_habit(db_session, user, title="Read")
        complete(db_session, user, walk, date(2024, 3, 9), now)
        complete(db_session, user, walk, date(2024, 3, 10), now)
        complete(db_session, user, walk, today, now)
        complete(db_session, user, read, today, now)
        complete_task_at(db_session, user, "In week", datetime(2024, 3, 12, 12, 0))
        complete_task_at(db_session, user, "Last week", datetime(2024, 3, 9, 23, 0))

        summary = AnalyticsService(db_session).get_weekly_summary(user, today=today)

        assert summary["week_start"] == date(2024, 3, 10)
        assert summary["week_end"] == date(2024, 3, 16)
        assert summary["habits"]["total_completions"] == 3
        assert summary["habits"]["possible_completions"] == 14
        assert summary["habits"]["completion_rate"] == 21
        first_day = summary["habits"]["daily_breakdown"][0]
        assert (first_day["day_name"], first_day["completions"]) == ("Sun", 1)
        assert [t["title"] for t in summary["tasks"]["details"]] == ["In week"]
        assert summary["user"]["streak"] == user.streak_current


class TestMonthlySummary:
    """Tests for get_monthly_summary"""

    def test_leap_february(self, db_session, user, now, today):
        habit = create_habit(db_session, user)
        complete(db_session, user, habit, date(2024, 2, 10), now)
        complete(db_session, user, habit, date(2024, 2, 11), now)
        complete_task_at(db_session, user, "Filed", datetime(2024, 2, 29, 23, 30))
        create_task(db_session, user, title="Still open")

        summary = AnalyticsService(db_session).get_monthly_summary(user, 2024, 2, today=today)

        assert summary["month"] == "February 2024"
        assert len(summary["habits"]["daily_data"]) == 29
        assert summary["habits"]["total_completions"] == 2
        assert summary["habits"]["average_per_day"] == 0.1
        assert summary["tasks"] == {"total": 2, "completed": 1, "completion_rate": 50}

    def test_defaults_to_current_month(self, db_session, user, today):
        summary = AnalyticsService(db_session).get_monthly_summary(user, today=today)
        assert summary["start"] == date(2024, 3, 1)
        assert summary["end"] == date(2024, 3, 31)

    def test_invalid_month(self, db_session, user, today):
        with pytest.raises(ValidationException):
            AnalyticsService(db_session).get_monthly_summary(user, 2024, 13, today=today)


class TestPersonalRecords:
    """Tests for get_personal_records"""

    def test_records(self, db_session, user, now):
        walk = create_habit(db_session, user, title="Walk")
        read = create_habit(db_session, user, title="Read")
        create_habit(db_session, user, title="Archived", is_active=False)
        service = HabitService(db_session, catalog=())
        for offset in (2, 1, 0):
            service.complete_habit(user, walk.id, now=now - timedelta(days=offset))
        service.complete_habit(user, read.id, now=now)

        records = AnalyticsService(db_session).get_personal_records(user, now)

        assert records["longest_streak"]["value"] == 3
        assert records["longest_streak"]["habit"]["title"] == "Walk"
        assert records["most_completed"]["completions"] == 3
        assert records["best_week"] == {"count": 4, "start_date": date(2024, 3, 13)}
        assert records["oldest_habit"]["days_active"] == 74
        assert records["total_habits"] == 3

    def test_empty_user(self, db_session, user, now):
        records = AnalyticsService(db_session).get_personal_records(user, now)

        assert records["longest_streak"] == {"value": 0, "habit": None}
        assert records["most_completed"] is None
        assert records["best_week"] == {"count": 0, "start_date": None}
        assert records["oldest_habit"] is None
