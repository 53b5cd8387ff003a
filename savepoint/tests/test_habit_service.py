"""
Tests for HabitService.

Tests cover:
1. Completing and un-completing with points, check-in streak and badges
2. Calendar-day boundaries
3. Ownership checks
4. CRUD, ordering, stats and history
5. All-or-nothing commits
"""
import pytest
from datetime import datetime, timedelta
from pydantic import ValidationError

from savepoint.schemas import HabitCreate, HabitUpdate
from savepoint.services.habit_service import HabitService
from savepoint.exceptions import (
    AlreadyCompletedException, NotCompletedException, InvalidDateException,
    HabitNotFoundException, NotAuthorizedException, ValidationException
)
from savepoint.tests.conftest import create_user, create_habit, days_ago


class TestCompleteHabit:
    """Tests for complete_habit"""

    def test_awards_and_stores_points(self, db_session, user, now):
        """Health habit, streak 1: 14 points, remembered on the completion"""
        habit = create_habit(db_session, user, category="health")
        service = HabitService(db_session, catalog=())

        result = service.complete_habit(user, habit.id, now=now)

        assert result.points_awarded == 14
        assert result.total_points == 14
        assert result.level == 1
        assert not result.leveled_up
        assert user.points == 14
        assert habit.completions[0].points_awarded == 14
        assert habit.completions[0].streak_at_completion == 1

    def test_checks_in_user(self, db_session, user, now):
        habit = create_habit(db_session, user)

        HabitService(db_session, catalog=()).complete_habit(user, habit.id, now=now)

        assert user.streak_current == 1
        assert user.streak_longest == 1
        assert user.last_check_in == now

    def test_same_day_twice_rejected(self, db_session, user, now):
        """Time of day does not matter, the calendar day does"""
        habit = create_habit(db_session, user)
        service = HabitService(db_session, catalog=())
        service.complete_habit(user, habit.id, now=now.replace(hour=0, minute=1))

        with pytest.raises(AlreadyCompletedException):
            service.complete_habit(user, habit.id, now=now.replace(hour=23, minute=59))

        assert user.points == 14
        assert habit.total_completions == 1

    def test_across_midnight_both_succeed(self, db_session, user):
        """Two seconds apart across midnight are two different days"""
        habit = create_habit(db_session, user)
        service = HabitService(db_session, catalog=())

        service.complete_habit(user, habit.id, now=datetime(2024, 3, 14, 23, 59, 59))
        result = service.complete_habit(user, habit.id, now=datetime(2024, 3, 15, 0, 0, 1))

        assert result.habit.total_completions == 2
        assert result.habit.current_streak == 2
        assert user.streak_current == 2

    def test_past_date_from_string(self, db_session, user, now, today):
        habit = create_habit(db_session, user)
        service = HabitService(db_session, catalog=())

        service.complete_habit(user, habit.id, day=days_ago(today, 2).isoformat(), now=now)

        assert habit.is_completed_on(days_ago(today, 2))
        assert habit.current_streak == 0
        assert habit.longest_streak == 1

    def test_future_date_rejected(self, db_session, user, now, today):
        habit = create_habit(db_session, user)

        with pytest.raises(InvalidDateException):
            HabitService(db_session).complete_habit(
                user, habit.id, day=(today + timedelta(days=1)).isoformat(), now=now
            )

    def test_malformed_date_rejected(self, db_session, user, now):
        habit = create_habit(db_session, user)

        with pytest.raises(InvalidDateException):
            HabitService(db_session).complete_habit(user, habit.id, day="yesterday", now=now)

    def test_first_completion_badges(self, db_session, user, now):
        """Early morning, only habit done: early_bird and perfect_day unlock"""
        habit = create_habit(db_session, user, category="health")

        result = HabitService(db_session).complete_habit(
            user, habit.id, now=now.replace(hour=7, minute=15)
        )

        assert [b["id"] for b in result.new_badges] == ["first_habit", "early_bird", "perfect_day"]
        # 14 for the habit + 10 + 15 + 50 in rewards
        assert user.points == 89

    def test_perfect_day_needs_every_active_habit(self, db_session, user, now):
        habit = create_habit(db_session, user, title="Stretch")
        create_habit(db_session, user, title="Journal")

        result = HabitService(db_session).complete_habit(user, habit.id, now=now)

        assert "perfect_day" not in [b["id"] for b in result.new_badges]
        assert "early_bird" not in [b["id"] for b in result.new_badges]

    def test_failure_rolls_back_everything(self, db_session, user, now, monkeypatch):
        """Nothing is saved if any step of the action fails"""
        habit = create_habit(db_session, user)

        def boom(*args, **kwargs):
            raise RuntimeError("achievement store offline")

        monkeypatch.setattr("savepoint.services.habit_service.evaluate_achievements", boom)

        with pytest.raises(RuntimeError):
            HabitService(db_session).complete_habit(user, habit.id, now=now)

        assert habit.completions == []
        assert habit.total_completions == 0
        assert user.points == 0
        assert user.streak_current == 0


class TestUncompleteHabit:
    """Tests for uncomplete_habit"""

    def test_deducts_points_awarded_at_completion(self, db_session, user, now, yesterday):
        """Undo removes exactly what that completion earned"""
        habit = create_habit(db_session, user, category="health")
        service = HabitService(db_session, catalog=())
        service.complete_habit(user, habit.id, now=now - timedelta(days=1))
        service.complete_habit(user, habit.id, now=now)
        assert user.points == 14 + 17

        result = service.uncomplete_habit(user, habit.id, now=now)

        assert result.points_deducted == 17
        assert result.total_points == 14
        assert habit.current_streak == 1
        assert habit.last_completed_date == yesterday

    def test_undo_redo_is_consistent(self, db_session, user, now):
        """Completing again after an undo lands on the same total"""
        habit = create_habit(db_session, user, category="health")
        service = HabitService(db_session, catalog=())
        service.complete_habit(user, habit.id, now=now - timedelta(days=1))
        service.complete_habit(user, habit.id, now=now)
        before = user.points

        service.uncomplete_habit(user, habit.id, now=now)
        service.complete_habit(user, habit.id, now=now)

        assert user.points == before

    def test_undo_past_day(self, db_session, user, now, yesterday):
        """A past completion gives back its own points, not today's"""
        habit = create_habit(db_session, user, category="health")
        service = HabitService(db_session, catalog=())
        service.complete_habit(user, habit.id, now=now - timedelta(days=1))
        service.complete_habit(user, habit.id, now=now)

        result = service.uncomplete_habit(user, habit.id, day=yesterday.isoformat(), now=now)

        assert result.points_deducted == 14
        assert user.points == 17
        assert habit.current_streak == 1

    def test_not_completed_rejected(self, db_session, user, now):
        habit = create_habit(db_session, user)

        with pytest.raises(NotCompletedException):
            HabitService(db_session).uncomplete_habit(user, habit.id, now=now)

    def test_badges_are_kept(self, db_session, user, now):
        habit = create_habit(db_session, user)
        service = HabitService(db_session)
        service.complete_habit(user, habit.id, now=now)
        earned = set(user.badge_ids)

        service.uncomplete_habit(user, habit.id, now=now)

        assert user.badge_ids == earned


class TestOwnership:
    """Tests for habit ownership checks"""

    def test_missing_habit(self, db_session, user):
        with pytest.raises(HabitNotFoundException):
            HabitService(db_session).get_habit(user, 9999)

    def test_other_users_habit(self, db_session, user, now):
        other = create_user(db_session, "someone_else")
        habit = create_habit(db_session, other)

        with pytest.raises(NotAuthorizedException):
            HabitService(db_session).complete_habit(user, habit.id, now=now)

        assert habit.total_completions == 0


class TestHabitCrud:
    """Tests for create, update, deactivate, delete and reorder"""

    def test_create_awards_first_habit(self, db_session, user, now):
        service = HabitService(db_session)

        habit, badges = service.create_habit(user, HabitCreate(title="Read", category="learning"), now=now)

        assert habit.id is not None
        assert habit.order == 0
        assert habit.created_at == now
        assert [b["id"] for b in badges] == ["first_habit"]
        assert user.points == 10

    def test_create_appends_to_order(self, db_session, user, now):
        service = HabitService(db_session)
        service.create_habit(user, HabitCreate(title="Read"), now=now)

        habit, badges = service.create_habit(user, HabitCreate(title="Run"), now=now)

        assert habit.order == 1
        assert badges == []

    def test_update(self, db_session, user):
        habit = create_habit(db_session, user)

        updated = HabitService(db_session).update_habit(
            user, habit.id, HabitUpdate(title="Drink more water", category="fitness")
        )

        assert updated.title == "Drink more water"
        assert updated.category == "fitness"
        assert updated.description == ""

    def test_update_cannot_clear_required_fields(self):
        with pytest.raises(ValidationError):
            HabitUpdate(title=None)
        with pytest.raises(ValidationError):
            HabitUpdate(category=None)

    def test_deactivate_hides_from_active_list(self, db_session, user):
        habit = create_habit(db_session, user)
        service = HabitService(db_session)

        service.deactivate_habit(user, habit.id)

        assert service.list_habits(user, is_active=True) == []
        assert service.list_habits(user) == [habit]

    def test_delete(self, db_session, user, now):
        habit = create_habit(db_session, user)
        service = HabitService(db_session, catalog=())
        service.complete_habit(user, habit.id, now=now)

        service.delete_habit(user, habit.id)

        with pytest.raises(HabitNotFoundException):
            service.get_habit(user, habit.id)

    def test_reorder(self, db_session, user):
        first = create_habit(db_session, user, title="A", order=0)
        second = create_habit(db_session, user, title="B", order=1)
        third = create_habit(db_session, user, title="C", order=2)

        habits = HabitService(db_session).reorder_habits(user, [third.id, first.id, second.id])

        assert [h.title for h in habits] == ["C", "A", "B"]

    def test_reorder_rejects_foreign_habit(self, db_session, user):
        mine = create_habit(db_session, user, title="Mine")
        other = create_habit(db_session, create_user(db_session, "another_user"), title="Theirs")

        with pytest.raises(NotAuthorizedException):
            HabitService(db_session).reorder_habits(user, [other.id, mine.id])

        assert mine.order == 0

    def test_reorder_rejects_duplicates(self, db_session, user):
        habit = create_habit(db_session, user)

        with pytest.raises(ValidationException):
            HabitService(db_session).reorder_habits(user, [habit.id, habit.id])


class TestStatsAndHistory:
    """Tests for get_stats and get_history"""

    def test_stats(self, db_session, user, now, today):
        done = create_habit(db_session, user, title="Walk", category="health")
        create_habit(db_session, user, title="Study", category="learning")
        HabitService(db_session, catalog=()).complete_habit(user, done.id, now=now)

        stats = HabitService(db_session).get_stats(user, today)

        assert stats["total_habits"] == 2
        assert stats["completed_today"] == 1
        assert stats["total_completions"] == 1
        assert stats["average_streak"] == 1
        assert stats["longest_streak"] == 1
        assert stats["by_category"] == {
            "health": {"count": 1, "completions": 1},
            "learning": {"count": 1, "completions": 0},
        }

    def test_history_newest_first(self, db_session, user, now, today):
        habit = create_habit(db_session, user)
        service = HabitService(db_session, catalog=())
        for offset in (2, 1, 0):
            service.complete_habit(user, habit.id, now=now - timedelta(days=offset))

        history = service.get_history(user, habit.id)
        limited = service.get_history(user, habit.id, limit=2)
        ranged = service.get_history(user, habit.id, start=days_ago(today, 1).isoformat())

        assert [c.date for c in history] == [today, days_ago(today, 1), days_ago(today, 2)]
        assert [c.date for c in limited] == [today, days_ago(today, 1)]
        assert [c.date for c in ranged] == [today, days_ago(today, 1)]

    def test_history_limit_must_be_positive(self, db_session, user):
        habit = create_habit(db_session, user)

        with pytest.raises(ValidationException):
            HabitService(db_session).get_history(user, habit.id, limit=-1)
