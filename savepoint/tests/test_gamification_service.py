"""
Tests for GamificationService.
"""
from savepoint.services.habit_service import HabitService
from savepoint.services.gamification_service import GamificationService
from savepoint.tests.conftest import create_user, create_habit


class TestManualCheck:
    """Tests for evaluate_achievements"""

    def test_nothing_to_award_without_habits(self, db_session, user, now):
        assert GamificationService(db_session).evaluate_achievements(user, now=now) == []
        assert user.points == 0

    def test_perfect_day_from_stored_completions(self, db_session, user, now):
        """Every active habit done today counts, whatever the hour of the check"""
        habit = create_habit(db_session, user)
        HabitService(db_session, catalog=()).complete_habit(user, habit.id, now=now)

        badges = GamificationService(db_session).evaluate_achievements(
            user, now=now.replace(hour=6)
        )

        ids = [b["id"] for b in badges]
        assert "perfect_day" in ids
        assert "early_bird" not in ids

    def test_no_perfect_day_with_open_habits(self, db_session, user, now):
        done = create_habit(db_session, user, title="Walk")
        create_habit(db_session, user, title="Read")
        HabitService(db_session, catalog=()).complete_habit(user, done.id, now=now)

        badges = GamificationService(db_session).evaluate_achievements(user, now=now)

        assert [b["id"] for b in badges] == ["first_habit"]


class TestLeaderboard:
    """Tests for get_leaderboard"""

    def test_limit_is_clamped(self, db_session, user):
        create_user(db_session, "runner_up", points=200)

        board = GamificationService(db_session).get_leaderboard(limit=0)

        assert [entry["username"] for entry in board] == ["runner_up"]
