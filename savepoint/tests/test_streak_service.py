"""
Tests for streak calculation (full replay and the append-today shortcut).
"""
from datetime import date, timedelta

from savepoint.services.streak_service import calculate_streaks, extend_streak, StreakResult

TODAY = date(2024, 3, 15)


def day(offset: int) -> date:
    """Calendar day ``offset`` days before TODAY"""
    return TODAY - timedelta(days=offset)


class TestCalculateStreaks:
    """Tests for calculate_streaks"""

    def test_no_completions(self):
        """Zero completions -> both values 0"""
        assert calculate_streaks([], TODAY) == StreakResult(0, 0)

    def test_single_completion_today(self):
        """One completion today -> live streak of 1"""
        assert calculate_streaks([TODAY], TODAY) == StreakResult(1, 1)

    def test_single_old_completion(self):
        """One completion long ago -> longest 1, current broken"""
        assert calculate_streaks([day(10)], TODAY) == StreakResult(0, 1)

    def test_three_consecutive_days_ending_today(self):
        """Days 1, 2, 3 with today = day 3 -> 3 / 3"""
        dates = [day(2), day(1), day(0)]
        assert calculate_streaks(dates, TODAY) == StreakResult(3, 3)

    def test_gap_breaks_current_streak(self):
        """Days 1, 2, 5 with today = day 7 -> longest 2, current 0"""
        day_one = date(2024, 3, 1)
        dates = [day_one, day_one + timedelta(days=1), day_one + timedelta(days=4)]
        today = day_one + timedelta(days=6)

        assert calculate_streaks(dates, today) == StreakResult(0, 2)

    def test_streak_ending_yesterday_is_still_live(self):
        """Not yet completed today does not break the streak"""
        dates = [day(3), day(2), day(1)]
        assert calculate_streaks(dates, TODAY) == StreakResult(3, 3)

    def test_longest_is_kept_after_break(self):
        """An older, longer run is the historical high-water mark"""
        dates = [day(10), day(9), day(8), day(7), day(1), day(0)]
        assert calculate_streaks(dates, TODAY) == StreakResult(2, 4)

    def test_unsorted_and_duplicate_input(self):
        """Input order and duplicates do not matter"""
        dates = [day(0), day(2), day(1), day(1), day(0)]
        assert calculate_streaks(dates, TODAY) == StreakResult(3, 3)

    def test_longest_never_decreases_on_insert(self):
        """Adding dates one by one never lowers longest"""
        dates = [day(20), day(19), day(15), day(14), day(13), day(5), day(0), day(18)]
        seen = []
        previous_longest = 0
        for completion in dates:
            seen.append(completion)
            longest = calculate_streaks(seen, TODAY).longest
            assert longest >= previous_longest
            previous_longest = longest


class TestExtendStreak:
    """Tests for extend_streak"""

    def test_extends_from_yesterday(self):
        """Completing today after yesterday adds one"""
        assert extend_streak(day(1), 3, 5, TODAY) == StreakResult(4, 5)

    def test_new_longest(self):
        """Extending past the longest raises it"""
        assert extend_streak(day(1), 5, 5, TODAY) == StreakResult(6, 6)

    def test_gap_restarts(self):
        """A gap restarts the streak at 1"""
        assert extend_streak(day(3), 3, 5, TODAY) == StreakResult(1, 5)

    def test_first_completion(self):
        """No previous completion -> 1 / 1"""
        assert extend_streak(None, 0, 0, TODAY) == StreakResult(1, 1)

    def test_matches_full_replay(self):
        """The shortcut agrees with replaying every date"""
        history = [day(6), day(5), day(3), day(2), day(1)]
        before = calculate_streaks(history, TODAY)

        extended = extend_streak(history[-1], before.current, before.longest, TODAY)

        assert extended == calculate_streaks(history + [TODAY], TODAY)
