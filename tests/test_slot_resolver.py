"""
Tests for the slot resolver.
"""

import pendulum

from slotresolver.domain.date_range import DateRangeBuilder
from slotresolver.domain.rule_set import AvailabilityRuleSet
from slotresolver.domain.slot_resolver import SlotResolver
from slotresolver.domain.time_arithmetic import TimeArithmetic

TZ = "America/Denver"

# Mon-Fri 09:00-19:00, closed on weekends
STORE_ROWS = [
    {"day_of_week": 0, "is_open": False},
    {"day_of_week": 1, "is_open": True, "open_time": 540, "close_time": 1140},
    {"day_of_week": 2, "is_open": True, "open_time": 540, "close_time": 1140},
    {"day_of_week": 3, "is_open": True, "open_time": 540, "close_time": 1140},
    {"day_of_week": 4, "is_open": True, "open_time": 540, "close_time": 1140},
    {"day_of_week": 5, "is_open": True, "open_time": 540, "close_time": 1140},
    {"day_of_week": 6, "is_open": False},
]

OPEN_EVERY_DAY = [
    {"day_of_week": day, "is_open": True, "open_time": 540, "close_time": 1140}
    for day in range(7)
]


def _staff_row(staff_id="A", weekend_days='{"Saturday","Sunday"}', **extra):
    row = {"ghl_id": staff_id, "weekend_days": weekend_days}
    for weekday in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday"):
        row[f"{weekday}/Start Value"] = 600
        row[f"{weekday}/End Value"] = 1080
    row.update(extra)
    return row


def at(text: str):
    return pendulum.parse(text, tz=TZ)


def _day(day_key: str, *clock_times: str):
    return {day_key: [at(f"{day_key} {clock}") for clock in clock_times]}


class TestSlotResolver:
    """Tests for SlotResolver."""

    def setup_method(self):
        self.time = TimeArithmetic(TZ)
        self.resolver = SlotResolver(self.time)
        self.week = DateRangeBuilder(self.time).build_range("2025-09-15", 7)  # Monday

    def _rules(self, store_rows=STORE_ROWS, staff_row=None, staff_id=None, **rows):
        return AvailabilityRuleSet.from_rows(
            timezone=TZ,
            store_rows=store_rows,
            staff_row=staff_row,
            staff_id=staff_id,
            **rows,
        )

    def test_monday_scenario_for_staff_and_store(self):
        """Staff hours narrow store hours; store-only keeps everything inside store hours."""
        raw = _day("2025-09-15", "09:30", "10:15", "12:00", "17:45", "18:30")
        staff_rules = self._rules(staff_row=_staff_row(), staff_id="A")
        store_rules = self._rules()

        staff_slots = self.resolver.resolve(raw, self.week, staff_rules, "A")
        store_slots = self.resolver.resolve(raw, self.week, store_rules)

        assert staff_slots == {"2025-09-15": ["10:15 AM", "12:00 PM", "05:45 PM"]}
        assert store_slots == {
            "2025-09-15": ["09:30 AM", "10:15 AM", "12:00 PM", "05:45 PM", "06:30 PM"]
        }

    def test_closed_store_day_is_absent(self):
        """A closed weekday yields nothing even when the staff member works it."""
        raw = _day("2025-09-20", "10:00", "11:00")  # Saturday
        staff_row = _staff_row(weekend_days=None, **{
            "Saturday/Start Value": 540,
            "Saturday/End Value": 1140,
        })

        assert self.resolver.resolve(raw, self.week, self._rules()) == {}
        assert self.resolver.resolve(
            raw, self.week, self._rules(staff_row=staff_row, staff_id="A"), "A"
        ) == {}

    def test_missing_store_hours_row_closes_day(self):
        """A weekday without a store-hours row is treated as closed."""
        raw = _day("2025-09-15", "10:00")
        rules = self._rules(store_rows=[row for row in STORE_ROWS if row["day_of_week"] != 1])

        assert self.resolver.resolve(raw, self.week, rules) == {}

    def test_weekend_day_dominates_working_hours(self):
        """A staff weekend day is absent even with a Saturday window configured."""
        raw = _day("2025-09-20", "10:00", "11:00")
        staff_row = _staff_row(weekend_days=["Saturday"], **{
            "Saturday/Start Value": 540,
            "Saturday/End Value": 1140,
        })
        rules = self._rules(store_rows=OPEN_EVERY_DAY, staff_row=staff_row, staff_id="A")

        assert "2025-09-20" not in self.resolver.resolve(raw, self.week, rules, "A")

    def test_zero_window_equals_weekend_day(self):
        """A {0, 0} window gives the same result as a weekend day."""
        raw = _day("2025-09-20", "10:00", "11:00")
        zero_window = _staff_row(weekend_days=[], **{
            "Saturday/Start Value": 0,
            "Saturday/End Value": 0,
        })
        weekend = _staff_row(weekend_days=["Saturday"], **{
            "Saturday/Start Value": 540,
            "Saturday/End Value": 1140,
        })

        zero_result = self.resolver.resolve(
            raw, self.week, self._rules(OPEN_EVERY_DAY, zero_window, "A"), "A"
        )
        weekend_result = self.resolver.resolve(
            raw, self.week, self._rules(OPEN_EVERY_DAY, weekend, "A"), "A"
        )

        assert zero_result == weekend_result == {}

    def test_staff_without_hours_row_gets_no_slots(self):
        """Resolving for a staff member with no hours configured yields nothing."""
        raw = _day("2025-09-15", "10:00", "12:00")

        assert self.resolver.resolve(raw, self.week, self._rules(), "A") == {}

    def test_store_hours_boundaries_are_inclusive(self):
        """Slots exactly at opening and closing minute are kept, one minute outside dropped."""
        raw = _day("2025-09-15", "08:59", "09:00", "19:00", "19:01")

        result = self.resolver.resolve(raw, self.week, self._rules())

        assert result == {"2025-09-15": ["09:00 AM", "07:00 PM"]}

    def test_lunch_break_is_excluded_inclusively(self):
        """Lunch removes slots at both of its boundary minutes."""
        raw = _day("2025-09-15", "11:59", "12:00", "12:30", "13:00", "13:01")
        staff_row = _staff_row(**{"Lunch/Start": "720", "Lunch/End": "780"})
        rules = self._rules(staff_row=staff_row, staff_id="A")

        result = self.resolver.resolve(raw, self.week, rules, "A")

        assert result == {"2025-09-15": ["11:59 AM", "01:01 PM"]}

    def test_time_off_range_is_half_open(self):
        """Time off from 9/17 to 9/18 blocks the 17th only."""
        raw = {}
        raw.update(_day("2025-09-17", "10:00", "14:00"))
        raw.update(_day("2025-09-18", "10:00", "14:00"))
        time_off = [{
            "ghl_id": "A",
            "Event/Name": "Dentist",
            "Event/Start": "9/17/2025, 12:00:00 AM",
            "Event/End": "9/18/2025, 12:00:00 AM",
        }]
        rules = self._rules(staff_row=_staff_row(), staff_id="A", time_off_rows=time_off)

        result = self.resolver.resolve(raw, self.week, rules, "A")

        assert "2025-09-17" not in result
        assert result["2025-09-18"] == ["10:00 AM", "02:00 PM"]

    def test_time_off_scoping(self):
        """Store-wide time off applies to every staff member; another staff's does not."""
        raw = {}
        raw.update(_day("2025-09-16", "10:00"))
        raw.update(_day("2025-09-17", "10:00"))
        time_off = [
            {"ghl_id": None, "Event/Start": "2025-09-16", "Event/End": "2025-09-17"},
            {"ghl_id": "B", "Event/Start": "2025-09-17", "Event/End": "2025-09-18"},
        ]
        rules = self._rules(staff_row=_staff_row(), staff_id="A", time_off_rows=time_off)

        result = self.resolver.resolve(raw, self.week, rules, "A")

        assert result == {"2025-09-17": ["10:00 AM"]}

    def test_recurring_block_applies_to_its_weekday_only(self):
        """A Friday block [600, 660] clears that window every Friday and nothing else."""
        two_weeks = DateRangeBuilder(self.time).build_range("2025-09-15", 14)
        raw = {}
        for day_key in ("2025-09-18", "2025-09-19", "2025-09-26"):
            raw.update(_day(day_key, "10:00", "10:30", "11:00", "11:30"))
        blocks = [{
            "ghl_id": "A",
            "Block/Name": "Team sync",
            "Block/Start": 600,
            "Block/End": 660,
            "Block/Recurring": "true",
            "Block/Recurring Day": "friday",
        }]
        rules = self._rules(staff_row=_staff_row(), staff_id="A", time_block_rows=blocks)

        result = self.resolver.resolve(raw, two_weeks, rules, "A")

        assert result["2025-09-18"] == ["10:00 AM", "10:30 AM", "11:00 AM", "11:30 AM"]
        assert result["2025-09-19"] == ["11:30 AM"]
        assert result["2025-09-26"] == ["11:30 AM"]

    def test_one_time_block_applies_to_its_date_only(self):
        """A non-recurring block only affects its own date."""
        raw = {}
        raw.update(_day("2025-09-16", "10:00", "15:00"))
        raw.update(_day("2025-09-23", "10:00", "15:00"))
        two_weeks = DateRangeBuilder(self.time).build_range("2025-09-15", 14)
        blocks = [{
            "ghl_id": None,
            "Block/Start": "14:00",
            "Block/End": "16:00",
            "Block/Recurring": False,
            "Block/Date": "9/16/2025, 12:00:00 AM",
        }]
        rules = self._rules(staff_row=_staff_row(), staff_id="A", time_block_rows=blocks)

        result = self.resolver.resolve(raw, two_weeks, rules, "A")

        assert result["2025-09-16"] == ["10:00 AM"]
        assert result["2025-09-23"] == ["10:00 AM", "03:00 PM"]

    def test_staff_leave_full_and_half_day(self):
        """Full-day leave clears the day; half-day leave clears its window."""
        raw = {}
        raw.update(_day("2025-09-16", "10:00", "15:00"))
        raw.update(_day("2025-09-17", "10:00", "15:00"))
        leaves = [
            {"ghl_id": "A", "unavailable_date": "2025-09-16", "leave_type": "Full Day", "event_status": "Upcoming"},
            {
                "ghl_id": "A",
                "unavailable_date": "2025-09-17",
                "leave_type": "Half Day",
                "start_time": "09:00",
                "end_time": "12:00",
                "event_status": "Upcoming",
            },
        ]
        rules = self._rules(staff_row=_staff_row(), staff_id="A", leave_rows=leaves)

        result = self.resolver.resolve(raw, self.week, rules, "A")

        assert result == {"2025-09-17": ["03:00 PM"]}

    def test_store_only_resolution_ignores_staff_layers(self):
        """Without a staff id, time off and blocks are not consulted."""
        raw = _day("2025-09-17", "10:00")
        time_off = [{"ghl_id": None, "Event/Start": "2025-09-17", "Event/End": "2025-09-18"}]
        rules = self._rules(time_off_rows=time_off)

        assert self.resolver.resolve(raw, self.week, rules) == {"2025-09-17": ["10:00 AM"]}

    def test_rebuckets_by_local_day(self):
        """Provider day keys are ignored in favour of the local calendar day."""
        # 23:30 MDT on Monday, filed by the provider under Tuesday (UTC)
        late_monday = pendulum.parse("2025-09-16T05:30:00Z")
        store_rows = [dict(row, close_time=1439) if row["is_open"] else row for row in STORE_ROWS]
        raw = {"2025-09-16": [late_monday, at("2025-09-16 10:00")]}

        result = self.resolver.resolve(raw, self.week, self._rules(store_rows=store_rows))

        assert result == {
            "2025-09-15": ["11:30 PM"],
            "2025-09-16": ["10:00 AM"],
        }

    def test_sorts_dedupes_and_drops_days_outside_range(self):
        """Output is chronological, duplicates collapse, out-of-range days vanish."""
        raw = {
            "2025-09-15": [at("2025-09-15 12:00"), at("2025-09-15 10:00")],
            "2025-09-15b": [at("2025-09-15 10:00"), at("2025-09-15 11:00")],
            "2025-09-30": [at("2025-09-30 10:00")],
        }

        result = self.resolver.resolve(raw, self.week, self._rules())

        assert result == {"2025-09-15": ["10:00 AM", "11:00 AM", "12:00 PM"]}
        assert list(result) == sorted(result)

    def test_result_is_idempotent(self):
        """Resolving twice with the same inputs gives the same answer."""
        raw = _day("2025-09-15", "09:30", "10:15", "12:00", "17:45", "18:30")
        rules = self._rules(staff_row=_staff_row(), staff_id="A")

        first = self.resolver.resolve(raw, self.week, rules, "A")
        second = self.resolver.resolve(raw, self.week, rules, "A")

        assert first == second

    def test_malformed_weekend_days_do_not_break_resolution(self):
        """Unreadable weekend days degrade to an empty set and resolution completes."""
        raw = _day("2025-09-15", "10:15")
        for weekend_days in ('"{\\"Sunday\\"', "{{not json", 42, "[,,]"):
            rules = self._rules(staff_row=_staff_row(weekend_days=weekend_days), staff_id="A")

            assert self.resolver.resolve(raw, self.week, rules, "A") == {"2025-09-15": ["10:15 AM"]}

    def test_malformed_rule_rows_are_skipped(self):
        """A bad time-block row is ignored; the good one still applies."""
        raw = _day("2025-09-15", "10:00", "11:00")
        blocks = [
            {"ghl_id": "A", "Block/Start": "soon", "Block/End": 700, "Block/Recurring": True, "Block/Recurring Day": "Monday"},
            {"ghl_id": "A", "Block/Start": 655, "Block/End": 665, "Block/Recurring": True, "Block/Recurring Day": "Monday"},
        ]
        rules = self._rules(staff_row=_staff_row(), staff_id="A", time_block_rows=blocks)

        assert len(rules.time_blocks) == 1
        assert self.resolver.resolve(raw, self.week, rules, "A") == {"2025-09-15": ["10:00 AM"]}
