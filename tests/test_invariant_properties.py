"""Property-based tests for calculation invariants.

These use hypothesis to check the pure pieces of the pipeline: date range
expansion, payable proration and period arithmetic.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, strategies as st

from hrms_engine.models import AttendanceStatus
from hrms_engine.services.attendance_ledger import iter_dates
from hrms_engine.services.payroll_summary import STATUS_BUCKETS, Period, compute_payable

dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))
bases = st.decimals(min_value=Decimal("0"), max_value=Decimal("10000000"), places=2)


class TestDateRangeProperties:
    @given(start=dates, length=st.integers(min_value=0, max_value=400))
    def test_range_has_inclusive_day_count(self, start, length):
        end = start + timedelta(days=length)
        days = iter_dates(start, end)

        assert len(days) == (end - start).days + 1
        assert days[0] == start
        assert days[-1] == end
        assert len(set(days)) == len(days)


class TestPayableProperties:
    @given(base=bases, paid=st.integers(min_value=0, max_value=31))
    def test_payable_is_whole_and_non_negative(self, base, paid):
        payable = compute_payable(base, paid, 0, 26)
        assert payable >= 0
        assert payable == payable.to_integral_value()

    @given(
        base=bases,
        presents=st.integers(min_value=0, max_value=31),
        leaves=st.integers(min_value=0, max_value=31),
    )
    def test_presents_and_leaves_are_interchangeable(self, base, presents, leaves):
        assert compute_payable(base, presents, leaves, 26) == compute_payable(
            base, presents + leaves, 0, 26
        )

    @given(base=bases, paid=st.integers(min_value=0, max_value=30))
    def test_payable_is_monotonic_in_paid_days(self, base, paid):
        assert compute_payable(base, paid, 0, 26) <= compute_payable(base, paid + 1, 0, 26)

    @given(base=bases, working_days=st.integers(min_value=1, max_value=31))
    def test_full_attendance_pays_base(self, base, working_days):
        payable = compute_payable(base, working_days, 0, working_days)
        assert abs(payable - base) <= Decimal("0.5")

    @given(
        base=bases,
        paid=st.integers(min_value=0, max_value=31),
        working_days=st.integers(min_value=1, max_value=31),
    )
    def test_rounding_error_is_at_most_half_a_unit(self, base, paid, working_days):
        exact = base * paid / Decimal(working_days)
        assert abs(compute_payable(base, paid, 0, working_days) - exact) <= Decimal("0.5")


class TestPeriodProperties:
    @given(day=dates)
    def test_containing_period_brackets_the_day(self, day):
        period = Period.containing(day)
        assert period.start <= day < period.next_start

    @given(day=dates)
    def test_parse_round_trips_through_str(self, day):
        period = Period.containing(day)
        assert Period.parse(str(period)) == period


class TestBucketProperties:
    @given(status=st.sampled_from(list(AttendanceStatus)))
    def test_each_status_lands_in_one_bucket(self, status):
        assert STATUS_BUCKETS[status.value] in {"presents", "leaves", "absents"}
