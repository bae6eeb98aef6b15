import random
from datetime import date
from decimal import Decimal

import pytest

from allocation import (
    STRATEGIES,
    AllocationRequest,
    AllocationState,
    FixedPriceStrategy,
    RateCardStrategy,
    strategy_for,
)
from budgets import resolve_line_budgets
from coerce import parse_decimal
from grouping import group_hours
from models import BillingType, ConsumptionUnit, InvoiceBasis, Origin
from records import BillingLineRecord, HourRecord, PriorConsumptionRecord

YEAR = 2024


def _line(line_id, quantity, rate, invoiced="0", basis=InvoiceBasis.normal):
    return BillingLineRecord(
        id=line_id,
        quantity=Decimal(quantity),
        rate=Decimal(rate),
        invoiced_quantity=Decimal(invoiced),
        invoice_basis=basis,
    )


def _hour(hour_id, month, quantity, line_id=None, day=1):
    return HourRecord(
        id=hour_id,
        work_date=date(YEAR, month, day),
        quantity=Decimal(quantity),
        line_id=line_id,
        entity_id=1,
        origin=Origin.project,
    )


def _request(lines, hours, prior=None):
    grouped = group_hours(hours, YEAR)
    return AllocationRequest(
        entity="project:1",
        year=YEAR,
        hours_by_month=grouped.get((Origin.project, 1), {}),
        budget=resolve_line_budgets(lines),
        prior=prior,
    )


def _revenue_by_month(series):
    return {month: totals.revenue for month, totals in series.months.items()}


def test_fixed_price_caps_january_at_remaining_budget() -> None:
    request = _request(
        [_line(1, "10", "100")],
        [_hour(1, 1, "12", line_id=1), _hour(2, 2, "3", line_id=1)],
        prior=PriorConsumptionRecord(amount=Decimal("200")),
    )

    series = FixedPriceStrategy().allocate(request)

    assert series.months[1].revenue == Decimal("800")
    assert series.months[1].hours == Decimal("12")
    assert series.months[2].revenue == 0
    assert series.months[2].hours == Decimal("3")
    assert series.total_revenue == Decimal("800")


def test_cost_plus_no_charge_line_counts_hours_only() -> None:
    request = _request(
        [_line(1, "10", "100", basis=InvoiceBasis.no_charge)],
        [_hour(1, 4, "5", line_id=1)],
    )

    series = strategy_for(BillingType.cost_plus).allocate(request)

    assert series.months[4].revenue == 0
    assert series.months[4].hours == Decimal("5")


def test_rate_card_bills_each_hour_at_its_line_rate() -> None:
    lines = [
        _line(1, "10", "200", basis=InvoiceBasis.no_charge),
        _line(2, "5", "0"),
        _line(3, "10", "75"),
        _line(4, "10", "110", basis=InvoiceBasis.cost_plus),
    ]
    hours = [
        _hour(1, 3, "2", line_id=3),
        _hour(2, 3, "1.5", line_id=4),
        _hour(3, 3, "4"),
        _hour(4, 3, "3", line_id=99),
        _hour(5, 3, "1", line_id=1),
    ]

    series = RateCardStrategy().allocate(_request(lines, hours))

    # 2 x 75 + 1.5 x 110 + 4 x 75 (primary rate) + 0 + 0
    assert series.months[3].revenue == Decimal("615.00")
    assert series.months[3].hours == Decimal("11.5")


def test_rate_card_is_not_capped_by_line_budget() -> None:
    series = RateCardStrategy().allocate(
        _request([_line(1, "1", "100")], [_hour(1, 6, "40", line_id=1)])
    )
    assert series.months[6].revenue == Decimal("4000.00")


@pytest.mark.parametrize("billing_type", [BillingType.internal, BillingType.invalid_tag])
def test_internal_and_untagged_recognise_no_revenue(billing_type) -> None:
    request = _request(
        [_line(1, "10", "100")],
        [_hour(1, 1, "3", line_id=1), _hour(2, 7, "2")],
    )

    series = strategy_for(billing_type).allocate(request)

    assert series.total_revenue == 0
    assert series.months[1].hours == Decimal("3")
    assert series.months[7].hours == Decimal("2")


def test_every_series_has_twelve_months() -> None:
    request = _request([_line(1, "10", "100")], [_hour(1, 5, "1", line_id=1)])
    for billing_type in BillingType:
        series = strategy_for(billing_type).allocate(request)
        assert sorted(series.months) == list(range(1, 13))
        assert all(totals.hours >= 0 for totals in series.months.values())


def test_every_billing_type_has_a_strategy() -> None:
    assert set(STRATEGIES) == set(BillingType)
    with pytest.raises(ValueError):
        strategy_for("bogus")


def test_fixed_price_never_exceeds_budget_minus_prior() -> None:
    lines = [
        _line(1, "10", "100"),
        _line(2, "5", "150", basis=InvoiceBasis.cost_plus),
        _line(3, "8", "80", invoiced="2"),
        _line(4, "4", "60", basis=InvoiceBasis.no_charge),
    ]
    prior = PriorConsumptionRecord(amount=Decimal("390.55"))
    ceiling = Decimal("2390") - Decimal("390.55")
    rng = random.Random(7)

    for _ in range(25):
        hours = [
            _hour(
                hour_id,
                rng.randint(1, 12),
                str(Decimal(rng.randint(1, 900)) / 100),
                line_id=rng.choice([None, 1, 2, 3, 4, 42]),
                day=rng.randint(1, 28),
            )
            for hour_id in range(1, 40)
        ]
        series = FixedPriceStrategy().allocate(_request(lines, hours, prior=prior))
        assert series.total_revenue <= ceiling
        assert all(totals.revenue >= 0 for totals in series.months.values())


def test_fixed_price_total_is_order_independent_below_budget() -> None:
    lines = [_line(1, "100", "100")]
    first = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 1, "8", line_id=1), _hour(2, 2, "4", line_id=1)])
    )
    swapped = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 2, "8", line_id=1), _hour(2, 1, "4", line_id=1)])
    )

    assert first.total_revenue == swapped.total_revenue == Decimal("1200")


def test_fixed_price_exhaustion_depends_on_month_order() -> None:
    lines = [_line(1, "10", "100")]
    first = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 1, "8", line_id=1), _hour(2, 2, "4", line_id=1)])
    )
    swapped = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 2, "8", line_id=1), _hour(2, 1, "4", line_id=1)])
    )

    assert _revenue_by_month(first)[1] == Decimal("800")
    assert _revenue_by_month(first)[2] == Decimal("200")
    assert _revenue_by_month(swapped)[1] == Decimal("400")
    assert _revenue_by_month(swapped)[2] == Decimal("600")
    assert first.total_revenue == swapped.total_revenue == Decimal("1000")


def test_assigned_hour_overflow_bills_at_fallback_rate() -> None:
    lines = [_line(1, "10", "100", invoiced="8"), _line(2, "10", "50")]

    series = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 3, "5", line_id=1)])
    )

    # 2h left on the line at 100, 3h at the blended 1500 / 20
    assert series.months[3].revenue == Decimal("425")


def test_unassigned_hours_walk_largest_lines_first() -> None:
    # Policy: every eligible line is drained before the fallback rate applies;
    # the first line that comes up short does not take the whole overflow.
    lines = [
        _line(1, "2", "100"),
        _line(2, "10", "50"),
        _line(3, "10", "300", basis=InvoiceBasis.cost_plus),
    ]

    series = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 1, "13"), _hour(2, 2, "1")])
    )

    # 10h on line 2, 2h on line 1, 1h at 3700 / 22
    assert series.months[1].revenue == Decimal("868.18")
    # both lines exhausted
    assert series.months[2].revenue == Decimal("168.18")


def test_cost_plus_line_inside_fixed_price_ignores_line_hours() -> None:
    lines = [_line(1, "100", "100"), _line(2, "1", "200", basis=InvoiceBasis.cost_plus)]

    series = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 1, "5", line_id=2)])
    )

    assert series.months[1].revenue == Decimal("1000")


def test_cost_plus_line_inside_fixed_price_is_still_capped() -> None:
    lines = [_line(1, "1", "100"), _line(2, "1", "200", basis=InvoiceBasis.cost_plus)]

    series = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 1, "5", line_id=2)])
    )

    assert series.months[1].revenue == Decimal("300")


def test_fixed_price_without_remaining_budget_counts_hours_only() -> None:
    request = _request(
        [_line(1, "10", "100")],
        [_hour(1, 2, "4", line_id=1)],
        prior=PriorConsumptionRecord(amount=Decimal("10"), unit=ConsumptionUnit.hours),
    )

    series = FixedPriceStrategy().allocate(request)

    assert series.total_revenue == 0
    assert series.months[2].hours == Decimal("4")


def test_fixed_price_zero_for_no_charge_and_unknown_lines() -> None:
    lines = [_line(1, "10", "100"), _line(2, "5", "80", basis=InvoiceBasis.no_charge)]

    series = FixedPriceStrategy().allocate(
        _request(lines, [_hour(1, 5, "2", line_id=2), _hour(2, 5, "3", line_id=77)])
    )

    assert series.months[5].revenue == 0
    assert series.months[5].hours == Decimal("5")


def test_allocation_state_advances_usage_by_recognised_fraction() -> None:
    budget = resolve_line_budgets([_line(1, "10", "100")])
    state = AllocationState(budget, Decimal("500"))

    recognised = state.recognize(Decimal("1000"), [(1, Decimal("10"))])

    assert recognised == Decimal("500")
    assert state.remaining_budget == 0
    assert state.used_hours(1) == Decimal("5")
    assert state.line_remaining_hours(1) == Decimal("5")
    assert state.recognize(Decimal("100"), [(1, Decimal("1"))]) == 0


def test_out_of_range_crm_values_count_as_zero() -> None:
    huge_hour = HourRecord(
        id=1,
        work_date=date(YEAR, 2, 1),
        quantity=parse_decimal("1e30"),
        line_id=1,
        entity_id=1,
        origin=Origin.project,
    )
    rate_card = RateCardStrategy().allocate(
        _request([_line(1, "10", "100")], [huge_hour])
    )
    assert rate_card.total_revenue == 0

    huge_line = BillingLineRecord(id=1, quantity=parse_decimal("1e30"), rate=Decimal("100"))
    fixed = FixedPriceStrategy().allocate(
        _request([huge_line], [_hour(2, 3, "4", line_id=1)])
    )
    assert fixed.total_revenue == 0
    assert fixed.months[3].hours == Decimal("4")


def test_fixed_price_with_largest_accepted_values() -> None:
    limit = str(Decimal(10) ** 12)

    series = FixedPriceStrategy().allocate(
        _request([_line(1, limit, limit)], [_hour(1, 1, limit, line_id=1)])
    )

    assert series.months[1].revenue == Decimal(10) ** 24
