import pytest

from tripsplit.services.balances import aggregate_balances

from conftest import make_expense


def by_member(sheet):
    return {mb.member_id: mb for mb in sheet.member_balances}


def test_three_member_scenario():
    expenses = [
        make_expense("A", 120, ["A", "B", "C"]),
        make_expense("B", 60, ["A", "B", "C"], category="transportation"),
    ]
    sheet = aggregate_balances(expenses, ["A", "B", "C"])
    members = by_member(sheet)

    assert members["A"].total_paid == 120
    assert members["A"].total_owed == 60
    assert members["A"].balance == pytest.approx(60)
    assert members["B"].balance == pytest.approx(0)
    assert members["C"].balance == pytest.approx(-60)
    assert sheet.total_amount == 180
    assert sheet.total_expenses == 2
    assert sheet.category_breakdown == {"food": 120, "transportation": 60}


def test_roster_members_without_expenses_are_zero_initialized():
    sheet = aggregate_balances([], ["A", "B"], default_currency="EUR")
    assert [(m.member_id, m.total_paid, m.total_owed) for m in sheet.member_balances] == [
        ("A", 0.0, 0.0),
        ("B", 0.0, 0.0),
    ]
    assert sheet.currency == "EUR"
    assert sheet.total_expenses == 0


def test_payer_outside_their_own_split_is_credited_the_full_total():
    expense = make_expense("A", 50, [("B", 25), ("C", 25)], policy="custom")
    members = by_member(aggregate_balances([expense], ["A", "B", "C"]))
    assert members["A"].total_paid == 50
    assert members["A"].total_owed == 0
    assert members["B"].balance == -25


def test_departed_member_is_still_counted_after_roster_members():
    expense = make_expense("A", 30, ["A", "ghost"])
    sheet = aggregate_balances([expense], ["B", "A"])
    assert [m.member_id for m in sheet.member_balances] == ["B", "A", "ghost"]
    assert sheet.balance_of("ghost") == -15


def test_currency_is_last_seen():
    expenses = [
        make_expense("A", 10, ["A"], currency="USD"),
        make_expense("A", 10, ["A"], currency="EUR"),
    ]
    assert aggregate_balances(expenses, ["A"]).currency == "EUR"


def test_balances_sum_to_zero():
    expenses = [
        make_expense("A", 100, ["A", "B", "C"]),
        make_expense("B", 33.33, ["A", "C"]),
        make_expense("C", 71.5, [("A", 20), ("B", 51.5)], policy="individual"),
    ]
    sheet = aggregate_balances(expenses, ["A", "B", "C"])
    assert abs(sum(m.balance for m in sheet.member_balances)) <= 0.01


def test_accumulation_keeps_full_precision():
    expenses = [make_expense("A", 10, ["A", "B", "C"]) for _ in range(3)]
    members = by_member(aggregate_balances(expenses, ["A", "B", "C"]))
    assert members["B"].total_owed == pytest.approx(10.0)
    assert members["B"].total_owed != round(10 / 3, 2) * 3


def test_module_is_documented():
    from tripsplit.services import balances

    assert balances.__doc__.startswith("Balance aggregator.")
