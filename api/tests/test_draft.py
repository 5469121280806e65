from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from bankrec.services.adjustments import STARTER_NARRATIONS
from bankrec.services.draft import CREATE, EDIT, ReconciliationDraft
from bankrec.services.policy import ReconciliationPolicy


def stored(**extra):
    values = dict(
        id="rec-1",
        statement_id=4,
        bank_code="BK1",
        reconciliation_date=date(2024, 3, 15),
        balance_as_per_bank=Decimal("1000"),
        balance_as_per_book=Decimal("1020"),
        additions=[SimpleNamespace(narration="deposit in transit", amount=Decimal("50"))],
        deductions=[SimpleNamespace(narration="outstanding check", amount=Decimal("25"))],
        book_additions=[],
        book_deductions=[],
        total_additions=Decimal("50"),
        total_deductions=Decimal("25"),
        corrected_balance=Decimal("1025"),
        total_book_additions=Decimal("0"),
        total_book_deductions=Decimal("0"),
        corrected_book_balance=Decimal("1020"),
        difference=Decimal("5"),
    )
    values.update(extra)
    return SimpleNamespace(**values)


def test_new_draft_is_seeded_with_starter_narrations():
    d = ReconciliationDraft.for_create()
    assert d.mode == CREATE
    assert [i.narration for i in d.additions] == STARTER_NARRATIONS["additions"]
    assert d.totals.difference == 0


def test_unseeded_draft_starts_empty():
    d = ReconciliationDraft.for_create(seed=False)
    assert len(d.book_deductions) == 0


def test_difference_listener_gets_every_change():
    d = ReconciliationDraft.for_create(seed=False)
    seen = []
    d.on_difference_changed(seen.append)
    d.set_balance_as_per_bank("1000")
    d.add_item("additions", "deposit in transit", "50")
    d.add_item("deductions", "outstanding check", "25")
    d.set_balance_as_per_book("1020")
    assert seen == [Decimal("1000"), Decimal("1050"), Decimal("1025"), Decimal("5")]


def test_listener_not_called_when_difference_unchanged():
    d = ReconciliationDraft.for_create(seed=False)
    seen = []
    d.on_difference_changed(seen.append)
    d.add_item("additions", "placeholder")
    assert seen == []


def test_unsubscribe_and_close():
    d = ReconciliationDraft.for_create(seed=False)
    first, second = [], []
    stop = d.on_difference_changed(first.append)
    d.on_difference_changed(second.append)
    stop()
    d.set_balance_as_per_bank(10)
    d.close()
    assert first == []
    assert second == [Decimal("10"), None]


def test_typing_garbage_never_breaks_live_totals():
    d = ReconciliationDraft.for_create(seed=False)
    d.add_item("additions", "deposit", "12a")
    assert d.totals.total_additions == 0
    issues = d.validate()
    assert any(i.field == "additions.0.amount" for i in issues)


def test_edit_draft_loads_stored_values_verbatim():
    # stored difference disagrees with the lists; loading must not "fix" it
    d = ReconciliationDraft.for_edit(stored(difference=Decimal("99")))
    assert d.mode == EDIT
    assert d.statement_id == 4
    assert d.loaded_totals.difference == Decimal("99")
    assert d.totals.difference == Decimal("5")


def test_edit_mode_broadcast_follows_policy():
    quiet = ReconciliationDraft.for_edit(stored(), ReconciliationPolicy(broadcast_while_editing=False))
    seen = []
    quiet.on_difference_changed(seen.append)
    quiet.update_item("additions", 0, amount="60")
    assert seen == []

    loud = ReconciliationDraft.for_edit(stored())
    loud.on_difference_changed(seen.append)
    loud.update_item("additions", 0, amount="60")
    assert seen == [Decimal("15")]


def test_duplicate_tracks_bank_and_date_changes(march_bk1):
    d = ReconciliationDraft.for_create(history=[march_bk1])
    d.set_bank_code("BK1")
    d.set_reconciliation_date("2024-03-28")
    assert d.duplicate is march_bk1
    assert d.duplicate_conflict.statement_id == 1
    assert d.duplicate_conflict.month == "2024-03"

    d.set_bank_code("BK2")
    assert d.duplicate is None
    d.set_bank_code("BK1")
    assert d.duplicate is march_bk1
    d.set_reconciliation_date("2024-05-02")
    assert d.duplicate is None


def test_edit_draft_skips_continuity(march_bk1):
    d = ReconciliationDraft.for_edit(stored(statement_id=9))
    d.set_history([march_bk1])
    d.set_reconciliation_date("2024-03-01")
    assert d.duplicate is None
    assert d.copy_forward_candidate is None


def test_copy_forward_offer_is_made_once_per_pair(past):
    feb = past(1, "BK1", date(2024, 2, 20))
    d = ReconciliationDraft.for_create(history=[feb])
    d.set_bank_code("BK1")
    d.set_reconciliation_date("2024-03-10")
    assert d.copy_forward_candidate is feb

    d.decline_copy_forward()
    d.set_reconciliation_date("2024-03-10")
    assert d.copy_forward_candidate is None

    # a different date in the same month is a new combination
    d.set_reconciliation_date("2024-03-11")
    assert d.copy_forward_candidate is feb


def test_pending_offer_survives_history_refresh(past):
    feb = past(1, "BK1", date(2024, 2, 20))
    d = ReconciliationDraft.for_create(history=[feb])
    d.set_bank_code("BK1")
    d.set_reconciliation_date("2024-03-10")
    d.set_history([feb])
    assert d.copy_forward_candidate is feb


def test_no_copy_forward_offer_when_month_is_taken(past):
    feb = past(1, "BK1", date(2024, 2, 20))
    mar = past(2, "BK1", date(2024, 3, 2))
    d = ReconciliationDraft.for_create(history=[feb, mar])
    d.set_bank_code("BK1")
    d.set_reconciliation_date("2024-03-10")
    assert d.duplicate is mar
    assert d.copy_forward_candidate is None
    assert d.copy_forward() is False


def test_copy_forward_takes_corrected_balances_and_zeroes_amounts(past):
    feb = past(
        1,
        "BK1",
        date(2024, 2, 20),
        corrected_balance=Decimal("1025.00"),
        corrected_book_balance=Decimal("1020.00"),
        additions=[SimpleNamespace(narration="deposit in transit", amount=Decimal("50"))],
        deductions=[SimpleNamespace(narration="outstanding check", amount=Decimal("25"))],
        book_additions=[{"narration": "interest", "amount": Decimal("3")}],
        book_deductions=[],
    )
    d = ReconciliationDraft.for_create(history=[feb])
    d.set_bank_code("BK1")
    d.set_reconciliation_date("2024-03-10")
    seen = []
    d.on_difference_changed(seen.append)

    assert d.copy_forward() is True
    assert d.balance_as_per_bank == Decimal("1025.00")
    assert d.balance_as_per_book == Decimal("1020.00")
    assert [i.narration for i in d.additions] == ["deposit in transit"]
    assert [i.narration for i in d.deductions] == ["outstanding check"]
    assert [i.narration for i in d.book_additions] == ["interest"]
    assert len(d.book_deductions) == 0
    assert all(i.amount == 0 for k in ("additions", "deductions", "book_additions") for i in getattr(d, k))
    assert seen == [Decimal("5.00")]
    # the offer is consumed
    assert d.copy_forward() is False


def test_validation_reports_every_problem():
    d = ReconciliationDraft.from_values(
        {
            "bank_code": "",
            "reconciliation_date": "2024-02-30",
            "balance_as_per_bank": "lots",
            "additions": [{"narration": " ", "amount": "5"}, {"narration": "ok", "amount": "-1"}],
        }
    )
    fields = {i.field for i in d.validate()}
    assert fields == {
        "bank_code",
        "reconciliation_date",
        "balance_as_per_bank",
        "additions.0.narration",
        "additions.1.amount",
    }


def test_narration_optional_under_policy():
    d = ReconciliationDraft.from_values(
        {"bank_code": "BK1", "reconciliation_date": "2024-03-01", "additions": [{"narration": "", "amount": 5}]},
        policy=ReconciliationPolicy(require_narration=False),
    )
    assert d.validate() == []


def test_blank_amount_is_valid_and_zero():
    d = ReconciliationDraft.from_values(
        {"bank_code": "BK1", "reconciliation_date": "2024-03-01", "deductions": [{"narration": "charges", "amount": ""}]}
    )
    assert d.validate() == []
    assert d.values()["deductions"][0]["amount"] == 0


def test_values_are_rounded_to_storage_scale():
    d = ReconciliationDraft.from_values(
        {"bank_code": "BK1", "reconciliation_date": "2024-03-01", "balance_as_per_bank": "10.00005",
         "additions": [{"narration": "interest", "amount": "0.00004"}]}
    )
    values = d.values()
    assert values["balance_as_per_bank"] == Decimal("10.0001")
    assert values["additions"][0]["amount"] == Decimal("0.0000")


def test_values_beyond_storage_range_are_rejected():
    d = ReconciliationDraft.from_values(
        {"bank_code": "BK1", "reconciliation_date": "2024-03-01", "balance_as_per_book": "1e20",
         "deductions": [{"narration": "charges", "amount": "100000000000000"}]}
    )
    fields = {i.field for i in d.validate()}
    assert fields == {"balance_as_per_book", "deductions.0.amount"}
