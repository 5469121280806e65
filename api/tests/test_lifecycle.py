import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from bankrec.models.statement import Statement
from bankrec.services.draft import CREATE, EDIT, ReconciliationDraft
from bankrec.services.errors import PersistenceFailure
from bankrec.services.lifecycle import StatementLifecycle
from bankrec.services.policy import ReconciliationPolicy


def form(bank_code="BK1", when="2024-03-15", bank="1000.00", book="1020.00", **lists):
    values = {
        "bank_code": bank_code,
        "reconciliation_date": when,
        "balance_as_per_bank": bank,
        "balance_as_per_book": book,
        "additions": [{"narration": "deposit in transit", "amount": "50.00"}],
        "deductions": [{"narration": "outstanding check", "amount": "25.00"}],
        "book_additions": [],
        "book_deductions": [],
    }
    values.update(lists)
    return values


@pytest.fixture()
def lc(db, banks):
    return StatementLifecycle(db)


def create(lc, user, **kw):
    result = lc.save(user.id, ReconciliationDraft.from_values(form(**kw), history=lc.history(user.id)))
    assert result.ok, (result.issues, result.conflict)
    return result.statement


def test_create_stamps_totals_and_labels(lc, user):
    st = create(lc, user)
    assert st.statement_id == 1
    assert st.bank_name == "First National"
    assert st.reconciliation_month == "February 2024"
    assert st.total_additions == Decimal("50")
    assert st.total_deductions == Decimal("25")
    assert st.corrected_balance == Decimal("1025")
    assert st.corrected_book_balance == Decimal("1020")
    assert st.difference == Decimal("5")
    assert [i.narration for i in st.additions] == ["deposit in transit"]
    assert [i.narration for i in st.deductions] == ["outstanding check"]


def test_reconciled_scenario(lc, user):
    st = create(lc, user, book="1025.00")
    assert st.difference == 0


def test_save_switches_draft_to_edit(lc, user):
    draft = ReconciliationDraft.from_values(form())
    result = lc.save(user.id, draft)
    assert result.created
    assert draft.mode == EDIT
    assert draft.statement_id == result.statement.statement_id
    assert draft.record_id == result.statement.id


def test_statement_ids_are_per_user_and_never_reused(lc, user):
    first = create(lc, user, bank_code="BK1", when="2024-01-10")
    second = create(lc, user, bank_code="BK2", when="2024-01-10")
    third = create(lc, user, bank_code="BK1", when="2024-02-10")
    assert [first.statement_id, second.statement_id, third.statement_id] == [1, 2, 3]

    assert lc.delete(user.id, second.id)
    fourth = create(lc, user, bank_code="BK2", when="2024-02-10")
    assert fourth.statement_id == 4


def test_duplicate_month_is_refused(lc, user):
    create(lc, user, when="2024-03-01")
    result = lc.save(user.id, ReconciliationDraft.from_values(form(when="2024-03-31")))
    assert not result.ok
    assert result.conflict.statement_id == 1
    assert result.conflict.month == "2024-03"
    assert "#1" in result.conflict.message
    assert len(lc.history(user.id)) == 1


def test_duplicates_allowed_when_policy_says_so(db, banks, user):
    lc = StatementLifecycle(db, ReconciliationPolicy(block_duplicates=False))
    create(lc, user, when="2024-03-01")
    second = create(lc, user, when="2024-03-20")
    assert second.statement_id == 2


def test_same_month_other_bank_is_fine(lc, user):
    create(lc, user, bank_code="BK1")
    assert create(lc, user, bank_code="BK2").statement_id == 2


def test_validation_issues_block_save(lc, user):
    result = lc.save(user.id, ReconciliationDraft.from_values(form(bank_code="", when="")))
    assert {i.field for i in result.issues} == {"bank_code", "reconciliation_date"}
    assert lc.history(user.id) == []


def test_unknown_bank_code(lc, user):
    result = lc.save(user.id, ReconciliationDraft.from_values(form(bank_code="NOPE")))
    assert [i.field for i in result.issues] == ["bank_code"]


def test_resaving_unchanged_statement_keeps_totals(lc, user):
    st = create(lc, user)
    before = (st.corrected_balance, st.corrected_book_balance, st.difference)
    result = lc.save(user.id, lc.edit_draft(st))
    assert result.ok
    assert (result.statement.corrected_balance, result.statement.corrected_book_balance, result.statement.difference) == before


def test_update_recomputes_stale_stored_totals(lc, user, db):
    st = create(lc, user)
    st.difference = Decimal("999")
    st.corrected_balance = Decimal("1")
    db.commit()

    draft = lc.edit_draft(st)
    assert draft.loaded_totals.difference == Decimal("999")
    result = lc.save(user.id, draft)
    assert result.statement.difference == Decimal("5")
    assert result.statement.corrected_balance == Decimal("1025")


def test_edit_replaces_items_and_skips_duplicate_check(lc, user):
    create(lc, user, when="2024-03-01")
    other = create(lc, user, when="2024-04-01")

    draft = lc.edit_draft(other)
    draft.set_reconciliation_date("2024-03-20")
    draft.remove_item("deductions", 0)
    draft.add_item("book_additions", "interest", "5.00")
    result = lc.save(user.id, draft)
    assert result.ok
    st = result.statement
    assert st.statement_id == 2
    assert st.deductions == []
    assert [(i.narration, i.amount) for i in st.book_additions] == [("interest", Decimal("5"))]
    assert st.difference == Decimal("25")


def test_update_to_unknown_bank_is_refused(lc, user):
    st = create(lc, user)
    draft = lc.edit_draft(st)
    draft.set_bank_code("NOPE")
    result = lc.save(user.id, draft)
    assert [i.field for i in result.issues] == ["bank_code"]


def test_update_of_missing_statement(lc, user):
    draft = ReconciliationDraft.from_values(form(), mode=EDIT)
    draft.record_id = uuid.uuid4()
    with pytest.raises(LookupError):
        lc.save(user.id, draft)


def test_failed_write_leaves_draft_and_store_untouched(lc, user, db, monkeypatch):
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    draft = ReconciliationDraft.from_values(form())
    with pytest.raises(PersistenceFailure):
        lc.save(user.id, draft)
    monkeypatch.undo()

    assert draft.mode == CREATE
    assert draft.statement_id is None
    assert draft.totals.difference == Decimal("5")
    assert db.query(Statement).count() == 0

    # the same draft saves once the store is back
    assert lc.save(user.id, draft).ok


def test_new_draft_offers_copy_forward(lc, user):
    create(lc, user, when="2024-02-15")
    draft = lc.new_draft(user.id, seed=False)
    draft.set_bank_code("BK1")
    draft.set_reconciliation_date("2024-03-10")
    assert draft.copy_forward()
    assert draft.balance_as_per_bank == Decimal("1025")
    assert draft.balance_as_per_book == Decimal("1020")
    assert [i.amount for i in draft.additions] == [0]


def test_history_is_per_user(lc, user, db):
    from bankrec.models.user import User

    other = User(email="other@example.com", display_name="Other")
    db.add(other)
    db.commit()
    st = create(lc, user)
    assert lc.history(other.id) == []
    assert lc.get(other.id, st.id) is None
    assert not lc.delete(other.id, st.id)
    assert create(lc, other).statement_id == 1


def test_export_is_allowed_with_difference_by_default(lc, user):
    result = lc.save_and_export(user.id, ReconciliationDraft.from_values(form()), "Acme Ltd")
    assert result.blocked is None
    assert result.document.heading == "Acme Ltd"
    assert result.document.difference == Decimal("5")


def test_export_gate_when_reconciliation_required(db, banks, user):
    lc = StatementLifecycle(db, ReconciliationPolicy(export_requires_reconciled=True))
    result = lc.save_and_export(user.id, ReconciliationDraft.from_values(form()), "Acme Ltd")
    # saved, but not exported
    assert result.save.ok
    assert result.document is None
    assert result.blocked.statement_id == 1

    draft = lc.edit_draft(result.save.statement)
    draft.set_balance_as_per_book("1025.00")
    again = lc.save_and_export(user.id, draft, "Acme Ltd")
    assert again.blocked is None
    assert again.document.reconciled


def test_export_not_attempted_when_save_fails(lc, user):
    result = lc.save_and_export(user.id, ReconciliationDraft.from_values(form(bank_code="")), "Acme Ltd")
    assert result.save.issues
    assert result.document is None


def test_resave_of_sub_scale_amounts_keeps_totals(lc, user, db):
    st = create(lc, user, additions=[
        {"narration": "interest a", "amount": "0.00005"},
        {"narration": "interest b", "amount": "0.00005"},
    ])
    created = (st.total_additions, st.corrected_balance, st.difference)
    assert st.total_additions == sum(i.amount for i in st.additions)

    db.expire_all()
    result = lc.save(user.id, lc.edit_draft(lc.get(user.id, st.id)))
    again = result.statement
    assert (again.total_additions, again.corrected_balance, again.difference) == created
    assert [i.amount for i in again.additions] == [Decimal("0.0001"), Decimal("0.0001")]


def test_large_balances_round_trip_exactly(lc, user, db):
    st = create(lc, user, bank="12345678901234.5678")
    record_id = st.id
    db.expire_all()
    st = lc.get(user.id, record_id)
    assert st.balance_as_per_bank == Decimal("12345678901234.5678")
    assert st.corrected_balance == Decimal("12345678901259.5678")


def test_failed_update_keeps_stored_record(lc, user, db, monkeypatch):
    st = create(lc, user)
    record_id = st.id
    draft = lc.edit_draft(st)
    draft.set_balance_as_per_book("1025.00")
    draft.remove_item("additions", 0)

    def broken_commit():
        raise OperationalError("UPDATE", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(PersistenceFailure) as exc:
        lc.save(user.id, draft)
    monkeypatch.undo()

    assert "database is locked" in exc.value.message
    assert draft.balance_as_per_book == "1025.00"
    assert len(draft.additions) == 0

    db.expire_all()
    st = lc.get(user.id, record_id)
    assert st.balance_as_per_book == Decimal("1020")
    assert st.difference == Decimal("5")
    assert [i.narration for i in st.additions] == ["deposit in transit"]


def test_failed_delete_keeps_record(lc, user, db, monkeypatch):
    st = create(lc, user)
    record_id = st.id

    def broken_commit():
        raise OperationalError("DELETE", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(PersistenceFailure) as exc:
        lc.delete(user.id, record_id)
    monkeypatch.undo()

    assert "database is locked" in exc.value.message
    db.expire_all()
    assert lc.get(user.id, record_id) is not None
    assert len(lc.history(user.id)) == 1
