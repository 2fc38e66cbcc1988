from carecore.decoding import (
    DecodeError, Left, Right, decode_all, decode_budget_row, decode_client, decode_task,
    decode_transaction, normalize_status,
)
from carecore.domain import APPROVED, PENDING, REVIEW_STATUSES


def test_task_defaults_are_filled():
    task = decode_task({"title": "Walk", "nextDue": "2025-10-01"}, 0).get_or_else(None)
    assert task.id == "1"
    assert task.client_id == "mock1"
    assert task.status == PENDING
    assert task.last_done == "2025-10-01"
    assert task.comments == () and task.files == ()


def test_task_without_title_gets_positional_title():
    task = decode_task({}, 4).get_or_else(None)
    assert task.title == "Task 5"
    assert task.id == "5"


def test_non_object_is_left():
    result = decode_task("oops", 2)
    assert result.is_left()
    assert result.error.kind == "not_an_object"
    assert result.error.index == 2


def test_status_is_matched_case_insensitively():
    tx = decode_transaction({"id": "x", "status": "approved", "amount": "12.5"}, 0).get_or_else(None)
    assert tx.status == APPROVED
    assert tx.amount == 12.5


def test_unknown_status_is_an_invalid_field():
    result = decode_transaction({"id": "x", "status": "Maybe"}, 0)
    assert result == Left(DecodeError("invalid_field", "status", "unknown status 'Maybe'", 0))


def test_legacy_approved_transaction_counts_as_applied():
    legacy = decode_transaction({"id": "t1", "status": "Approved"}, 0).get_or_else(None)
    pending = decode_transaction({"id": "t2"}, 1).get_or_else(None)
    explicit = decode_transaction({"id": "t3", "status": "Rejected", "budgetApplied": True}, 2).get_or_else(None)
    assert legacy.budget_applied is True
    assert pending.budget_applied is False
    assert explicit.budget_applied is True


def test_budget_row_rejects_non_numeric_amounts():
    assert decode_budget_row({"item": "Socks", "allocated": "lots"}, 0).is_left()
    row = decode_budget_row({"item": "Socks", "category": "Clothing", "allocated": "176"}, 0).get_or_else(None)
    assert row.allocated == 176 and row.spent == 0


def test_client_accepts_either_id_field():
    a = decode_client({"_id": "mock1", "name": "A", "dob": "x", "orgAccess": "PENDING"}, 0).get_or_else(None)
    b = decode_client({"id": "c2", "name": "B", "dob": "y"}, 1).get_or_else(None)
    assert a.id == "mock1" and a.org_access == "pending"
    assert b.id == "c2" and b.org_access is None


def test_decode_all_splits_records_and_errors():
    records, errors = decode_all([{"title": "a"}, 7, {"title": "b", "status": "bogus"}], decode_task)
    assert [r.title for r in records] == ["a"]
    assert [e.index for e in errors] == [1, 2]


def test_decode_all_of_non_list():
    assert decode_all(None, decode_task) == ([], [])
    records, errors = decode_all({"a": 1}, decode_task)
    assert records == [] and errors[0].kind == "not_a_list"


def test_normalize_status():
    assert normalize_status(None, REVIEW_STATUSES) == PENDING
    assert normalize_status(" rejected ", REVIEW_STATUSES) == "Rejected"
    assert normalize_status("nope", REVIEW_STATUSES) is None
    assert normalize_status(3, REVIEW_STATUSES) is None


def test_right_map_and_bind():
    assert Right(2).map(lambda x: x + 1) == Right(3)
    assert Right(2).bind(lambda x: Left("bad")) == Left("bad")
    assert Left("bad").map(lambda x: x + 1).get_or_else(0) == 0
