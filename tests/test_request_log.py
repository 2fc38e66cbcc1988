import pytest

from carecore import keys
from carecore.domain import RequestLogEntry
from carecore.errors import UnknownStatusError
from carecore.request_log import RequestLogRepository, normalize_request, split_combined
from carecore.storage import KeyValueStore


def make_entry(detail, reason=""):
    return RequestLogEntry(id="rqx", client_id="mock1", created_at="2025-10-01T00:00:00Z",
                           created_by="Family Alice", title="Shoes", detail=detail, reason=reason)


def test_reason_glued_into_detail_is_split_out():
    entry = normalize_request(make_entry("Details: Need new shoes\n\nReason: Old pair worn out"))
    assert entry.detail == "Need new shoes"
    assert entry.reason == "Old pair worn out"


def test_normalisation_is_idempotent():
    once = normalize_request(make_entry("Details: Need new shoes\nReason: Old pair worn out"))
    assert normalize_request(once) == once


def test_marker_variants():
    assert split_combined("Walk more\n  reason: doctor said so") == ("Walk more", "doctor said so")
    assert split_combined("Walk more\nREASON：doctor said so") == ("Walk more", "doctor said so")
    assert split_combined("Walk more") == ("Walk more", None)


def test_marker_without_a_line_break_only_trims_detail():
    entry = normalize_request(make_entry("  Gate broken. Reason: unsafe  "))
    assert entry.detail == "Gate broken. Reason: unsafe"
    assert entry.reason == ""
    assert normalize_request(entry) == entry


def test_entries_with_a_reason_are_untouched():
    entry = make_entry("Details: x\nReason: y", reason="already split")
    assert normalize_request(entry) is entry


def test_normalised_on_read_but_not_rewritten():
    store = KeyValueStore()
    store.write(keys.REQUESTS, [{
        "id": "rq9", "clientId": "mock1", "createdAt": "2025-10-01T00:00:00Z", "createdBy": "A",
        "title": "Shoes", "detail": "Details: Need shoes\nReason: Worn out", "status": "Pending",
    }])
    entries = RequestLogRepository(store).all()
    assert (entries[0].detail, entries[0].reason) == ("Need shoes", "Worn out")
    assert store.read(keys.REQUESTS)[0]["detail"] == "Details: Need shoes\nReason: Worn out"


def test_for_client_is_newest_first():
    repo = RequestLogRepository(KeyValueStore())
    assert [r.id for r in repo.for_client("mock1")] == ["rq2", "rq1"]
    new_id = repo.add("mock1", "Carer John", "Extra walk", "Twice weekly", "Mobility",
                      created_at="2025-10-05T10:00:00Z", priority="High")
    assert new_id.startswith("rq")
    assert [r.id for r in repo.for_client("mock1")][0] == new_id


def test_set_status():
    repo = RequestLogRepository(KeyValueStore())
    assert repo.set_status("rq1", "approved")
    assert next(r for r in repo.all() if r.id == "rq1").status == "Approved"
    assert repo.set_status("missing", "Approved") is False
    with pytest.raises(UnknownStatusError):
        repo.set_status("rq1", "Done")


def test_fix_gate_scenario():
    entry = normalize_request(make_entry("Details: fix gate\nReason: safety"))
    assert (entry.detail, entry.reason) == ("fix gate", "safety")
