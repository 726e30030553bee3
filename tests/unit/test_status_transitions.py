"""Unit tests for the RFQ status machine in rfq_api/services/rfq_service.py."""

import pytest

from rfq_api.errors import ConflictError
from rfq_api.services.rfq_service import STATUS_TRANSITIONS, check_status_transition

STATUSES = ["draft", "published", "closed", "cancelled"]
ALLOWED = {
    ("draft", "published"),
    ("published", "closed"),
    ("published", "cancelled"),
}


@pytest.mark.parametrize("current", STATUSES)
@pytest.mark.parametrize("new", STATUSES)
def test_transition_table(current, new):
    if current == new or (current, new) in ALLOWED:
        check_status_transition(current, new)
    else:
        with pytest.raises(ConflictError) as exc:
            check_status_transition(current, new)
        assert exc.value.code == "INVALID_STATUS_TRANSITION"
        assert exc.value.status_code == 409
        assert exc.value.details["from"] == current


def test_terminal_states_have_no_exits():
    assert STATUS_TRANSITIONS["closed"] == frozenset()
    assert STATUS_TRANSITIONS["cancelled"] == frozenset()


def test_conflict_lists_allowed_targets():
    with pytest.raises(ConflictError) as exc:
        check_status_transition("draft", "closed")
    assert exc.value.details["allowed"] == ["published"]
