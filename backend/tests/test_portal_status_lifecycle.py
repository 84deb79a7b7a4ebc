from __future__ import annotations

import pytest

from portal.models import ApplicationStatus, can_transition, is_terminal, parse_status


def test_only_pending_to_terminal_edges_exist():
    edges = {(a, b) for a in ApplicationStatus for b in ApplicationStatus if can_transition(a, b)}
    assert edges == {
        (ApplicationStatus.PENDING, ApplicationStatus.ACCEPTED),
        (ApplicationStatus.PENDING, ApplicationStatus.REJECTED),
    }


def test_terminal_states():
    assert not is_terminal("pending")
    assert is_terminal("accepted")
    assert is_terminal(ApplicationStatus.REJECTED)


@pytest.mark.parametrize("raw", ["approved", "", None, "PENDINGX"])
def test_parse_status_rejects_unknown_values(raw):
    with pytest.raises(ValueError) as exc:
        parse_status(raw)
    assert str(exc.value) == "invalid_status"


def test_parse_status_normalizes_case_and_whitespace():
    assert parse_status("  Accepted ") is ApplicationStatus.ACCEPTED


def test_can_transition_is_false_for_garbage():
    assert can_transition("pending", "approved") is False
    assert can_transition("unknown", "accepted") is False
