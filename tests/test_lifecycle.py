import pytest

from nexus_isp.errors import InvalidTransition, ServiceError
from nexus_isp.lifecycle import (
    CustomerStatus,
    InstallationStatus,
    InvoiceStatus,
    TicketStatus,
    can_transition,
    check_transition,
    coerce,
    is_known_status,
)


@pytest.mark.parametrize(
    "current,requested",
    [
        ("open", "assigned"),
        ("open", "in_progress"),
        ("assigned", "in_progress"),
        ("in_progress", "resolved"),
        ("resolved", "verified"),
        ("resolved", "in_progress"),
        ("verified", "closed"),
    ],
)
def test_ticket_forward_edges_allowed(current, requested):
    assert can_transition("ticket", current, requested)


@pytest.mark.parametrize(
    "current,requested",
    [
        ("open", "closed"),
        ("open", "resolved"),
        ("closed", "open"),
        ("verified", "open"),
    ],
)
def test_ticket_skips_and_reopens_rejected(current, requested):
    assert not can_transition("ticket", current, requested)


def test_same_state_and_new_row_are_always_allowed():
    assert can_transition("ticket", "closed", "closed")
    assert can_transition("invoice", None, "pending")


def test_invoice_edges():
    assert can_transition("invoice", InvoiceStatus.PENDING, InvoiceStatus.PAID)
    assert can_transition("invoice", "overdue", "cancelled")
    assert not can_transition("invoice", "paid", "pending")
    assert not can_transition("invoice", "cancelled", "paid")


def test_installation_edges():
    assert can_transition("installation", "pending_survey", "survey_failed")
    assert can_transition("installation", InstallationStatus.SURVEY_FAILED, InstallationStatus.PENDING_SURVEY)
    assert not can_transition("installation", "pending_survey", "installed")
    assert not can_transition("installation", "installed", "scheduled")


def test_enum_and_string_values_are_interchangeable():
    assert is_known_status("ticket", TicketStatus.IN_PROGRESS)
    assert is_known_status("ticket", " In_Progress ")
    assert not is_known_status("ticket", "escalated")


def test_lax_mode_allows_backward_moves():
    check_transition("ticket", "closed", "open", strict=False)
    check_transition("invoice", "paid", "pending", strict=False)


def test_strict_mode_rejects_disallowed_edge():
    with pytest.raises(InvalidTransition) as exc:
        check_transition("ticket", "closed", "open", strict=True)

    assert exc.value.current == "closed"
    assert exc.value.requested == "open"
    assert isinstance(exc.value, ServiceError)


def test_unknown_target_rejected_even_when_lax():
    with pytest.raises(InvalidTransition):
        check_transition("invoice", "pending", "refunded", strict=False)


def test_check_returns_stored_form():
    assert check_transition("ticket", None, " CLOSED ") == "closed"
    assert check_transition("invoice", "pending", InvoiceStatus.PAID, strict=True) == "paid"


def test_coerce_vocabulary():
    assert coerce(CustomerStatus, " Active ", "account_status") == "active"
    assert coerce(CustomerStatus, CustomerStatus.LEAD, "account_status") == "lead"

    with pytest.raises(ServiceError) as exc:
        coerce(CustomerStatus, "vip", "account_status")
    assert str(exc.value) == "Unknown account_status: 'vip'"
