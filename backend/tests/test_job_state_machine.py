"""
Unit tests for the job status state machine.
"""

from decimal import Decimal

import pytest

from conftest import make_appointment, make_invoice, make_job
from fieldservice.core.exceptions import InvalidTransitionError
from fieldservice.schemas.job import JobStatus
from fieldservice.services import job_state_machine


# ============================================================
# Tests for legal edges
# ============================================================


class TestLegalTransitions:
    """Tests for the forward edges with satisfied guards."""

    def test_new_to_scheduled_with_appointment(self, new_job):
        """Test NEW → SCHEDULED con appuntamento presente."""
        new_job.appointment = make_appointment()

        job_state_machine.request_transition(new_job, JobStatus.SCHEDULED)

        assert new_job.status == "SCHEDULED"

    def test_scheduled_to_completed_sets_completed_at(self, scheduled_job):
        """Test SCHEDULED → COMPLETED imposta completed_at."""
        assert scheduled_job.completed_at is None

        job_state_machine.request_transition(scheduled_job, JobStatus.COMPLETED)

        assert scheduled_job.status == "COMPLETED"
        assert scheduled_job.completed_at is not None

    def test_completed_to_invoiced_with_invoice(self, completed_job):
        """Test COMPLETED → INVOICED con fattura presente."""
        completed_job.invoice = make_invoice()

        job_state_machine.request_transition(completed_job, JobStatus.INVOICED)

        assert completed_job.status == "INVOICED"

    def test_invoiced_to_paid_when_settled(self, invoiced_job):
        """Test INVOICED → PAID con fattura saldata."""
        invoiced_job.invoice.paid_amount = Decimal("110.00")

        job_state_machine.request_transition(invoiced_job, JobStatus.PAID)

        assert invoiced_job.status == "PAID"

    @pytest.mark.parametrize("status", [s.value for s in JobStatus])
    def test_same_status_is_noop(self, status):
        """Test transizione verso lo stesso stato sempre consentita."""
        job = make_job(status)

        job_state_machine.request_transition(job, JobStatus(status))

        assert job.status == status


# ============================================================
# Tests for rejected edges
# ============================================================


class TestRejectedTransitions:
    """Tests for illegal edges and unmet guards."""

    @pytest.mark.parametrize(
        "current, target",
        [
            ("NEW", "COMPLETED"),
            ("NEW", "INVOICED"),
            ("NEW", "PAID"),
            ("SCHEDULED", "INVOICED"),
            ("SCHEDULED", "NEW"),
            ("COMPLETED", "SCHEDULED"),
            ("INVOICED", "COMPLETED"),
            ("PAID", "INVOICED"),
            ("PAID", "NEW"),
        ],
    )
    def test_illegal_edge(self, current, target):
        """Test archi non consentiti (salti e passi indietro)."""
        job = make_job(current)
        job.appointment = make_appointment()

        with pytest.raises(InvalidTransitionError) as exc_info:
            job_state_machine.request_transition(job, JobStatus(target))

        assert job.status == current
        assert exc_info.value.error_code == "INVALID_TRANSITION"
        assert exc_info.value.extra["current_status"] == current
        assert exc_info.value.extra["target_status"] == target
        assert "guard" not in exc_info.value.extra

    def test_scheduled_requires_appointment(self, new_job):
        """Test NEW → SCHEDULED senza appuntamento."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            job_state_machine.request_transition(new_job, JobStatus.SCHEDULED)

        assert new_job.status == "NEW"
        assert exc_info.value.guard is not None
        assert "guard" in exc_info.value.extra

    def test_invoiced_requires_invoice(self, completed_job):
        """Test COMPLETED → INVOICED senza fattura."""
        with pytest.raises(InvalidTransitionError):
            job_state_machine.request_transition(completed_job, JobStatus.INVOICED)

        assert completed_job.status == "COMPLETED"

    def test_invoiced_requires_invoice_lines(self, completed_job):
        """Test COMPLETED → INVOICED con fattura senza righe."""
        completed_job.invoice = make_invoice(lines=[])

        with pytest.raises(InvalidTransitionError):
            job_state_machine.request_transition(completed_job, JobStatus.INVOICED)

    def test_paid_requires_settled_invoice(self, invoiced_job):
        """Test INVOICED → PAID con residuo da incassare."""
        invoiced_job.invoice.paid_amount = Decimal("60.00")

        with pytest.raises(InvalidTransitionError) as exc_info:
            job_state_machine.request_transition(invoiced_job, JobStatus.PAID)

        assert invoiced_job.status == "INVOICED"
        assert exc_info.value.status_code == 409


# ============================================================
# Tests for predicates
# ============================================================


class TestPredicates:
    """Tests for can_transition and allowed_targets."""

    def test_allowed_targets_new_without_appointment(self, new_job):
        """Test nessuno stato raggiungibile senza appuntamento."""
        assert job_state_machine.allowed_targets(new_job) == []

    def test_allowed_targets_scheduled(self, scheduled_job):
        """Test da SCHEDULED si può solo completare."""
        assert job_state_machine.allowed_targets(scheduled_job) == [JobStatus.COMPLETED]
        assert scheduled_job.allowed_transitions == ["COMPLETED"]

    def test_can_transition_does_not_mutate(self, scheduled_job):
        """Test il predicato non modifica lo stato."""
        assert job_state_machine.can_transition(scheduled_job, JobStatus.COMPLETED) is True
        assert job_state_machine.can_transition(scheduled_job, JobStatus.PAID) is False
        assert scheduled_job.status == "SCHEDULED"

    def test_paid_is_terminal(self):
        """Test PAID è uno stato terminale."""
        assert job_state_machine.allowed_targets(make_job("PAID")) == []

    def test_status_never_decreases(self, new_job):
        """Test la sequenza degli stati visitati è non decrescente."""
        visited = [JobStatus(new_job.status)]

        new_job.appointment = make_appointment()
        for target in JobStatus:
            if target == JobStatus.INVOICED:
                new_job.invoice = make_invoice()
            if target == JobStatus.PAID:
                new_job.invoice.paid_amount = new_job.invoice.total_amount
            for backward in visited:
                assert not job_state_machine.can_transition(new_job, backward) or (
                    backward == JobStatus(new_job.status)
                )
            job_state_machine.request_transition(new_job, target)
            visited.append(JobStatus(new_job.status))

        order = list(JobStatus)
        ranks = [order.index(status) for status in visited]
        assert ranks == sorted(ranks)
        assert new_job.status == "PAID"
