"""
Status table tests.

These run without a database: the table and plan_transition are pure.
"""
from datetime import datetime, timezone as dt_timezone
from itertools import product

import pytest

from registrar.exceptions import IllegalTransition, PreconditionFailed, UnknownStatus
from registrar.workflow import (
    ACTIVE_STATUSES,
    ALLOWED_TRANSITIONS,
    CANCELLABLE_STATUSES,
    FINAL_STATUSES,
    RequestStatus,
    allowed_targets,
    can_transition_to,
    coerce_status,
    is_active,
    is_final,
    plan_transition,
)

NOW = datetime(2025, 1, 15, 9, 30, tzinfo=dt_timezone.utc)

EXPECTED_EDGES = {
    ('pending_payment', 'paid'),
    ('pending_payment', 'payment_expired'),
    ('pending_payment', 'cancelled'),
    ('paid', 'processing'),
    ('paid', 'cancelled'),
    ('processing', 'ready_for_claim'),
    ('processing', 'rejected'),
    ('processing', 'cancelled'),
    ('ready_for_claim', 'claimed'),
    ('ready_for_claim', 'cancelled'),
    ('claimed', 'released'),
    ('claimed', 'cancelled'),
}


class TestTransitionTable:

    def test_every_pair_matches_the_table(self):
        for current, target in product(RequestStatus, RequestStatus):
            expected = (current.value, target.value) in EXPECTED_EDGES
            assert can_transition_to(current, target) is expected, (current, target)

    def test_table_has_exactly_twelve_edges(self):
        assert len(ALLOWED_TRANSITIONS) == 12
        assert {(a.value, b.value) for a, b in ALLOWED_TRANSITIONS} == EXPECTED_EDGES

    def test_raw_string_values_are_accepted(self):
        assert can_transition_to('paid', 'processing')
        assert not can_transition_to('paid', 'claimed')

    def test_final_statuses_have_no_outgoing_edges(self):
        for status in FINAL_STATUSES:
            assert is_final(status)
            assert allowed_targets(status) == []

    def test_payment_expired_is_active_but_dead_end(self):
        assert is_active(RequestStatus.PAYMENT_EXPIRED)
        assert not is_final(RequestStatus.PAYMENT_EXPIRED)
        assert allowed_targets(RequestStatus.PAYMENT_EXPIRED) == []

    def test_active_and_final_partition_the_statuses(self):
        assert len(ACTIVE_STATUSES) == 6
        assert ACTIVE_STATUSES | FINAL_STATUSES == set(RequestStatus)
        assert not ACTIVE_STATUSES & FINAL_STATUSES

    def test_cancellable_statuses(self):
        assert CANCELLABLE_STATUSES == {
            RequestStatus.PENDING_PAYMENT,
            RequestStatus.PAID,
            RequestStatus.PROCESSING,
            RequestStatus.READY_FOR_CLAIM,
            RequestStatus.CLAIMED,
        }

    def test_allowed_targets_follow_declaration_order(self):
        assert allowed_targets('pending_payment') == [
            RequestStatus.PAYMENT_EXPIRED,
            RequestStatus.PAID,
            RequestStatus.CANCELLED,
        ]

    def test_labels(self):
        assert RequestStatus.READY_FOR_CLAIM.label == 'Ready for Claim'
        assert RequestStatus.PENDING_PAYMENT.label == 'Pending Payment'


class TestUnknownStatus:

    def test_coerce_rejects_unknown_value(self):
        with pytest.raises(UnknownStatus) as excinfo:
            coerce_status('archived')
        assert excinfo.value.value == 'archived'

    def test_unknown_status_is_raised_not_returned(self):
        with pytest.raises(UnknownStatus):
            can_transition_to('bogus', 'paid')
        with pytest.raises(UnknownStatus):
            plan_transition('paid', 'bogus', NOW)

    def test_unknown_status_is_a_value_error(self):
        assert issubclass(UnknownStatus, ValueError)


class TestPlanTransition:

    def test_illegal_move_reports_both_ends(self):
        with pytest.raises(IllegalTransition) as excinfo:
            plan_transition('released', 'processing', NOW)
        assert excinfo.value.from_status == RequestStatus.RELEASED
        assert excinfo.value.to_status == RequestStatus.PROCESSING
        assert excinfo.value.code == 'illegal_transition'

    def test_paid_requires_a_payment_method(self):
        with pytest.raises(PreconditionFailed) as excinfo:
            plan_transition('pending_payment', 'paid', NOW)
        assert excinfo.value.field == 'payment_method'

        plan = plan_transition('pending_payment', 'paid', NOW, payment_method='cash')
        assert plan.changes == {'payment_method': 'cash'}

    @pytest.mark.parametrize('reason', [None, '', '   '])
    def test_rejection_requires_a_reason(self, reason):
        with pytest.raises(PreconditionFailed) as excinfo:
            plan_transition('processing', 'rejected', NOW, reason=reason)
        assert excinfo.value.message_dict == {
            'rejection_reason': ['A rejection reason is required.']
        }

    def test_rejection_stores_stripped_reason(self):
        plan = plan_transition('processing', 'rejected', NOW, reason='  Unpaid balance ')
        assert plan.changes['rejection_reason'] == 'Unpaid balance'
        assert plan.reason == 'Unpaid balance'

    def test_claim_stamps_claimed_at(self):
        plan = plan_transition('ready_for_claim', 'claimed', NOW)
        assert plan.changes == {'claimed_at': NOW, 'claimed_by_student': True}

    def test_release_stamps_released_at(self):
        plan = plan_transition('claimed', 'released', NOW)
        assert plan.changes == {'released_at': NOW}

    def test_expiry_stamps_expired_at(self):
        plan = plan_transition('pending_payment', 'payment_expired', NOW)
        assert plan.changes == {'expired_at': NOW}

    def test_cancelling_a_claimed_request_clears_the_claim(self):
        plan = plan_transition('claimed', 'cancelled', NOW)
        assert plan.changes == {
            'cancelled_at': NOW,
            'claimed_at': None,
            'claimed_by_student': False,
        }

    def test_cancelling_elsewhere_only_stamps_cancelled_at(self):
        plan = plan_transition('paid', 'cancelled', NOW)
        assert plan.changes == {'cancelled_at': NOW}

    def test_extra_changes_pass_through(self):
        plan = plan_transition('paid', 'processing', NOW, processed_by_id='staff-7')
        assert plan.from_status == RequestStatus.PAID
        assert plan.to_status == RequestStatus.PROCESSING
        assert plan.changes == {'processed_by_id': 'staff-7'}
