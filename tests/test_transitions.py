"""
Tests for the order status state machine.
"""

import pytest

from menu_orders.models.order import (
    ALLOWED_TRANSITIONS,
    STATUS_LABELS,
    TERMINAL_STATUSES,
    OrderStatusEnum as S,
    can_transition,
)
from menu_orders.schemas.order import StatusInfo


class TestAllowedTransitions:
    @pytest.mark.parametrize("current,new", [
        (S.pending, S.accepted),
        (S.pending, S.cancelled),
        (S.accepted, S.preparing),
        (S.accepted, S.cancelled),
        (S.preparing, S.ready),
        (S.ready, S.delivered),
    ])
    def test_allowed(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        (S.pending, S.preparing),
        (S.pending, S.delivered),
        (S.accepted, S.ready),
        (S.preparing, S.cancelled),
        (S.ready, S.cancelled),
        (S.ready, S.preparing),
        (S.pending, S.pending),
    ])
    def test_forbidden(self, current, new):
        assert not can_transition(current, new)

    def test_terminal_statuses_have_no_exits(self):
        assert TERMINAL_STATUSES == {S.delivered, S.cancelled}
        for status in TERMINAL_STATUSES:
            for new in S:
                assert not can_transition(status, new)

    def test_every_status_is_covered(self):
        assert set(ALLOWED_TRANSITIONS) == set(S)
        assert set(STATUS_LABELS) == set(S)


class TestStatusInfo:
    def test_pending_info(self):
        info = StatusInfo.for_status(S.pending, STATUS_LABELS[S.pending])
        assert info.next == [S.accepted, S.cancelled]
        assert not info.terminal

    def test_delivered_info(self):
        info = StatusInfo.for_status(S.delivered, STATUS_LABELS[S.delivered])
        assert info.next == []
        assert info.terminal
