from __future__ import annotations

from datetime import datetime

import pytest

from cash_audit import KKPStatus, KKPWorkflow, TransitionNotAllowedError, UserRole


def test_defaults():
    wf = KKPWorkflow()
    assert wf.status is KKPStatus.IN_PROGRESS
    assert wf.role is UserRole.SENIOR
    assert len(wf.tasks) == 3
    assert len(wf.messages) == 2
    assert wf.allowed_transitions() == [KKPStatus.IN_PROGRESS, KKPStatus.FINISH]


@pytest.mark.parametrize("role", [UserRole.JUNIOR, UserRole.SENIOR])
def test_non_approvers_cannot_approve(role: UserRole):
    wf = KKPWorkflow(role=role)
    with pytest.raises(TransitionNotAllowedError) as excinfo:
        wf.transition(KKPStatus.APPROVED)
    assert "Approval Locked (Mgr/Partner Only)" in str(excinfo.value)
    assert wf.status is KKPStatus.IN_PROGRESS


def test_preparer_can_finish_and_reopen():
    wf = KKPWorkflow(role=UserRole.JUNIOR)
    assert wf.transition(KKPStatus.FINISH) is KKPStatus.FINISH
    assert wf.transition(KKPStatus.IN_PROGRESS) is KKPStatus.IN_PROGRESS


@pytest.mark.parametrize("role", [UserRole.MANAGER, UserRole.PARTNER])
def test_approval_locks_the_paper(role: UserRole):
    wf = KKPWorkflow()
    wf.switch_role(role)
    assert KKPStatus.APPROVED in wf.allowed_transitions()

    wf.transition(KKPStatus.APPROVED)

    assert wf.status is KKPStatus.APPROVED
    assert wf.allowed_transitions() == [KKPStatus.APPROVED]
    with pytest.raises(TransitionNotAllowedError):
        wf.transition(KKPStatus.IN_PROGRESS)


def test_draft_is_not_a_selectable_target():
    wf = KKPWorkflow(role=UserRole.PARTNER)
    with pytest.raises(TransitionNotAllowedError):
        wf.transition(KKPStatus.DRAFT)


def test_post_message_appends_with_clock_time():
    wf = KKPWorkflow(messages=[])
    msg = wf.post_message("Vouched TX003 against invoice.", now=datetime(2024, 1, 1, 9, 5))
    assert msg is not None
    assert msg.sender == "You"
    assert msg.timestamp == "09:05"
    assert wf.messages == [msg]


def test_blank_message_is_ignored():
    wf = KKPWorkflow()
    assert wf.post_message("   ") is None
    assert len(wf.messages) == 2
