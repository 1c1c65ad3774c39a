from types import SimpleNamespace

import pytest

from academics.exceptions import InvalidTransitionError, NotAuthorizedError
from academics.workflow import (
    ResultStatus,
    ScoreStatus,
    check_result_transition,
    check_score_transition,
    ensure_approver,
    ensure_can_reject_score,
    ensure_class_teacher,
    ensure_subject_teacher,
    is_class_teacher,
    is_subject_teacher,
)


def teacher(pk):
    return SimpleNamespace(teacher_profile=SimpleNamespace(pk=pk), is_approver=False)


PRINCIPAL = SimpleNamespace(is_approver=True)
SCHOOL_CLASS = SimpleNamespace(pk=3, form_teacher_id=10)
ASSIGNMENT = SimpleNamespace(pk=5, teacher_id=20, school_class=SCHOOL_CLASS)


@pytest.mark.parametrize("current, target", [
    (None, ScoreStatus.DRAFT),
    (ScoreStatus.DRAFT, ScoreStatus.DRAFT),
    (ScoreStatus.DRAFT, ScoreStatus.SUBMITTED),
    (ScoreStatus.SUBMITTED, ScoreStatus.REJECTED),
    (ScoreStatus.REJECTED, ScoreStatus.SUBMITTED),
])
def test_allowed_score_transitions(current, target):
    check_score_transition(current, target)


def test_submitted_score_is_locked_outside_edit_mode():
    with pytest.raises(InvalidTransitionError, match="locked"):
        check_score_transition(ScoreStatus.SUBMITTED, ScoreStatus.SUBMITTED)
    with pytest.raises(InvalidTransitionError, match="locked"):
        check_score_transition(ScoreStatus.SUBMITTED, ScoreStatus.DRAFT)


def test_edit_mode_allows_refreshing_a_submitted_score():
    check_score_transition(ScoreStatus.SUBMITTED, ScoreStatus.SUBMITTED, edit_mode=True)

    with pytest.raises(InvalidTransitionError):
        check_score_transition(ScoreStatus.SUBMITTED, ScoreStatus.DRAFT, edit_mode=True)


def test_rejected_score_cannot_go_back_to_draft():
    with pytest.raises(InvalidTransitionError, match="resubmit"):
        check_score_transition(ScoreStatus.REJECTED, ScoreStatus.DRAFT)


def test_draft_cannot_be_rejected():
    with pytest.raises(InvalidTransitionError, match="from Draft to Rejected"):
        check_score_transition(ScoreStatus.DRAFT, ScoreStatus.REJECTED)


@pytest.mark.parametrize("current, target", [
    (None, ResultStatus.SUBMITTED),
    (ResultStatus.DRAFT, ResultStatus.SUBMITTED),
    (ResultStatus.SUBMITTED, ResultStatus.SUBMITTED),
    (ResultStatus.SUBMITTED, ResultStatus.APPROVED),
    (ResultStatus.SUBMITTED, ResultStatus.REJECTED),
    (ResultStatus.REJECTED, ResultStatus.SUBMITTED),
])
def test_allowed_result_transitions(current, target):
    check_result_transition(current, target)


@pytest.mark.parametrize("target", [
    ResultStatus.DRAFT, ResultStatus.SUBMITTED, ResultStatus.APPROVED, ResultStatus.REJECTED,
])
def test_approved_result_is_final(target):
    with pytest.raises(InvalidTransitionError, match="already been approved"):
        check_result_transition(ResultStatus.APPROVED, target)


def test_draft_result_cannot_be_approved_directly():
    with pytest.raises(InvalidTransitionError, match="from Draft to Approved"):
        check_result_transition(ResultStatus.DRAFT, ResultStatus.APPROVED)


def test_role_checks_compare_teacher_profiles():
    assert is_class_teacher(teacher(10), SCHOOL_CLASS)
    assert not is_class_teacher(teacher(20), SCHOOL_CLASS)
    assert is_subject_teacher(teacher(20), ASSIGNMENT)
    assert not is_subject_teacher(PRINCIPAL, ASSIGNMENT)
    assert not is_subject_teacher(None, ASSIGNMENT)


def test_guards_raise_not_authorized():
    ensure_subject_teacher(teacher(20), ASSIGNMENT)
    ensure_class_teacher(teacher(10), SCHOOL_CLASS)
    ensure_approver(PRINCIPAL)

    with pytest.raises(NotAuthorizedError) as excinfo:
        ensure_subject_teacher(teacher(10), ASSIGNMENT)
    assert excinfo.value.status_code == 403

    with pytest.raises(NotAuthorizedError):
        ensure_class_teacher(PRINCIPAL, SCHOOL_CLASS)
    with pytest.raises(NotAuthorizedError):
        ensure_approver(teacher(10))


def test_score_rejection_is_for_class_teacher_or_approver():
    ensure_can_reject_score(teacher(10), ASSIGNMENT)
    ensure_can_reject_score(PRINCIPAL, ASSIGNMENT)

    with pytest.raises(NotAuthorizedError):
        ensure_can_reject_score(teacher(20), ASSIGNMENT)
