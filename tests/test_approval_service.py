import pytest

from academics.exceptions import InvalidTransitionError, NotAuthorizedError, ScoreValidationError
from academics.models import CompiledResult
from academics.services import GuardianService
from academics.workflow import ResultStatus


TERM = "First"


@pytest.fixture
def submitted_results(compilation_service, class_teacher, school_class, session, assignments, students,
                      make_score, rate):
    results = []
    for index, student in enumerate(students):
        for assignment in assignments:
            make_score(student, assignment, 10 + index, 10, 40)
        rate(student)
        results.append(compilation_service.submit_result(
            class_teacher.user, school_class, student, session, TERM, comment="Keep it up."
        ))
    return results


@pytest.fixture
def result(submitted_results):
    return submitted_results[0]


def test_approve_notifies_guardian_and_class_teacher(approval_service, principal, result, guardian,
                                                     class_teacher, sink):
    approval_service.approve(principal, result, "Well done.")

    result.refresh_from_db()
    assert result.status == ResultStatus.APPROVED
    assert result.principal_comment == "Well done."
    assert result.approved_by == principal
    assert result.approved_date is not None

    (to_parent,) = sink.for_recipient(guardian.user)
    assert (to_parent.notification_type, to_parent.target_audience) == ("success", "parents")
    assert "Chidi Okafor" in to_parent.message
    (to_teacher,) = sink.for_recipient(class_teacher.user)
    assert to_teacher.title == "Result approved"


def test_approve_keeps_the_prefilled_comment(approval_service, principal, result):
    prefilled = result.principal_comment

    approval_service.approve(principal, result)

    assert CompiledResult.objects.get(pk=result.pk).principal_comment == prefilled


def test_approve_needs_some_principal_comment(approval_service, principal, result):
    CompiledResult.objects.filter(pk=result.pk).update(principal_comment="")
    result.refresh_from_db()

    with pytest.raises(ScoreValidationError):
        approval_service.approve(principal, result, "  ")


def test_teachers_cannot_approve(approval_service, class_teacher, result):
    with pytest.raises(NotAuthorizedError):
        approval_service.approve(class_teacher.user, result, "Fine")


def test_approved_result_cannot_be_approved_again(approval_service, principal, result):
    approval_service.approve(principal, result, "Fine")

    with pytest.raises(InvalidTransitionError, match="already been approved"):
        approval_service.approve(principal, result, "Again")


def test_reject_clears_approval_and_notifies_class_teacher(approval_service, principal, result,
                                                           class_teacher, sink):
    approval_service.set_print_approval(principal, result, True)

    approval_service.reject(principal, result, "incorrect attendance")

    result.refresh_from_db()
    assert result.status == ResultStatus.REJECTED
    assert result.rejection_reason == "incorrect attendance"
    assert result.rejected_by == principal
    assert result.approved_by is None
    assert result.approved_date is None
    assert result.print_approved is False
    assert result.print_approved_by is None

    assert len(sink.intents) == 1
    (intent,) = sink.intents
    assert intent.recipient == class_teacher.user
    assert intent.notification_type == "warning"
    assert "incorrect attendance" in intent.message


def test_reject_requires_a_reason(approval_service, principal, result):
    with pytest.raises(ScoreValidationError, match="rejection reason"):
        approval_service.reject(principal, result, "")


def test_rejected_result_can_be_corrected_and_resubmitted(approval_service, compilation_service, principal,
                                                          class_teacher, school_class, session, result):
    approval_service.reject(principal, result, "incorrect attendance")

    resubmitted = compilation_service.submit_result(
        class_teacher.user, school_class, result.student, session, TERM, comment="Attendance fixed."
    )

    assert resubmitted.status == ResultStatus.SUBMITTED
    assert resubmitted.rejection_reason == ""
    assert resubmitted.rejected_by is None


def test_bulk_approve_continues_past_failures(approval_service, principal, submitted_results):
    first, second, third = submitted_results
    approval_service.approve(principal, second, "Already done.")

    outcome = approval_service.bulk_approve(principal, [first.pk, second.pk, third.pk, 987654], "Good term.")

    assert outcome.succeeded == [first.pk, third.pk]
    assert outcome.failed == [
        {"id": second.pk, "error": "This result has already been approved."},
        {"id": 987654, "error": "Result not found."},
    ]
    assert CompiledResult.objects.get(pk=third.pk).principal_comment == "Good term."
    assert outcome.as_dict()["success_count"] == 2


def test_bulk_reject(approval_service, principal, submitted_results):
    ids = [r.pk for r in submitted_results]

    outcome = approval_service.bulk_reject(principal, ids, "Recheck all scores")

    assert outcome.succeeded == ids
    assert set(CompiledResult.objects.values_list("status", flat=True)) == {ResultStatus.REJECTED}


def test_bulk_actions_validate_text_before_touching_results(approval_service, principal, submitted_results):
    ids = [r.pk for r in submitted_results]

    with pytest.raises(ScoreValidationError):
        approval_service.bulk_reject(principal, ids, " ")
    with pytest.raises(ScoreValidationError):
        approval_service.bulk_approve(principal, ids, "")

    assert set(CompiledResult.objects.values_list("status", flat=True)) == {ResultStatus.SUBMITTED}


def test_print_approval_toggle(approval_service, principal, result):
    approval_service.set_print_approval(principal, result, True)
    result.refresh_from_db()
    assert result.print_approved and result.print_approved_by == principal

    approval_service.set_print_approval(principal, result, False)
    result.refresh_from_db()
    assert not result.print_approved
    assert result.print_approved_by is None
    assert result.print_approved_date is None


def test_delete_result(approval_service, principal, class_teacher, result):
    with pytest.raises(NotAuthorizedError):
        approval_service.delete_result(class_teacher.user, result)

    approval_service.delete_result(principal, result)

    assert not CompiledResult.objects.filter(pk=result.pk).exists()


def test_class_teacher_reads_the_rejection_before_correcting(approval_service, compilation_service, principal,
                                                             class_teacher, school_class, session, result):
    assert compilation_service.correction_notice(class_teacher.user, result) is None

    approval_service.reject(principal, result, "incorrect attendance")

    notice = compilation_service.correction_notice(class_teacher.user, result)
    assert notice["result_id"] == result.pk
    assert notice["reason"] == "incorrect attendance"
    assert notice["rejected_by"] == principal.display_name
    assert notice["student"] == "Chidi Okafor"

    rejected = compilation_service.class_results(
        class_teacher.user, school_class, session, TERM, status=ResultStatus.REJECTED
    )
    assert [r.pk for r in rejected] == [result.pk]
    assert rejected[0].rejection_reason == "incorrect attendance"


def test_only_the_class_teacher_reads_class_results(compilation_service, subject_teacher, school_class, session,
                                                    result):
    with pytest.raises(NotAuthorizedError):
        compilation_service.class_results(subject_teacher.user, school_class, session, TERM)
    with pytest.raises(NotAuthorizedError):
        compilation_service.correction_notice(subject_teacher.user, result)


def test_guardian_sees_only_approved_results(repository, approval_service, principal, guardian, students,
                                             submitted_results):
    chidi_result = submitted_results[0]
    amaka_result = submitted_results[1]
    students[1].guardian = guardian
    students[1].save()
    guardians = GuardianService(repository)

    assert guardians.children_results(guardian.user) == []

    approval_service.approve(principal, chidi_result, "Well done.")
    approval_service.reject(principal, amaka_result, "incorrect attendance")

    assert [r.pk for r in guardians.children_results(guardian.user)] == [chidi_result.pk]


def test_non_guardians_cannot_read_children_results(repository, principal):
    with pytest.raises(NotAuthorizedError):
        GuardianService(repository).children_results(principal)
