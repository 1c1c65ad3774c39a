from decimal import Decimal

import pytest

from academics.exceptions import (
    InvalidTransitionError,
    NotAuthorizedError,
    ScoreValidationError,
    StaleRecordError,
)
from academics.models import ScoreRecord
from academics.signals import score_status_changed
from academics.workflow import ScoreStatus


@pytest.fixture
def teacher_user(subject_teacher):
    return subject_teacher.user


def test_save_draft_creates_a_record_with_computed_fields(score_service, teacher_user, assignment, student):
    score = score_service.save_draft(teacher_user, assignment, student, "15", 17.5, "")

    score.refresh_from_db()
    assert score.status == ScoreStatus.DRAFT
    assert score.total == Decimal("32.50")
    assert score.grade == "E"
    assert score.exam == Decimal("0")
    assert score.term == "First"
    assert score.academic_session_id == assignment.academic_session_id
    assert score.entered_by == teacher_user


def test_save_draft_updates_an_existing_draft(score_service, teacher_user, assignment, student):
    first = score_service.save_draft(teacher_user, assignment, student, 10, 10, 30)
    second = score_service.save_draft(teacher_user, assignment, student, 20, 20, 60)

    assert first.pk == second.pk
    assert ScoreRecord.objects.get(pk=first.pk).total == Decimal("100.00")
    assert second.version == 2


@pytest.mark.parametrize("ca1, ca2, exam, message", [
    (21, 0, 0, "1st CA must be between 0 and 20."),
    (0, -1, 0, "2nd CA must be between 0 and 20."),
    (0, 0, 65, "Exam must be between 0 and 60."),
    ("abc", 0, 0, "1st CA must be a number."),
])
def test_out_of_range_components_are_rejected(score_service, teacher_user, assignment, student,
                                              ca1, ca2, exam, message):
    with pytest.raises(ScoreValidationError) as excinfo:
        score_service.save_draft(teacher_user, assignment, student, ca1, ca2, exam)

    assert excinfo.value.message == message
    assert not ScoreRecord.objects.exists()


def test_only_the_subject_teacher_may_enter_scores(score_service, class_teacher, assignment, student):
    with pytest.raises(NotAuthorizedError):
        score_service.save_draft(class_teacher.user, assignment, student, 10, 10, 10)


def test_submitted_scores_are_locked_for_drafts(score_service, teacher_user, assignment, student, make_score):
    make_score(student, assignment, 10, 10, 40)

    with pytest.raises(InvalidTransitionError, match="locked"):
        score_service.save_draft(teacher_user, assignment, student, 20, 20, 60)


def test_stale_version_is_refused(score_service, teacher_user, assignment, student):
    score = score_service.save_draft(teacher_user, assignment, student, 10, 10, 30)
    score_service.save_draft(teacher_user, assignment, student, 11, 10, 30, expected_version=score.version)

    with pytest.raises(StaleRecordError):
        score_service.save_draft(teacher_user, assignment, student, 12, 10, 30, expected_version=1)

    assert ScoreRecord.objects.get(pk=score.pk).ca1 == Decimal("11.00")


def test_save_drafts_keeps_good_rows_and_reports_the_rest(score_service, teacher_user, assignment,
                                                          students, make_score):
    chidi, amaka, tunde = students
    make_score(tunde, assignment, 10, 10, 40)

    outcome = score_service.save_drafts(teacher_user, assignment, [
        {"student_id": chidi.pk, "ca1": 10, "ca2": 12, "exam": 40},
        {"student_id": amaka.pk, "ca1": 10, "ca2": 12, "exam": 99},
        {"student_id": tunde.pk, "ca1": 1, "ca2": 1, "exam": 1},
        {"student_id": 99999, "ca1": 1, "ca2": 1, "exam": 1},
    ])

    assert outcome.succeeded == [chidi.pk]
    assert [s["id"] for s in outcome.skipped] == [tunde.pk]
    assert outcome.failed == [
        {"id": amaka.pk, "error": "Exam must be between 0 and 60."},
        {"id": 99999, "error": "Student is not in this class."},
    ]
    assert ScoreRecord.objects.get(student=tunde).total == Decimal("60.00")


def test_submit_scores_promotes_drafts_and_notifies_class_teacher(
        score_service, teacher_user, assignment, students, class_teacher, sink):
    chidi, amaka, tunde = students
    score_service.save_draft(teacher_user, assignment, chidi, 15, 15, 50)

    summary = score_service.submit_scores(teacher_user, assignment, [
        {"student_id": amaka.pk, "ca1": 10, "ca2": 10, "exam": 40},
        {"student_id": tunde.pk, "ca1": 5, "ca2": 5, "exam": 30},
    ])

    assert set(ScoreRecord.objects.values_list("status", flat=True)) == {ScoreStatus.SUBMITTED}
    assert summary == {
        "class_average": Decimal("60.00"),
        "class_max": Decimal("80.00"),
        "class_min": Decimal("40.00"),
        "count": 3,
        "submitted_count": 3,
    }
    (intent,) = sink.for_recipient(class_teacher.user)
    assert intent.title == "Scores submitted for review"
    assert "Mathematics" in intent.message


def test_submit_scores_validates_every_row_first(score_service, teacher_user, assignment, students):
    chidi, amaka, _ = students

    with pytest.raises(ScoreValidationError, match="Amaka Bello: Exam"):
        score_service.submit_scores(teacher_user, assignment, [
            {"student_id": chidi.pk, "ca1": 10, "ca2": 10, "exam": 40},
            {"student_id": amaka.pk, "ca1": 10, "ca2": 10, "exam": 61},
        ])

    assert not ScoreRecord.objects.exists()


def test_submitted_scores_change_only_in_edit_mode(score_service, teacher_user, assignment, student, make_score):
    score = make_score(student, assignment, 10, 10, 40)
    entry = {"student_id": student.pk, "ca1": 12, "ca2": 10, "exam": 40}

    with pytest.raises(InvalidTransitionError):
        score_service.submit_scores(teacher_user, assignment, [entry])

    score_service.submit_scores(teacher_user, assignment, [entry], edit_mode=True)

    score.refresh_from_db()
    assert score.status == ScoreStatus.SUBMITTED
    assert score.total == Decimal("62.00")


def test_status_signal_fires_after_commit(score_service, teacher_user, assignment, student,
                                          django_capture_on_commit_callbacks):
    received = []

    def listener(sender, instance, previous_status, status, actor, **kwargs):
        received.append((previous_status, status, actor))

    score_status_changed.connect(listener)
    try:
        with django_capture_on_commit_callbacks(execute=True):
            score_service.submit_scores(teacher_user, assignment, [
                {"student_id": student.pk, "ca1": 10, "ca2": 10, "exam": 40},
            ])
    finally:
        score_status_changed.disconnect(listener)

    assert received == [(ScoreStatus.DRAFT, ScoreStatus.SUBMITTED, teacher_user)]


def test_class_teacher_rejects_and_subject_teacher_resubmits(
        score_service, teacher_user, class_teacher, assignment, student, make_score, sink):
    score = make_score(student, assignment, 10, 10, 40)

    score_service.reject_score(class_teacher.user, score, "CA1 looks wrong")

    score.refresh_from_db()
    assert score.status == ScoreStatus.REJECTED
    assert score.rejected_by == class_teacher.user
    (warning,) = sink.for_recipient(teacher_user)
    assert warning.notification_type == "warning"
    assert "CA1 looks wrong" in warning.message

    notice = score_service.correction_notice(teacher_user, score)
    assert notice["reason"] == "CA1 looks wrong"
    assert notice["student"] == "Chidi Okafor"

    score_service.resubmit_score(teacher_user, score, 15, 10, 40)

    score.refresh_from_db()
    assert score.status == ScoreStatus.SUBMITTED
    assert score.total == Decimal("65.00")
    assert score.rejection_reason == ""
    assert score.rejected_by is None
    assert score_service.correction_notice(teacher_user, score) is None
    assert [i.title for i in sink.for_recipient(class_teacher.user)] == ["Corrected score resubmitted"]


def test_reject_requires_a_reason(score_service, principal, assignment, student, make_score):
    score = make_score(student, assignment, 10, 10, 40)

    with pytest.raises(ScoreValidationError):
        score_service.reject_score(principal, score, "   ")


def test_subject_teacher_cannot_reject(score_service, teacher_user, assignment, student, make_score):
    score = make_score(student, assignment, 10, 10, 40)

    with pytest.raises(NotAuthorizedError):
        score_service.reject_score(teacher_user, score, "no")


def test_only_rejected_scores_can_be_resubmitted(score_service, teacher_user, assignment, student, make_score):
    score = make_score(student, assignment, 10, 10, 40, status=ScoreStatus.DRAFT)

    with pytest.raises(InvalidTransitionError, match="Only rejected scores"):
        score_service.resubmit_score(teacher_user, score, 10, 10, 40)


def test_rejected_score_cannot_be_saved_as_draft(score_service, teacher_user, assignment, student, make_score):
    make_score(student, assignment, 10, 10, 40, status=ScoreStatus.REJECTED)

    with pytest.raises(InvalidTransitionError, match="resubmit"):
        score_service.save_draft(teacher_user, assignment, student, 12, 10, 40)


def test_export_lists_every_student_in_name_order(score_service, teacher_user, principal, assignment,
                                                   students, make_score):
    make_score(students[0], assignment, 15, 17.5, 40)

    text = score_service.export_csv(teacher_user, assignment)

    assert text == score_service.export_csv(principal, assignment)
    lines = text.splitlines()
    assert lines[1] == '1,GC-002,"Amaka Bello",,,,0'
    assert lines[2] == '2,GC-001,"Chidi Okafor",15,17.5,40,72.50'
    assert lines[3] == '3,GC-003,"Tunde Yusuf",,,,0'


def test_export_filename(assignment):
    from academics.services import ScoreService

    assert ScoreService.export_filename(assignment) == "JSS1 - Mathematics_First_2024-2025.csv"


def test_import_saves_valid_rows_and_counts_the_rest(score_service, teacher_user, assignment, students,
                                                     make_score):
    chidi, amaka, tunde = students
    make_score(tunde, assignment, 10, 10, 40)
    text = "\n".join([
        "S/No,Reg ID,Student Name,1st CA[20],2nd CA[20],Exams[60],Total [100]",
        '1,GC-001,"Chidi Okafor",15,18,45,78',
        '2,GC-002,"Amaka Bello",10,10,65,85',
        '3,GC-003,"Tunde Yusuf",20,20,60,100',
        '4,GC-999,"Nobody",1,1,1,3',
        "5,short,row",
    ])

    outcome = score_service.import_csv(teacher_user, assignment, text)

    assert (outcome.imported, outcome.error_count, outcome.locked) == (1, 2, 1)
    assert "Line 3: Exam must be between 0 and 60." in outcome.errors
    saved = ScoreRecord.objects.get(student=chidi)
    assert saved.status == ScoreStatus.DRAFT
    assert saved.total == Decimal("78.00")
    assert not ScoreRecord.objects.filter(student=amaka).exists()
    assert ScoreRecord.objects.get(student=tunde).total == Decimal("60.00")
