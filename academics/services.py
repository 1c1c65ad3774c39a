"""
Result workflow services.

ScoreService       subject teacher score entry, submission and corrections
RatingService      class teacher behavioural ratings and attendance
CompilationService class teacher compilation of term results
ApprovalService    principal / school admin decisions on compiled results
GuardianService    parents reading their children's approved results

Every service is built with its collaborators (repository, notification sink,
comment generator, clock). The factories at the bottom give the default wiring.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from notifications.services import DatabaseNotificationSink, NotificationIntent

from . import workflow
from .aggregation import build_class_standings
from .comments import CommentGenerator, principal_comment
from .completeness import evaluate_completeness
from .exceptions import (
    InvalidTransitionError,
    NotAuthorizedError,
    ResultWorkflowError,
    ScoreValidationError,
)
from .grading import round_half_up
from .models import CA_MAX, EXAM_MAX, TERM_CHOICES, AffectiveRating, PsychomotorRating
from .repository import ResultRepository
from .score_csv import parse_rows, render_scores
from .signals import result_status_changed, score_status_changed, send_after_commit
from .workflow import ResultStatus, ScoreStatus

logger = logging.getLogger(__name__)

TERM_LABELS = tuple(value for value, _ in TERM_CHOICES)


@dataclass
class BatchOutcome:
    succeeded: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    skipped: list = field(default_factory=list)

    def add_failure(self, record_id, message):
        self.failed.append({"id": record_id, "error": message})

    def as_dict(self):
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "success_count": len(self.succeeded),
            "failure_count": len(self.failed),
        }


@dataclass
class ImportOutcome:
    imported: int = 0
    error_count: int = 0
    locked: int = 0
    errors: list = field(default_factory=list)

    def as_dict(self):
        return {
            "imported": self.imported,
            "error_count": self.error_count,
            "locked": self.locked,
            "errors": self.errors,
        }


def clean_component(value, label, maximum):
    """Blank means 0. Anything else must be a number between 0 and maximum."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ScoreValidationError(f"{label} must be a number.")
    if not number.is_finite() or number < 0 or number > maximum:
        raise ScoreValidationError(f"{label} must be between 0 and {maximum}.")
    return round_half_up(number)


def clean_components(ca1, ca2, exam):
    return (
        clean_component(ca1, "1st CA", CA_MAX),
        clean_component(ca2, "2nd CA", CA_MAX),
        clean_component(exam, "Exam", EXAM_MAX),
    )


def check_term(term):
    if term not in TERM_LABELS:
        raise ScoreValidationError(f"Unknown term '{term}'.")


def require_text(value, message):
    text = (value or "").strip()
    if not text:
        raise ScoreValidationError(message)
    return text


def user_of(teacher_profile):
    return teacher_profile.user if teacher_profile is not None else None


# -------------------------
# Scores
# -------------------------
class ScoreService:

    def __init__(self, repository, sink, clock=timezone.now):
        self.repository = repository
        self.sink = sink
        self.clock = clock

    def _student_in_class(self, assignment, student):
        if student.school_class_id != assignment.school_class_id:
            raise ScoreValidationError(f"{student.full_name} is not in {assignment.school_class.name}.")

    def _write_values(self, score, values):
        score.ca1, score.ca2, score.exam = values

    @transaction.atomic
    def save_draft(self, user, assignment, student, ca1, ca2, exam, expected_version=None):
        workflow.ensure_subject_teacher(user, assignment)
        self._student_in_class(assignment, student)
        values = clean_components(ca1, ca2, exam)

        score = self.repository.get_score(assignment, student)
        current = score.status if score else None
        workflow.check_score_transition(current, ScoreStatus.DRAFT)

        if score is None:
            ca1, ca2, exam = values
            score = self.repository.create_score(
                student=student,
                subject_assignment=assignment,
                ca1=ca1,
                ca2=ca2,
                exam=exam,
                status=ScoreStatus.DRAFT,
                entered_by=user,
                entered_date=self.clock(),
            )
            send_after_commit(score_status_changed, type(score), score, None, user)
        else:
            self._write_values(score, values)
            score.entered_by = user
            score.entered_date = self.clock()
            self.repository.save_score(score, expected_version)
        return score

    def save_drafts(self, user, assignment, entries):
        """
        Autosave a batch of rows. Each row is saved on its own; locked or
        invalid rows are reported and the rest are kept.
        ``entries``: iterable of dicts with student_id, ca1, ca2, exam and
        optionally version.
        """
        workflow.ensure_subject_teacher(user, assignment)
        students = {s.pk: s for s in self.repository.class_students(assignment.school_class)}
        outcome = BatchOutcome()

        for entry in entries:
            student_id = entry.get("student_id")
            student = students.get(_as_int(student_id))
            if student is None:
                outcome.add_failure(student_id, "Student is not in this class.")
                continue
            try:
                with transaction.atomic():
                    self.save_draft(
                        user, assignment, student,
                        entry.get("ca1"), entry.get("ca2"), entry.get("exam"),
                        expected_version=entry.get("version"),
                    )
            except InvalidTransitionError as exc:
                outcome.skipped.append({"id": student.pk, "reason": exc.message})
            except ResultWorkflowError as exc:
                outcome.add_failure(student.pk, exc.message)
            else:
                outcome.succeeded.append(student.pk)

        logger.info(
            "Autosave for assignment %s: %s saved, %s skipped, %s failed",
            assignment.pk, len(outcome.succeeded), len(outcome.skipped), len(outcome.failed),
        )
        return outcome

    @transaction.atomic
    def submit_scores(self, user, assignment, entries=None, edit_mode=False):
        """
        Writes the given rows (if any) and moves every Draft of the assignment
        to Submitted. With ``edit_mode`` the given rows may also overwrite
        already submitted scores.

        Returns per-subject statistics over the submitted totals.
        """
        workflow.ensure_subject_teacher(user, assignment)
        now = self.clock()

        # Validate every row before writing any of them
        students = {s.pk: s for s in self.repository.class_students(assignment.school_class)}
        prepared = []
        for entry in entries or []:
            student = students.get(_as_int(entry.get("student_id")))
            if student is None:
                raise ScoreValidationError("Student is not in this class.")
            try:
                values = clean_components(entry.get("ca1"), entry.get("ca2"), entry.get("exam"))
            except ScoreValidationError as exc:
                raise ScoreValidationError(f"{student.full_name}: {exc.message}")
            score = self.repository.get_score(assignment, student)
            current = score.status if score else None
            if current == ScoreStatus.SUBMITTED:
                workflow.check_score_transition(current, ScoreStatus.SUBMITTED, edit_mode=edit_mode)
            elif current is not None:
                workflow.check_score_transition(current, ScoreStatus.SUBMITTED)
            prepared.append((student, score, values, entry.get("version")))

        submitted = []
        for student, score, values, version in prepared:
            if score is None:
                ca1, ca2, exam = values
                score = self.repository.create_score(
                    student=student,
                    subject_assignment=assignment,
                    ca1=ca1,
                    ca2=ca2,
                    exam=exam,
                    status=ScoreStatus.DRAFT,
                    entered_by=user,
                    entered_date=now,
                )
                continue
            if score.status == ScoreStatus.DRAFT:
                self._write_values(score, values)
                self.repository.save_score(score, version)
                continue

            previous = score.status
            self._write_values(score, values)
            score.status = ScoreStatus.SUBMITTED
            self._clear_rejection(score)
            score.entered_by = user
            score.entered_date = now
            self.repository.save_score(score, version)
            submitted.append(score)
            send_after_commit(score_status_changed, type(score), score, previous, user)

        for score in self.repository.scores_for_assignment(assignment, status=ScoreStatus.DRAFT):
            workflow.check_score_transition(score.status, ScoreStatus.SUBMITTED)
            score.status = ScoreStatus.SUBMITTED
            score.entered_by = user
            score.entered_date = now
            self.repository.save_score(score)
            submitted.append(score)
            send_after_commit(score_status_changed, type(score), score, ScoreStatus.DRAFT, user)

        summary = self.subject_statistics(assignment)
        summary["submitted_count"] = len(submitted)
        logger.info(
            "%s submitted %s scores for assignment %s",
            user, len(submitted), assignment.pk,
        )

        class_teacher = user_of(assignment.school_class.form_teacher)
        if submitted and class_teacher is not None:
            self.sink.emit(NotificationIntent(
                recipient=class_teacher,
                title="Scores submitted for review",
                message=(
                    f"{assignment.subject.name} scores for {assignment.school_class.name} "
                    f"({assignment.term} term) were submitted by {user.display_name}: "
                    f"{len(submitted)} student(s)."
                ),
                notification_type="info",
                target_audience="teachers",
                sent_by=user,
            ))
        return summary

    def subject_statistics(self, assignment):
        totals = [
            s.total for s in self.repository.scores_for_assignment(assignment, status=ScoreStatus.SUBMITTED)
        ]
        if not totals:
            zero = Decimal("0.00")
            return {"class_average": zero, "class_max": zero, "class_min": zero, "count": 0}
        return {
            "class_average": round_half_up(sum(totals) / len(totals)),
            "class_max": max(totals),
            "class_min": min(totals),
            "count": len(totals),
        }

    @staticmethod
    def _clear_rejection(score):
        score.rejection_reason = ""
        score.rejected_by = None
        score.rejected_date = None

    @transaction.atomic
    def reject_score(self, user, score, reason):
        assignment = score.subject_assignment
        workflow.ensure_can_reject_score(user, assignment)
        reason = require_text(reason, "A rejection reason is required.")
        workflow.check_score_transition(score.status, ScoreStatus.REJECTED)

        previous = score.status
        score.status = ScoreStatus.REJECTED
        score.rejection_reason = reason
        score.rejected_by = user
        score.rejected_date = self.clock()
        self.repository.save_score(score)
        send_after_commit(score_status_changed, type(score), score, previous, user)
        logger.info("Score %s rejected by %s", score.pk, user)

        subject_teacher = user_of(assignment.teacher)
        if subject_teacher is not None:
            self.sink.emit(NotificationIntent(
                recipient=subject_teacher,
                title="Score rejected",
                message=(
                    f"{assignment.subject.name} score for {score.student.full_name} "
                    f"({assignment.school_class.name}) was rejected: {reason}"
                ),
                notification_type="warning",
                target_audience="teachers",
                sent_by=user,
            ))
        return score

    def correction_notice(self, user, score):
        """The rejection the subject teacher must see before correcting a score."""
        workflow.ensure_subject_teacher(user, score.subject_assignment)
        if score.status != ScoreStatus.REJECTED:
            return None
        return {
            "score_id": score.pk,
            "student": score.student.full_name,
            "reason": score.rejection_reason,
            "rejected_by": score.rejected_by.display_name if score.rejected_by else None,
            "rejected_date": score.rejected_date.isoformat() if score.rejected_date else None,
        }

    @transaction.atomic
    def resubmit_score(self, user, score, ca1, ca2, exam, expected_version=None):
        assignment = score.subject_assignment
        workflow.ensure_subject_teacher(user, assignment)
        if score.status != ScoreStatus.REJECTED:
            raise InvalidTransitionError("Only rejected scores can be resubmitted.")
        values = clean_components(ca1, ca2, exam)
        workflow.check_score_transition(score.status, ScoreStatus.SUBMITTED)

        self._write_values(score, values)
        score.status = ScoreStatus.SUBMITTED
        self._clear_rejection(score)
        score.entered_by = user
        score.entered_date = self.clock()
        self.repository.save_score(score, expected_version)
        send_after_commit(score_status_changed, type(score), score, ScoreStatus.REJECTED, user)
        logger.info("Score %s resubmitted by %s", score.pk, user)

        class_teacher = user_of(assignment.school_class.form_teacher)
        if class_teacher is not None:
            self.sink.emit(NotificationIntent(
                recipient=class_teacher,
                title="Corrected score resubmitted",
                message=(
                    f"{assignment.subject.name} score for {score.student.full_name} "
                    f"was corrected and resubmitted."
                ),
                notification_type="info",
                target_audience="teachers",
                sent_by=user,
            ))
        return score

    def import_csv(self, user, assignment, text):
        workflow.ensure_subject_teacher(user, assignment)
        by_admission = {
            s.admission_number: s for s in self.repository.class_students(assignment.school_class)
        }
        outcome = ImportOutcome()

        for row in parse_rows(text):
            student = by_admission.get(row.reg_id)
            if student is None:
                outcome.error_count += 1
                outcome.errors.append(f"Line {row.line_number}: unknown Reg ID '{row.reg_id}'.")
                continue
            try:
                values = clean_components(row.ca1, row.ca2, row.exam)
            except ScoreValidationError as exc:
                outcome.error_count += 1
                outcome.errors.append(f"Line {row.line_number}: {exc.message}")
                continue

            existing = self.repository.get_score(assignment, student)
            if existing is not None and existing.status == ScoreStatus.SUBMITTED:
                outcome.locked += 1
                continue
            try:
                with transaction.atomic():
                    self.save_draft(user, assignment, student, *values)
            except ResultWorkflowError as exc:
                outcome.error_count += 1
                outcome.errors.append(f"Line {row.line_number}: {exc.message}")
            else:
                outcome.imported += 1

        logger.info(
            "CSV import for assignment %s: %s imported, %s errors, %s locked",
            assignment.pk, outcome.imported, outcome.error_count, outcome.locked,
        )
        return outcome

    def export_csv(self, user, assignment):
        if not workflow.is_approver(user):
            workflow.ensure_subject_teacher(user, assignment)
        students = self.repository.class_students(assignment.school_class)
        scores = {s.student_id: s for s in self.repository.scores_for_assignment(assignment)}
        return render_scores(students, scores)

    @staticmethod
    def export_filename(assignment):
        session = assignment.academic_session.name.replace("/", "-")
        return f"{assignment.school_class.name} - {assignment.subject.name}_{assignment.term}_{session}.csv"


# -------------------------
# Ratings and attendance
# -------------------------
class RatingService:

    def __init__(self, repository):
        self.repository = repository

    def _clean_traits(self, model, traits):
        values = {}
        for key, raw in (traits or {}).items():
            if key.endswith("_remark") and key[:-len("_remark")] in model.TRAITS:
                values[key] = str(raw or "").strip()[:255]
                continue
            if key not in model.TRAITS:
                raise ScoreValidationError(f"Unknown trait '{key}'.")
            try:
                rating = int(raw)
            except (TypeError, ValueError):
                raise ScoreValidationError(f"{key.title()} must be a number from 1 to 5.")
            if rating < 1 or rating > 5:
                raise ScoreValidationError(f"{key.title()} must be a number from 1 to 5.")
            values[key] = rating
        return values

    @transaction.atomic
    def _upsert(self, model, user, school_class, student, academic_session, term, traits):
        workflow.ensure_class_teacher(user, school_class)
        check_term(term)
        if student.school_class_id != school_class.pk:
            raise ScoreValidationError(f"{student.full_name} is not in {school_class.name}.")
        values = self._clean_traits(model, traits)
        values["rated_by"] = user
        rating = self.repository.upsert_rating(model, student, school_class, academic_session, term, values)
        logger.info("%s saved for %s by %s", model.__name__, student.pk, user)
        return rating

    def upsert_affective(self, user, school_class, student, academic_session, term, traits):
        return self._upsert(AffectiveRating, user, school_class, student, academic_session, term, traits)

    def upsert_psychomotor(self, user, school_class, student, academic_session, term, traits):
        return self._upsert(PsychomotorRating, user, school_class, student, academic_session, term, traits)

    @transaction.atomic
    def mark_attendance(self, user, school_class, date, academic_session, term, marks):
        """``marks`` maps student id to True (present) or False (absent)."""
        workflow.ensure_class_teacher(user, school_class)
        check_term(term)
        students = {s.pk: s for s in self.repository.class_students(school_class)}

        resolved = []
        for student_id, is_present in marks.items():
            student = students.get(_as_int(student_id))
            if student is None:
                raise ScoreValidationError(f"Student {student_id} is not in {school_class.name}.")
            resolved.append((student, bool(is_present)))

        records = [
            self.repository.mark_attendance(student, school_class, academic_session, term, date, is_present, user)
            for student, is_present in resolved
        ]
        logger.info("Attendance for %s on %s marked by %s (%s students)", school_class.pk, date, user, len(records))
        return records


# -------------------------
# Compilation
# -------------------------
class CompilationService:

    def __init__(self, repository, sink, comment_generator=None, clock=timezone.now):
        self.repository = repository
        self.sink = sink
        self.comment_generator = comment_generator or CommentGenerator()
        self.clock = clock

    def class_standings(self, school_class, academic_session, term):
        """Recomputed from the store on every call."""
        check_term(term)
        snapshot = self.repository.class_snapshot(school_class, academic_session, term)
        return build_class_standings(snapshot)

    def _completeness_from(self, snapshot, student):
        return evaluate_completeness(
            student.pk,
            snapshot.scores,
            snapshot.active_assignment_ids,
            student.pk in snapshot.affective_student_ids,
            student.pk in snapshot.psychomotor_student_ids,
        )

    def completeness(self, school_class, student, academic_session, term):
        check_term(term)
        snapshot = self.repository.class_snapshot(school_class, academic_session, term)
        return self._completeness_from(snapshot, student)

    def comment_options(self, user, school_class, student, academic_session, term):
        workflow.ensure_class_teacher(user, school_class)
        standings = self.class_standings(school_class, academic_session, term)
        aggregate, standing = standings.for_student(student.pk)
        return {
            "options": self.comment_generator.generate_options(
                aggregate.average_score, standing.position, standing.total_students
            ),
            "principal_suggestion": principal_comment(aggregate.average_score),
        }

    def class_results(self, user, school_class, academic_session, term, status=None):
        """Compiled results of the class, rejected ones included, for its class teacher."""
        workflow.ensure_class_teacher(user, school_class)
        check_term(term)
        return self.repository.results_for_class(school_class, academic_session, term, status=status)

    def correction_notice(self, user, result):
        """The principal's reason the class teacher must see before correcting a result."""
        workflow.ensure_class_teacher(user, result.school_class)
        if result.status != ResultStatus.REJECTED:
            return None
        return {
            "result_id": result.pk,
            "student": result.student.full_name,
            "reason": result.rejection_reason,
            "rejected_by": result.rejected_by.display_name if result.rejected_by else None,
            "rejected_date": result.rejected_date.isoformat() if result.rejected_date else None,
        }

    @transaction.atomic
    def save_draft_result(self, user, school_class, student, academic_session, term, comment,
                          expected_version=None):
        workflow.ensure_class_teacher(user, school_class)
        check_term(term)
        result = self.repository.get_result(student, school_class, academic_session, term)
        current = result.status if result else None
        workflow.check_result_transition(current, ResultStatus.DRAFT)

        if result is None:
            result = self.repository.create_result(
                student=student,
                school_class=school_class,
                academic_session=academic_session,
                term=term,
                class_teacher_comment=(comment or "").strip(),
                status=ResultStatus.DRAFT,
                compiled_by=user,
            )
        else:
            result.class_teacher_comment = (comment or "").strip()
            result.status = ResultStatus.DRAFT
            self.repository.save_result(result, expected_version)
        if current != ResultStatus.DRAFT:
            send_after_commit(result_status_changed, type(result), result, current, user)
        return result

    @transaction.atomic
    def submit_result(self, user, school_class, student, academic_session, term, comment=None,
                      auto_comment=False, times_present=None, expected_version=None):
        workflow.ensure_class_teacher(user, school_class)
        check_term(term)
        if student.school_class_id != school_class.pk:
            raise ScoreValidationError(f"{student.full_name} is not in {school_class.name}.")

        snapshot = self.repository.class_snapshot(school_class, academic_session, term)
        report = self._completeness_from(snapshot, student)
        report.raise_if_incomplete(student.full_name)

        standings = build_class_standings(snapshot)
        aggregate, standing = standings.for_student(student.pk)
        statistics = standings.statistics

        if auto_comment:
            comment = self.comment_generator.generate(
                aggregate.average_score, standing.position, standing.total_students
            )
        comment = require_text(comment, "A class teacher comment is required.")

        result = self.repository.get_result(student, school_class, academic_session, term)
        current = result.status if result else None
        workflow.check_result_transition(current, ResultStatus.SUBMITTED)

        present, absent, total_days = self.repository.attendance_summary(
            student, school_class, academic_session, term
        )
        if times_present is not None:
            present = _as_int(times_present)
            if present is None or present < 0 or present > total_days:
                raise ScoreValidationError(f"Times present must be between 0 and {total_days}.")
            absent = total_days - present

        affective = self.repository.get_rating(AffectiveRating, student, school_class, academic_session, term)
        psychomotor = self.repository.get_rating(PsychomotorRating, student, school_class, academic_session, term)

        values = {
            "scores_snapshot": [s.as_dict() for s in aggregate.scores],
            "affective_snapshot": affective.snapshot(),
            "psychomotor_snapshot": psychomotor.snapshot(),
            "total_score": aggregate.total_score,
            "average_score": aggregate.average_score,
            "class_average": statistics.class_average,
            "class_highest": statistics.class_highest,
            "class_lowest": statistics.class_lowest,
            "position": standing.position,
            "total_students": standing.total_students,
            "times_present": present,
            "times_absent": absent,
            "total_attendance_days": total_days,
            "class_teacher_comment": comment,
            "status": ResultStatus.SUBMITTED,
            "rejection_reason": "",
            "rejected_by": None,
            "rejected_date": None,
            "compiled_by": user,
            "compiled_date": self.clock(),
            "approved_by": None,
            "approved_date": None,
            "print_approved": False,
            "print_approved_by": None,
            "print_approved_date": None,
        }

        if result is None:
            result = self.repository.create_result(
                student=student,
                school_class=school_class,
                academic_session=academic_session,
                term=term,
                principal_comment=principal_comment(aggregate.average_score),
                **values,
            )
        else:
            for name, value in values.items():
                setattr(result, name, value)
            if not result.principal_comment.strip():
                result.principal_comment = principal_comment(aggregate.average_score)
            self.repository.save_result(result, expected_version)

        send_after_commit(result_status_changed, type(result), result, current, user)
        logger.info(
            "Result for student %s submitted by %s (position %s of %s)",
            student.pk, user, standing.position, standing.total_students,
        )
        return result

    def submit_all(self, user, school_class, academic_session, term, auto_comment=True):
        """
        Submit every complete student whose result is not already submitted
        or approved. Each student is saved on its own; failures are reported.
        """
        workflow.ensure_class_teacher(user, school_class)
        check_term(term)
        snapshot = self.repository.class_snapshot(school_class, academic_session, term)
        existing = {
            r.student_id: r for r in self.repository.results_for_class(school_class, academic_session, term)
        }
        outcome = BatchOutcome()

        for student in self.repository.class_students(school_class):
            result = existing.get(student.pk)
            if result is not None and result.status in (ResultStatus.SUBMITTED, ResultStatus.APPROVED):
                outcome.skipped.append({"id": student.pk, "reason": f"Already {result.status.lower()}."})
                continue
            if not self._completeness_from(snapshot, student).is_complete:
                outcome.skipped.append({"id": student.pk, "reason": "Result is incomplete."})
                continue
            comment = result.class_teacher_comment if result is not None else None
            try:
                with transaction.atomic():
                    self.submit_result(
                        user, school_class, student, academic_session, term,
                        comment=comment,
                        auto_comment=auto_comment or not (comment or "").strip(),
                    )
            except ResultWorkflowError as exc:
                outcome.add_failure(student.pk, exc.message)
            else:
                outcome.succeeded.append(student.pk)

        logger.info(
            "Submit all for class %s: %s submitted, %s skipped, %s failed",
            school_class.pk, len(outcome.succeeded), len(outcome.skipped), len(outcome.failed),
        )
        return outcome


# -------------------------
# Approval
# -------------------------
class ApprovalService:

    def __init__(self, repository, sink, clock=timezone.now):
        self.repository = repository
        self.sink = sink
        self.clock = clock

    def _class_teacher(self, result):
        return user_of(result.school_class.form_teacher)

    @transaction.atomic
    def approve(self, user, result, principal_comment=None, expected_version=None):
        workflow.ensure_approver(user)
        workflow.check_result_transition(result.status, ResultStatus.APPROVED)
        comment = (principal_comment or "").strip() or result.principal_comment.strip()
        if not comment:
            raise ScoreValidationError("A principal comment is required to approve a result.")

        previous = result.status
        result.status = ResultStatus.APPROVED
        result.principal_comment = comment
        result.approved_by = user
        result.approved_date = self.clock()
        self.repository.save_result(result, expected_version)
        send_after_commit(result_status_changed, type(result), result, previous, user)
        logger.info("Result %s approved by %s", result.pk, user)

        student = result.student
        guardian = student.guardian
        if guardian is not None and guardian.user is not None:
            self.sink.emit(NotificationIntent(
                recipient=guardian.user,
                title="Result available",
                message=f"{student.full_name}'s {result.term} term result has been approved.",
                notification_type="success",
                target_audience="parents",
                sent_by=user,
            ))
        class_teacher = self._class_teacher(result)
        if class_teacher is not None:
            self.sink.emit(NotificationIntent(
                recipient=class_teacher,
                title="Result approved",
                message=f"{student.full_name}'s {result.term} term result was approved.",
                notification_type="success",
                target_audience="teachers",
                sent_by=user,
            ))
        return result

    @transaction.atomic
    def reject(self, user, result, reason, expected_version=None):
        workflow.ensure_approver(user)
        reason = require_text(reason, "A rejection reason is required.")
        workflow.check_result_transition(result.status, ResultStatus.REJECTED)

        previous = result.status
        result.status = ResultStatus.REJECTED
        result.rejection_reason = reason
        result.rejected_by = user
        result.rejected_date = self.clock()
        result.approved_by = None
        result.approved_date = None
        result.print_approved = False
        result.print_approved_by = None
        result.print_approved_date = None
        self.repository.save_result(result, expected_version)
        send_after_commit(result_status_changed, type(result), result, previous, user)
        logger.info("Result %s rejected by %s", result.pk, user)

        class_teacher = self._class_teacher(result)
        if class_teacher is not None:
            self.sink.emit(NotificationIntent(
                recipient=class_teacher,
                title="Result rejected",
                message=(
                    f"{result.student.full_name}'s {result.term} term result was rejected: {reason}"
                ),
                notification_type="warning",
                target_audience="teachers",
                sent_by=user,
            ))
        return result

    def _bulk(self, user, result_ids, action):
        results = self.repository.results_by_ids(result_ids)
        outcome = BatchOutcome()
        for result_id in result_ids:
            result = results.get(_as_int(result_id))
            if result is None:
                outcome.add_failure(result_id, "Result not found.")
                continue
            try:
                with transaction.atomic():
                    action(result)
            except ResultWorkflowError as exc:
                outcome.add_failure(result.pk, exc.message)
            else:
                outcome.succeeded.append(result.pk)
        return outcome

    def bulk_approve(self, user, result_ids, comment):
        workflow.ensure_approver(user)
        comment = require_text(comment, "A principal comment is required to approve results.")
        outcome = self._bulk(user, result_ids, lambda result: self.approve(user, result, comment))
        logger.info("Bulk approve by %s: %s approved, %s failed", user, len(outcome.succeeded), len(outcome.failed))
        return outcome

    def bulk_reject(self, user, result_ids, reason):
        workflow.ensure_approver(user)
        reason = require_text(reason, "A rejection reason is required.")
        outcome = self._bulk(user, result_ids, lambda result: self.reject(user, result, reason))
        logger.info("Bulk reject by %s: %s rejected, %s failed", user, len(outcome.succeeded), len(outcome.failed))
        return outcome

    @transaction.atomic
    def set_print_approval(self, user, result, approved=True, expected_version=None):
        workflow.ensure_approver(user)
        result.print_approved = bool(approved)
        result.print_approved_by = user if approved else None
        result.print_approved_date = self.clock() if approved else None
        self.repository.save_result(result, expected_version)
        logger.info("Print approval for result %s set to %s by %s", result.pk, result.print_approved, user)
        return result

    @transaction.atomic
    def delete_result(self, user, result):
        workflow.ensure_approver(user)
        self.repository.delete_result(result)
        logger.info("Result %s deleted by %s", result.pk, user)


# -------------------------
# Guardians
# -------------------------
class GuardianService:
    """Read access for parents. Only approved results are ever returned."""

    def __init__(self, repository):
        self.repository = repository

    def children_results(self, user):
        parent = getattr(user, "parent_profile", None)
        if parent is None:
            logger.warning("User %s has no guardian profile", user)
            raise NotAuthorizedError("Only a guardian can view their children's results.")
        return self.repository.approved_results_for_guardian(parent)


def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# -------------------------
# Default wiring
# -------------------------
def score_service():
    return ScoreService(ResultRepository(), DatabaseNotificationSink())


def rating_service():
    return RatingService(ResultRepository())


def compilation_service():
    return CompilationService(ResultRepository(), DatabaseNotificationSink())


def approval_service():
    return ApprovalService(ResultRepository(), DatabaseNotificationSink())


def guardian_service():
    return GuardianService(ResultRepository())
