"""
Database access for the result workflow.

Services never query the ORM directly; they go through ResultRepository so the
pure modules can work on ClassSnapshot values and updates can be versioned.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from .aggregation import ClassSnapshot, ScoreSnapshot
from .conf import results_setting
from .exceptions import ScoreValidationError, StaleRecordError
from .grading import compiled_grade
from .models import (
    AffectiveRating,
    AttendanceRecord,
    ClassTermInfo,
    CompiledResult,
    PsychomotorRating,
    ScoreRecord,
    SubjectAssignment,
)
from .workflow import ResultStatus

logger = logging.getLogger(__name__)


SCORE_FIELDS = (
    "ca1", "ca2", "exam", "total", "grade", "remark", "status",
    "rejection_reason", "rejected_by", "rejected_date",
    "entered_by", "entered_date",
)

RESULT_FIELDS = (
    "scores_snapshot", "affective_snapshot", "psychomotor_snapshot",
    "total_score", "average_score", "grade",
    "class_average", "class_highest", "class_lowest",
    "position", "total_students",
    "times_present", "times_absent", "total_attendance_days",
    "class_teacher_comment", "principal_comment",
    "status", "rejection_reason", "rejected_by", "rejected_date",
    "compiled_by", "compiled_date", "approved_by", "approved_date",
    "print_approved", "print_approved_by", "print_approved_date",
)


def _version_number(value):
    """Versions from a request body must be whole numbers, not strings."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScoreValidationError("Version must be a whole number.")
    return value


class ResultRepository:

    # -------------------------
    # Class membership
    # -------------------------
    def class_students(self, school_class):
        from students.models import Student
        return list(
            Student.objects
            .filter(school_class=school_class, is_active=True)
            .order_by("last_name", "first_name")
        )

    def active_assignments(self, school_class, academic_session, term):
        return list(
            SubjectAssignment.objects
            .filter(
                school_class=school_class,
                academic_session=academic_session,
                term=term,
                is_active=True,
            )
            .select_related("subject", "teacher__user")
        )

    def class_snapshot(self, school_class, academic_session, term) -> ClassSnapshot:
        students = self.class_students(school_class)
        assignments = self.active_assignments(school_class, academic_session, term)
        scores = (
            ScoreRecord.objects
            .filter(
                subject_assignment__school_class=school_class,
                academic_session=academic_session,
                term=term,
            )
            .select_related("subject_assignment__subject")
        )
        rating_filter = dict(
            school_class=school_class,
            academic_session=academic_session,
            term=term,
        )
        return ClassSnapshot(
            class_id=school_class.pk,
            student_ids=tuple(s.pk for s in students),
            active_assignment_ids=frozenset(a.pk for a in assignments),
            scores=tuple(self._score_snapshot(s) for s in scores),
            affective_student_ids=frozenset(
                AffectiveRating.objects.filter(**rating_filter).values_list("student_id", flat=True)
            ),
            psychomotor_student_ids=frozenset(
                PsychomotorRating.objects.filter(**rating_filter).values_list("student_id", flat=True)
            ),
        )

    @staticmethod
    def _score_snapshot(score):
        return ScoreSnapshot(
            score_id=score.pk,
            student_id=score.student_id,
            subject_assignment_id=score.subject_assignment_id,
            subject_name=score.subject_assignment.subject.name,
            ca1=score.ca1,
            ca2=score.ca2,
            exam=score.exam,
            total=score.total,
            grade=score.grade,
            status=score.status,
        )

    # -------------------------
    # Scores
    # -------------------------
    def get_score(self, assignment, student):
        return (
            ScoreRecord.objects
            .filter(subject_assignment=assignment, student=student)
            .first()
        )

    def scores_for_assignment(self, assignment, status=None):
        queryset = ScoreRecord.objects.filter(subject_assignment=assignment).select_related("student")
        if status is not None:
            queryset = queryset.filter(status=status)
        return list(queryset)

    def create_score(self, **fields):
        try:
            with transaction.atomic():
                return ScoreRecord.objects.create(**fields)
        except IntegrityError:
            # Someone else created the same record between our read and write
            raise StaleRecordError("This score")

    def save_score(self, score, expected_version=None):
        score.recalculate()
        self.save_versioned(score, SCORE_FIELDS, expected_version, label="This score")
        return score

    # -------------------------
    # Ratings and attendance
    # -------------------------
    def upsert_rating(self, model, student, school_class, academic_session, term, values):
        rating, _ = model.objects.update_or_create(
            student=student,
            school_class=school_class,
            academic_session=academic_session,
            term=term,
            defaults=values,
        )
        return rating

    def get_rating(self, model, student, school_class, academic_session, term):
        return model.objects.filter(
            student=student,
            school_class=school_class,
            academic_session=academic_session,
            term=term,
        ).first()

    def mark_attendance(self, student, school_class, academic_session, term, date, is_present, marked_by):
        record, _ = AttendanceRecord.objects.update_or_create(
            student=student,
            date=date,
            defaults={
                "school_class": school_class,
                "academic_session": academic_session,
                "term": term,
                "is_present": is_present,
                "marked_by": marked_by,
            },
        )
        return record

    def attendance_for_date(self, school_class, date):
        return list(
            AttendanceRecord.objects
            .filter(school_class=school_class, date=date)
            .select_related("student")
        )

    def attendance_summary(self, student, school_class, academic_session, term):
        """Returns (times_present, times_absent, total_attendance_days)."""
        records = AttendanceRecord.objects.filter(
            student=student,
            school_class=school_class,
            academic_session=academic_session,
            term=term,
        )
        present = records.filter(is_present=True).count()
        absent = records.filter(is_present=False).count()

        info = ClassTermInfo.objects.filter(
            school_class=school_class,
            academic_session=academic_session,
            term=term,
        ).first()
        if info and info.times_school_opened:
            total_days = info.times_school_opened
        else:
            total_days = results_setting("DEFAULT_ATTENDANCE_DAYS")
        return present, absent, total_days

    # -------------------------
    # Compiled results
    # -------------------------
    def get_result(self, student, school_class, academic_session, term):
        return CompiledResult.objects.filter(
            student=student,
            school_class=school_class,
            academic_session=academic_session,
            term=term,
        ).first()

    def results_for_class(self, school_class, academic_session, term, status=None):
        queryset = CompiledResult.objects.filter(
            school_class=school_class,
            academic_session=academic_session,
            term=term,
        ).select_related("student")
        if status is not None:
            queryset = queryset.filter(status=status)
        return list(queryset)

    def approved_results_for_guardian(self, parent):
        return list(
            CompiledResult.objects
            .filter(student__guardian=parent, status=ResultStatus.APPROVED)
            .select_related("student", "school_class", "academic_session")
            .order_by("student__last_name", "student__first_name", "academic_session__name", "term")
        )

    def results_by_ids(self, result_ids):
        results = CompiledResult.objects.filter(pk__in=result_ids).select_related(
            "student__guardian__user", "school_class__form_teacher__user"
        )
        return {r.pk: r for r in results}

    def create_result(self, **fields):
        try:
            with transaction.atomic():
                return CompiledResult.objects.create(**fields)
        except IntegrityError:
            raise StaleRecordError("This result")

    def save_result(self, result, expected_version=None):
        result.grade = compiled_grade(result.average_score)
        self.save_versioned(result, RESULT_FIELDS, expected_version, label="This result")
        return result

    def delete_result(self, result):
        CompiledResult.objects.filter(pk=result.pk).delete()

    # -------------------------
    # Change feed
    # -------------------------
    def changed_since(self, since, school=None):
        scores = ScoreRecord.objects.filter(updated_at__gt=since)
        results = CompiledResult.objects.filter(updated_at__gt=since)
        if school is not None:
            scores = scores.filter(subject_assignment__school_class__school=school)
            results = results.filter(school_class__school=school)
        return (
            list(scores.select_related("student", "subject_assignment__subject").order_by("updated_at")),
            list(results.select_related("student").order_by("updated_at")),
        )

    # -------------------------
    # Versioned writes
    # -------------------------
    def save_versioned(self, instance, field_names, expected_version=None, label="This record"):
        """
        Compare-and-swap update: writes only when the stored version still
        equals the one the caller loaded, then bumps it.
        """
        expected = instance.version if expected_version is None else _version_number(expected_version)
        values = {}
        for name in field_names:
            field = instance._meta.get_field(name)
            values[field.attname] = getattr(instance, field.attname)
        values["updated_at"] = timezone.now()

        updated = (
            type(instance).objects
            .filter(pk=instance.pk, version=expected)
            .update(version=F("version") + 1, **values)
        )
        if not updated:
            logger.warning(
                "Stale write on %s %s (expected version %s)",
                type(instance).__name__, instance.pk, expected,
            )
            raise StaleRecordError(label)

        instance.version = expected + 1
        instance.updated_at = values["updated_at"]
        return instance
