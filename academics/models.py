from django.conf import settings
from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from schools.models import School, AcademicSession
from teachers.models import TeacherProfile

from .grading import compiled_grade, subject_grade, subject_remark, to_decimal
from .workflow import ResultStatus, ScoreStatus


# -------------------------
# Terms
# -------------------------
TERM_CHOICES = (
    ("First", "First Term"),
    ("Second", "Second Term"),
    ("Third", "Third Term"),
)

CA_MAX = 20
EXAM_MAX = 60


# -------------------------
# School Class
# -------------------------
class SchoolClass(models.Model):
    school = models.ForeignKey(
        School,
        on_delete=models.CASCADE,
        related_name="classes"
    )
    name = models.CharField(max_length=50)  # e.g., JSS1, SS3
    form_teacher = models.ForeignKey(
        TeacherProfile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="form_classes",
        help_text="The class teacher who compiles and submits results for this class"
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        unique_together = ("school", "name")
        ordering = ["name"]

    def __str__(self):
        return f"{self.school.name} - {self.name}"


# -------------------------
# Subject
# -------------------------
class Subject(models.Model):
    school = models.ForeignKey(
        School,
        on_delete=models.CASCADE,
        related_name="subjects"
    )
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=20, blank=True, null=True)

    class Meta:
        unique_together = ("school", "name")
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.school.name})"


# -------------------------
# SubjectAssignment (Teacher Assignment per term)
# -------------------------
class SubjectAssignment(models.Model):
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        related_name="subject_assignments"
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name="assignments"
    )
    teacher = models.ForeignKey(
        TeacherProfile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subject_assignments"
    )
    academic_session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE
    )
    term = models.CharField(max_length=10, choices=TERM_CHOICES)
    is_active = models.BooleanField(default=True)

    class Meta:
        unique_together = ("school_class", "subject", "academic_session", "term")

    def clean(self):
        if self.teacher and self.teacher.school_id != self.school_class.school_id:
            raise ValidationError(
                "Assigned teacher must belong to the same school as the class."
            )
        if self.academic_session.school_id != self.school_class.school_id:
            raise ValidationError(
                "Academic session must belong to the same school as the class."
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.school_class} - {self.subject.name} ({self.term})"


# -------------------------
# Score Record (Per Subject)
# -------------------------
class ScoreRecord(models.Model):
    student = models.ForeignKey(
        "students.Student",  # String reference avoids circular import
        on_delete=models.CASCADE,
        related_name="score_records"
    )
    subject_assignment = models.ForeignKey(
        SubjectAssignment,
        on_delete=models.CASCADE,
        related_name="score_records"
    )
    academic_session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE
    )
    term = models.CharField(max_length=10, choices=TERM_CHOICES)

    ca1 = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(CA_MAX)],
        help_text="1st Continuous Assessment (0-20)"
    )
    ca2 = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(CA_MAX)],
        help_text="2nd Continuous Assessment (0-20)"
    )
    exam = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(EXAM_MAX)],
        help_text="Exam score (0-60)"
    )

    # Computed fields
    total = models.DecimalField(max_digits=5, decimal_places=2, default=0, editable=False)
    grade = models.CharField(max_length=1, default="F", editable=False)
    remark = models.CharField(max_length=20, blank=True, editable=False)

    status = models.CharField(
        max_length=10,
        choices=ScoreStatus.choices,
        default=ScoreStatus.DRAFT
    )
    rejection_reason = models.TextField(blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+"
    )
    rejected_date = models.DateTimeField(null=True, blank=True)

    entered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+"
    )
    entered_date = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = (
            "student",
            "subject_assignment",
            "academic_session",
            "term",
        )
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total__lte=100),
                name="score_total_at_most_100",
            )
        ]

    def __str__(self):
        return f"{self.student} - {self.subject_assignment.subject.name} ({self.status})"

    def recalculate(self):
        self.total = to_decimal(self.ca1) + to_decimal(self.ca2) + to_decimal(self.exam)
        self.grade = subject_grade(self.total)
        self.remark = subject_remark(self.total)

    def save(self, *args, **kwargs):
        # Term and session always follow the assignment
        self.term = self.subject_assignment.term
        self.academic_session_id = self.subject_assignment.academic_session_id
        self.recalculate()
        super().save(*args, **kwargs)


# -------------------------
# Behavioural ratings (1-5 per trait)
# -------------------------
RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class BehaviourRating(models.Model):
    """
    Shared columns of the affective and psychomotor ratings.
    One row per student, class, term and session, upserted by the class teacher.
    """
    TRAITS = ()

    student = models.ForeignKey("students.Student", on_delete=models.CASCADE, related_name="+")
    school_class = models.ForeignKey(SchoolClass, on_delete=models.CASCADE, related_name="+")
    academic_session = models.ForeignKey(AcademicSession, on_delete=models.CASCADE, related_name="+")
    term = models.CharField(max_length=10, choices=TERM_CHOICES)
    rated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        unique_together = (
            "student",
            "school_class",
            "academic_session",
            "term",
        )

    def snapshot(self):
        data = {}
        for trait in self.TRAITS:
            data[trait] = getattr(self, trait)
            data[f"{trait}_remark"] = getattr(self, f"{trait}_remark")
        return data


class AffectiveRating(BehaviourRating):
    TRAITS = ("attentiveness", "honesty", "punctuality", "neatness")

    attentiveness = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    attentiveness_remark = models.CharField(max_length=255, blank=True)
    honesty = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    honesty_remark = models.CharField(max_length=255, blank=True)
    punctuality = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    punctuality_remark = models.CharField(max_length=255, blank=True)
    neatness = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    neatness_remark = models.CharField(max_length=255, blank=True)

    class Meta(BehaviourRating.Meta):
        verbose_name_plural = "Affective Ratings"

    def __str__(self):
        return f"{self.student} - Affective ({self.term})"


class PsychomotorRating(BehaviourRating):
    TRAITS = ("sports", "handwork", "drawing", "music")

    sports = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    sports_remark = models.CharField(max_length=255, blank=True)
    handwork = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    handwork_remark = models.CharField(max_length=255, blank=True)
    drawing = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    drawing_remark = models.CharField(max_length=255, blank=True)
    music = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    music_remark = models.CharField(max_length=255, blank=True)

    class Meta(BehaviourRating.Meta):
        verbose_name_plural = "Psychomotor Ratings"

    def __str__(self):
        return f"{self.student} - Psychomotor ({self.term})"


# -------------------------
# Daily attendance
# -------------------------
class AttendanceRecord(models.Model):
    student = models.ForeignKey(
        "students.Student",
        on_delete=models.CASCADE,
        related_name="attendance_records"
    )
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE
    )
    academic_session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE
    )
    term = models.CharField(max_length=10, choices=TERM_CHOICES)
    date = models.DateField()
    is_present = models.BooleanField(default=True)
    marked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+"
    )

    class Meta:
        unique_together = ("student", "date")
        ordering = ["date"]

    def __str__(self):
        state = "present" if self.is_present else "absent"
        return f"{self.student} - {self.date} ({state})"


# -------------------------
# Class term info (school-opened days)
# -------------------------
class ClassTermInfo(models.Model):
    """
    Class-level information for a term, including how many days school opened
    """
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        related_name="term_info"
    )
    academic_session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE
    )
    term = models.CharField(max_length=10, choices=TERM_CHOICES)
    times_school_opened = models.PositiveIntegerField(default=0)

    # Next term date (set by admin)
    next_term_begins = models.DateField(null=True, blank=True)

    class Meta:
        unique_together = (
            "school_class",
            "academic_session",
            "term",
        )

    def __str__(self):
        return f"{self.school_class} - {self.term} ({self.academic_session})"


# -------------------------
# Compiled Result (term report per student)
# -------------------------
class CompiledResult(models.Model):
    """
    A student's term report as frozen by the class teacher at submission,
    waiting for (or carrying) the approver's decision.
    """
    student = models.ForeignKey(
        "students.Student",
        on_delete=models.CASCADE,
        related_name="compiled_results"
    )
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        related_name="compiled_results"
    )
    academic_session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE
    )
    term = models.CharField(max_length=10, choices=TERM_CHOICES)

    # Frozen copies of the inputs
    scores_snapshot = models.JSONField(default=list, blank=True)
    affective_snapshot = models.JSONField(default=dict, blank=True)
    psychomotor_snapshot = models.JSONField(default=dict, blank=True)

    total_score = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    average_score = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    grade = models.CharField(max_length=1, default="F", editable=False)
    class_average = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    class_highest = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    class_lowest = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    position = models.PositiveIntegerField(null=True, blank=True)
    total_students = models.PositiveIntegerField(default=0)

    times_present = models.PositiveIntegerField(default=0)
    times_absent = models.PositiveIntegerField(default=0)
    total_attendance_days = models.PositiveIntegerField(default=0)

    class_teacher_comment = models.TextField(blank=True)
    principal_comment = models.TextField(blank=True)

    status = models.CharField(
        max_length=10,
        choices=ResultStatus.choices,
        default=ResultStatus.DRAFT
    )
    rejection_reason = models.TextField(blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    rejected_date = models.DateTimeField(null=True, blank=True)

    compiled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    compiled_date = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    approved_date = models.DateTimeField(null=True, blank=True)

    print_approved = models.BooleanField(default=False)
    print_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    print_approved_date = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = (
            "student",
            "school_class",
            "academic_session",
            "term",
        )
        ordering = ["position"]

    def __str__(self):
        return f"{self.student} - {self.term} ({self.status})"

    def save(self, *args, **kwargs):
        self.grade = compiled_grade(self.average_score)
        super().save(*args, **kwargs)

    def as_dict(self):
        return {
            "id": self.pk,
            "student_id": self.student_id,
            "student": str(self.student),
            "term": self.term,
            "status": self.status,
            "total_score": str(self.total_score),
            "average_score": str(self.average_score),
            "grade": self.grade,
            "position": self.position,
            "total_students": self.total_students,
            "class_average": str(self.class_average),
            "class_highest": str(self.class_highest),
            "class_lowest": str(self.class_lowest),
            "times_present": self.times_present,
            "times_absent": self.times_absent,
            "total_attendance_days": self.total_attendance_days,
            "class_teacher_comment": self.class_teacher_comment,
            "principal_comment": self.principal_comment,
            "rejection_reason": self.rejection_reason,
            "print_approved": self.print_approved,
            "version": self.version,
        }
