from django.db import models
from django.db.models import Q


class School(models.Model):
    """
    Root entity. Every other domain object must belong to a School.
    """
    name = models.CharField(max_length=255, unique=True)
    address = models.TextField(blank=True)
    motto = models.CharField(max_length=255, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class AcademicSession(models.Model):
    """
    Academic session (e.g. 2024/2025)
    Enforced: only one active session per school
    """
    school = models.ForeignKey(
        School,
        on_delete=models.CASCADE,
        related_name="academic_sessions"
    )
    name = models.CharField(max_length=20)
    is_active = models.BooleanField(default=False)

    class Meta:
        unique_together = ("school", "name")
        constraints = [
            models.UniqueConstraint(
                fields=["school"],
                condition=Q(is_active=True),
                name="one_active_session_per_school",
            )
        ]
        ordering = ["-name"]

    def __str__(self) -> str:
        return f"{self.school} | {self.name}"


class Term(models.Model):
    """
    Academic term inside a session
    Enforced: only one active term per session
    """
    FIRST = "FIRST"
    SECOND = "SECOND"
    THIRD = "THIRD"

    TERM_CHOICES = (
        (FIRST, "First Term"),
        (SECOND, "Second Term"),
        (THIRD, "Third Term"),
    )

    # Label used on score and result records
    RECORD_LABELS = {FIRST: "First", SECOND: "Second", THIRD: "Third"}

    session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE,
        related_name="terms"
    )
    name = models.CharField(max_length=10, choices=TERM_CHOICES)
    is_active = models.BooleanField(default=False)

    class Meta:
        unique_together = ("session", "name")
        constraints = [
            models.UniqueConstraint(
                fields=["session"],
                condition=Q(is_active=True),
                name="one_active_term_per_session",
            )
        ]

    def __str__(self) -> str:
        return f"{self.session} | {self.name}"

    @property
    def record_label(self) -> str:
        return self.RECORD_LABELS[self.name]

    @classmethod
    def current_for(cls, school):
        """Active (session, term label) for a school, or (None, None)."""
        term = (
            cls.objects
            .filter(session__school=school, session__is_active=True, is_active=True)
            .select_related("session")
            .first()
        )
        if term is None:
            return None, None
        return term.session, term.record_label
