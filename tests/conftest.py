import random
from decimal import Decimal

import pytest

from academics.comments import CommentGenerator
from academics.models import (
    AffectiveRating,
    PsychomotorRating,
    SchoolClass,
    ScoreRecord,
    Subject,
    SubjectAssignment,
)
from academics.repository import ResultRepository
from academics.services import ApprovalService, CompilationService, RatingService, ScoreService
from academics.workflow import ScoreStatus
from accounts.models import User
from notifications.services import NotificationSink
from schools.models import AcademicSession, School, Term
from students.models import Parent, Student
from teachers.models import TeacherProfile


TERM = "First"


class RecordingSink(NotificationSink):
    """Keeps emitted intents in memory instead of storing them."""

    def __init__(self):
        self.intents = []

    def emit(self, intent):
        self.intents.append(intent)

    def for_recipient(self, user):
        return [i for i in self.intents if i.recipient == user]


@pytest.fixture(autouse=True)
def fast_passwords(settings):
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]


@pytest.fixture
def school(db):
    return School.objects.create(name="Greenfield College")


@pytest.fixture
def session(school):
    return AcademicSession.objects.create(school=school, name="2024/2025", is_active=True)


@pytest.fixture
def term(session):
    return Term.objects.create(session=session, name=Term.FIRST, is_active=True)


@pytest.fixture
def make_user(school):
    counter = {"n": 0}

    def _make(role, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("username", f"{role.lower()}{counter['n']}")
        kwargs.setdefault("school", school)
        return User.objects.create_user(password="pass1234", role=role, **kwargs)

    return _make


@pytest.fixture
def make_teacher(make_user, school):
    def _make(first_name, last_name):
        user = make_user(User.Role.TEACHER, first_name=first_name, last_name=last_name)
        return TeacherProfile.objects.create(user=user, school=school, staff_id=f"STF-{user.pk}")

    return _make


@pytest.fixture
def subject_teacher(make_teacher):
    return make_teacher("Ada", "Obi")


@pytest.fixture
def class_teacher(make_teacher):
    return make_teacher("Bola", "Ade")


@pytest.fixture
def principal(make_user):
    return make_user(User.Role.PRINCIPAL, first_name="Grace", last_name="Eze")


@pytest.fixture
def school_class(school, class_teacher):
    return SchoolClass.objects.create(school=school, name="JSS1", form_teacher=class_teacher)


@pytest.fixture
def subjects(school):
    return [
        Subject.objects.create(school=school, name="Mathematics", code="MTH"),
        Subject.objects.create(school=school, name="English", code="ENG"),
    ]


@pytest.fixture
def assignments(school_class, subjects, subject_teacher, session, term):
    return [
        SubjectAssignment.objects.create(
            school_class=school_class,
            subject=subject,
            teacher=subject_teacher,
            academic_session=session,
            term=TERM,
        )
        for subject in subjects
    ]


@pytest.fixture
def assignment(assignments):
    return assignments[0]


@pytest.fixture
def guardian(make_user, school):
    user = make_user(User.Role.PARENT, first_name="Ngozi", last_name="Okafor")
    return Parent.objects.create(user=user, school=school, first_name="Ngozi", last_name="Okafor")


@pytest.fixture
def make_student(school, school_class):
    def _make(first_name, last_name, admission_number, **kwargs):
        return Student.objects.create(
            school=school,
            school_class=kwargs.pop("school_class", school_class),
            first_name=first_name,
            last_name=last_name,
            admission_number=admission_number,
            **kwargs,
        )

    return _make


@pytest.fixture
def students(make_student, guardian):
    return [
        make_student("Chidi", "Okafor", "GC-001", guardian=guardian),
        make_student("Amaka", "Bello", "GC-002"),
        make_student("Tunde", "Yusuf", "GC-003"),
    ]


@pytest.fixture
def student(students):
    return students[0]


@pytest.fixture
def make_score():
    def _make(student, assignment, ca1, ca2, exam, status=ScoreStatus.SUBMITTED):
        return ScoreRecord.objects.create(
            student=student,
            subject_assignment=assignment,
            ca1=Decimal(str(ca1)),
            ca2=Decimal(str(ca2)),
            exam=Decimal(str(exam)),
            status=status,
        )

    return _make


@pytest.fixture
def rate(school_class, session):
    def _rate(student):
        common = dict(student=student, school_class=school_class, academic_session=session, term=TERM)
        AffectiveRating.objects.create(**common)
        PsychomotorRating.objects.create(**common)

    return _rate


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def repository():
    return ResultRepository()


@pytest.fixture
def score_service(repository, sink):
    return ScoreService(repository, sink)


@pytest.fixture
def rating_service(repository):
    return RatingService(repository)


@pytest.fixture
def compilation_service(repository, sink):
    return CompilationService(repository, sink, CommentGenerator(rng=random.Random(7)))


@pytest.fixture
def approval_service(repository, sink):
    return ApprovalService(repository, sink)
