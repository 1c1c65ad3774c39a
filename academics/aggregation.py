"""
Per-student aggregation over immutable snapshots of the score store.

Nothing here touches the database: the repository builds a ClassSnapshot and
these functions turn it into totals, averages and class standings.
"""
from dataclasses import dataclass, field
from decimal import Decimal

from .grading import round_half_up, to_decimal
from .ranking import StudentTotal, class_statistics, rank_students
from .workflow import ScoreStatus


@dataclass(frozen=True)
class ScoreSnapshot:
    score_id: int
    student_id: int
    subject_assignment_id: int
    subject_name: str
    ca1: Decimal
    ca2: Decimal
    exam: Decimal
    total: Decimal
    grade: str
    status: str

    def as_dict(self):
        return {
            "score_id": self.score_id,
            "subject_assignment_id": self.subject_assignment_id,
            "subject": self.subject_name,
            "ca1": str(self.ca1),
            "ca2": str(self.ca2),
            "exam": str(self.exam),
            "total": str(self.total),
            "grade": self.grade,
        }


@dataclass(frozen=True)
class ClassSnapshot:
    class_id: int
    student_ids: tuple
    active_assignment_ids: frozenset
    scores: tuple
    affective_student_ids: frozenset = frozenset()
    psychomotor_student_ids: frozenset = frozenset()

    def scores_for(self, student_id):
        return [s for s in self.scores if s.student_id == student_id]


@dataclass(frozen=True)
class StudentAggregate:
    student_id: int
    total_score: Decimal
    average_score: Decimal
    subject_count: int
    scores: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class ClassStandings:
    aggregates: dict
    standings: dict
    statistics: object

    def for_student(self, student_id):
        return self.aggregates[student_id], self.standings[student_id]


def counted_scores(scores, active_assignment_ids):
    """Submitted scores that belong to one of the class's active assignments."""
    return [
        s for s in scores
        if s.status == ScoreStatus.SUBMITTED and s.subject_assignment_id in active_assignment_ids
    ]


def aggregate_student(student_id, scores, active_assignment_ids) -> StudentAggregate:
    relevant = counted_scores(
        [s for s in scores if s.student_id == student_id],
        active_assignment_ids,
    )
    total = sum((to_decimal(s.total) for s in relevant), Decimal("0"))
    average = round_half_up(total / len(relevant)) if relevant else Decimal("0.00")
    return StudentAggregate(
        student_id=student_id,
        total_score=total,
        average_score=average,
        subject_count=len(relevant),
        scores=tuple(relevant),
    )


def build_class_standings(snapshot: ClassSnapshot) -> ClassStandings:
    aggregates = {
        student_id: aggregate_student(student_id, snapshot.scores, snapshot.active_assignment_ids)
        for student_id in snapshot.student_ids
    }
    standings = rank_students(
        StudentTotal(a.student_id, a.total_score) for a in aggregates.values()
    )
    statistics = class_statistics(a.total_score for a in aggregates.values())
    return ClassStandings(aggregates=aggregates, standings=standings, statistics=statistics)
