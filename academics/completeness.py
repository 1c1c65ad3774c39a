"""
Decides whether a student's result may be submitted for the term.

A result is complete when every active subject assignment of the class has a
Submitted score for the student and both behavioural ratings exist.
"""
from dataclasses import dataclass, field

from .aggregation import counted_scores
from .exceptions import IncompleteResultError


@dataclass(frozen=True)
class CompletenessReport:
    student_id: int
    is_complete: bool
    submitted_count: int
    required_count: int
    has_affective: bool
    has_psychomotor: bool
    missing_assignment_ids: frozenset = frozenset()
    missing: tuple = field(default_factory=tuple)

    def raise_if_incomplete(self, student_name):
        if not self.is_complete:
            raise IncompleteResultError(student_name, self.missing)

    def as_dict(self):
        return {
            "student_id": self.student_id,
            "is_complete": self.is_complete,
            "submitted_count": self.submitted_count,
            "required_count": self.required_count,
            "has_affective": self.has_affective,
            "has_psychomotor": self.has_psychomotor,
            "missing": list(self.missing),
        }


def evaluate_completeness(student_id, scores, active_assignment_ids,
                          has_affective, has_psychomotor) -> CompletenessReport:
    active_assignment_ids = frozenset(active_assignment_ids)
    own = [s for s in scores if s.student_id == student_id]
    submitted = {s.subject_assignment_id for s in counted_scores(own, active_assignment_ids)}

    missing_ids = active_assignment_ids - submitted
    required_count = len(active_assignment_ids)
    submitted_count = len(submitted)

    missing = []
    if missing_ids:
        missing.append(
            f"{submitted_count} of {required_count} subject scores submitted"
        )
    if not has_affective:
        missing.append("affective rating not recorded")
    if not has_psychomotor:
        missing.append("psychomotor rating not recorded")

    return CompletenessReport(
        student_id=student_id,
        is_complete=not missing,
        submitted_count=submitted_count,
        required_count=required_count,
        has_affective=bool(has_affective),
        has_psychomotor=bool(has_psychomotor),
        missing_assignment_ids=frozenset(missing_ids),
        missing=tuple(missing),
    )
