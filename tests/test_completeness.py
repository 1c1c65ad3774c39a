from decimal import Decimal

import pytest

from academics.aggregation import ClassSnapshot, ScoreSnapshot, aggregate_student, build_class_standings
from academics.completeness import evaluate_completeness
from academics.exceptions import IncompleteResultError


def score(student_id, assignment_id, total, status="Submitted", score_id=None):
    total = Decimal(str(total))
    return ScoreSnapshot(
        score_id=score_id or student_id * 100 + assignment_id,
        student_id=student_id,
        subject_assignment_id=assignment_id,
        subject_name=f"Subject {assignment_id}",
        ca1=Decimal("0"),
        ca2=Decimal("0"),
        exam=total,
        total=total,
        grade="A",
        status=status,
    )


ACTIVE = frozenset({1, 2, 3})


def test_complete_when_every_subject_and_both_ratings_are_in():
    scores = [score(7, 1, 60), score(7, 2, 70), score(7, 3, 80)]

    report = evaluate_completeness(7, scores, ACTIVE, True, True)

    assert report.is_complete
    assert report.submitted_count == 3
    assert report.required_count == 3
    assert report.missing == ()


def test_draft_scores_do_not_count():
    scores = [score(7, 1, 60), score(7, 2, 70), score(7, 3, 80, status="Draft")]

    report = evaluate_completeness(7, scores, ACTIVE, True, True)

    assert not report.is_complete
    assert report.submitted_count == 2
    assert report.missing_assignment_ids == frozenset({3})
    assert "2 of 3 subject scores submitted" in report.missing


def test_scores_from_other_assignments_or_students_never_count():
    scores = [
        score(7, 1, 60),
        score(7, 2, 70),
        score(7, 99, 80),   # assignment of another class or term
        score(8, 3, 80),    # another student
    ]

    report = evaluate_completeness(7, scores, ACTIVE, True, True)

    assert not report.is_complete
    assert report.submitted_count == 2


@pytest.mark.parametrize("affective, psychomotor, expected", [
    (False, True, ["affective rating not recorded"]),
    (True, False, ["psychomotor rating not recorded"]),
    (False, False, ["affective rating not recorded", "psychomotor rating not recorded"]),
])
def test_missing_ratings_are_named(affective, psychomotor, expected):
    scores = [score(7, 1, 60), score(7, 2, 70), score(7, 3, 80)]

    report = evaluate_completeness(7, scores, ACTIVE, affective, psychomotor)

    assert not report.is_complete
    assert list(report.missing) == expected


def test_raise_if_incomplete_names_the_student_and_the_gap():
    report = evaluate_completeness(7, [], ACTIVE, True, False)

    with pytest.raises(IncompleteResultError) as excinfo:
        report.raise_if_incomplete("Chidi Okafor")

    message = str(excinfo.value)
    assert message.startswith("Result for Chidi Okafor is incomplete")
    assert "0 of 3 subject scores submitted" in message
    assert "psychomotor rating not recorded" in message


def test_aggregate_uses_only_submitted_active_scores():
    scores = [score(7, 1, 60), score(7, 2, 71), score(7, 3, 50, status="Draft"), score(7, 42, 99)]

    aggregate = aggregate_student(7, scores, ACTIVE)

    assert aggregate.total_score == Decimal("131")
    assert aggregate.subject_count == 2
    assert aggregate.average_score == Decimal("65.50")


def test_aggregate_without_scores_is_zero():
    aggregate = aggregate_student(7, [], ACTIVE)

    assert aggregate.total_score == Decimal("0")
    assert aggregate.average_score == Decimal("0.00")
    assert aggregate.subject_count == 0


def test_class_standings_rank_every_student():
    snapshot = ClassSnapshot(
        class_id=1,
        student_ids=(1, 2, 3, 4),
        active_assignment_ids=frozenset({1}),
        scores=(score(1, 1, 90), score(2, 1, 90), score(3, 1, 70)),
    )

    standings = build_class_standings(snapshot)

    assert [standings.standings[i].position for i in (1, 2, 3, 4)] == [1, 1, 3, 4]
    assert standings.statistics.class_average == Decimal("83.33")
    assert standings.statistics.class_lowest == Decimal("70")
    assert standings.statistics.counted == 3
