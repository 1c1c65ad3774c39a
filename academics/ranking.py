"""
Class positions and class statistics for one class, term and session.

Positions use competition ranking: tied totals share a position and the next
distinct total skips ahead by the size of the tie (90, 90, 70 -> 1, 1, 3).
"""
from dataclasses import dataclass
from decimal import Decimal

from .grading import round_half_up, to_decimal


@dataclass(frozen=True)
class StudentTotal:
    student_id: int
    total_score: Decimal


@dataclass(frozen=True)
class Standing:
    position: int
    total_students: int


@dataclass(frozen=True)
class ClassStatistics:
    class_average: Decimal
    class_highest: Decimal
    class_lowest: Decimal
    counted: int


def rank_students(entries):
    """
    Returns {student_id: Standing} for every entry, zero totals included.
    """
    ordered = sorted(entries, key=lambda e: to_decimal(e.total_score), reverse=True)
    total_students = len(ordered)
    standings = {}

    current_position = 1
    last_total = None
    for index, entry in enumerate(ordered):
        total = to_decimal(entry.total_score)
        if last_total is not None and total < last_total:
            current_position = index + 1
        standings[entry.student_id] = Standing(current_position, total_students)
        last_total = total

    return standings


def class_statistics(totals) -> ClassStatistics:
    """
    Average, highest and lowest over the students who have a positive total.
    Students without submitted scores keep their position but do not drag
    the class average down.
    """
    eligible = [to_decimal(t) for t in totals if to_decimal(t) > 0]
    if not eligible:
        zero = Decimal("0.00")
        return ClassStatistics(zero, zero, zero, 0)

    average = round_half_up(sum(eligible) / Decimal(len(eligible)))
    return ClassStatistics(
        class_average=average,
        class_highest=max(eligible),
        class_lowest=min(eligible),
        counted=len(eligible),
    )
