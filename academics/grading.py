"""
Grade letters, remarks and rounding shared by score entry and compilation.

A subject total and a compiled average are graded on different scales,
so the two functions must not be swapped.
"""
from decimal import Decimal, ROUND_HALF_UP


GRADE_DESCRIPTIONS = {
    "A": "Excellent",
    "B": "Very Good",
    "C": "Good",
    "D": "Pass",
    "E": "Fair",
    "F": "Fail",
}


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    # str() keeps floats like 17.5 exact instead of their binary expansion
    return Decimal(str(value))


def round_half_up(value, places: int = 2) -> Decimal:
    """Round half away from zero, e.g. 72.125 -> 72.13 and -0.005 -> -0.01."""
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def subject_grade(total) -> str:
    total = to_decimal(total)
    if total >= 70:
        return "A"
    elif total >= 60:
        return "B"
    elif total >= 50:
        return "C"
    elif total >= 40:
        return "D"
    elif total >= 30:
        return "E"
    return "F"


def subject_remark(total) -> str:
    total = to_decimal(total)
    if total >= 70:
        return "Excellent"
    elif total >= 60:
        return "Very Good"
    elif total >= 50:
        return "Good"
    elif total >= 40:
        return "Pass"
    elif total >= 30:
        return "Fair"
    return "Fail"


def compiled_grade(average) -> str:
    average = to_decimal(average)
    if average >= 80:
        return "A"
    elif average >= 70:
        return "B"
    elif average >= 60:
        return "C"
    elif average >= 50:
        return "D"
    elif average >= 40:
        return "E"
    return "F"
