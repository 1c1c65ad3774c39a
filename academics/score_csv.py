"""
Spreadsheet exchange of subject scores.

The export layout is fixed so teachers can fill it in offline and import it
back:

    S/No,Reg ID,Student Name,1st CA[20],2nd CA[20],Exams[60],Total [100]
"""
import csv
from dataclasses import dataclass
from io import StringIO

from .grading import to_decimal

HEADER = "S/No,Reg ID,Student Name,1st CA[20],2nd CA[20],Exams[60],Total [100]"
COLUMN_COUNT = 7


@dataclass(frozen=True)
class ScoreRow:
    line_number: int
    reg_id: str
    name: str
    ca1: str
    ca2: str
    exam: str


def format_component(value):
    if value is None:
        return ""
    # normalize() alone would print 20 as 2E+1
    return format(to_decimal(value).normalize(), "f")


def render_scores(students, scores_by_student):
    """
    One line per student in the given order. ``scores_by_student`` maps a
    student id to its ScoreRecord; students without one get blank components.
    """
    lines = [HEADER]
    for index, student in enumerate(students, start=1):
        score = scores_by_student.get(student.pk)
        if score is not None:
            ca1 = format_component(score.ca1)
            ca2 = format_component(score.ca2)
            exam = format_component(score.exam)
            total = f"{to_decimal(score.ca1) + to_decimal(score.ca2) + to_decimal(score.exam):.2f}"
        else:
            ca1 = ca2 = exam = ""
            total = "0"
        name = f"{student.first_name} {student.last_name}".replace('"', '""')
        lines.append(f'{index},{student.admission_number},"{name}",{ca1},{ca2},{exam},{total}')
    return "\n".join(lines) + "\n"


def parse_rows(text):
    """
    Yields a ScoreRow for each data line. The header line is skipped and
    lines with fewer than seven fields are ignored.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(StringIO(text))
    header_seen = False
    for row in reader:
        if not any(field.strip() for field in row):
            continue
        if not header_seen:
            header_seen = True
            continue
        if len(row) < COLUMN_COUNT:
            continue
        fields = [field.strip() for field in row]
        yield ScoreRow(
            line_number=reader.line_num,
            reg_id=fields[1],
            name=fields[2],
            ca1=fields[3],
            ca2=fields[4],
            exam=fields[5],
        )
