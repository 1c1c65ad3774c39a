"""
Lifecycle rules for score records and compiled results.

The tables below list every allowed (current, target) pair. ``None`` as the
current status means the record does not exist yet.
"""
import logging

from django.db import models

from .exceptions import InvalidTransitionError, NotAuthorizedError

logger = logging.getLogger(__name__)


class ScoreStatus(models.TextChoices):
    DRAFT = "Draft", "Draft"
    SUBMITTED = "Submitted", "Submitted"
    REJECTED = "Rejected", "Rejected"


class ResultStatus(models.TextChoices):
    DRAFT = "Draft", "Draft"
    SUBMITTED = "Submitted", "Submitted"
    APPROVED = "Approved", "Approved"
    REJECTED = "Rejected", "Rejected"


SCORE_TRANSITIONS = {
    (None, ScoreStatus.DRAFT),
    (ScoreStatus.DRAFT, ScoreStatus.DRAFT),
    (ScoreStatus.DRAFT, ScoreStatus.SUBMITTED),
    (ScoreStatus.SUBMITTED, ScoreStatus.REJECTED),
    (ScoreStatus.REJECTED, ScoreStatus.SUBMITTED),
}

# Only reachable with edit_mode=True
SCORE_EDIT_TRANSITIONS = {
    (ScoreStatus.SUBMITTED, ScoreStatus.SUBMITTED),
}

RESULT_TRANSITIONS = {
    (None, ResultStatus.DRAFT),
    (None, ResultStatus.SUBMITTED),
    (ResultStatus.DRAFT, ResultStatus.DRAFT),
    (ResultStatus.DRAFT, ResultStatus.SUBMITTED),
    (ResultStatus.SUBMITTED, ResultStatus.SUBMITTED),
    (ResultStatus.SUBMITTED, ResultStatus.APPROVED),
    (ResultStatus.SUBMITTED, ResultStatus.REJECTED),
    (ResultStatus.REJECTED, ResultStatus.SUBMITTED),
    (ResultStatus.REJECTED, ResultStatus.DRAFT),
}


def _describe(status):
    return status if status else "new"


def check_score_transition(current, target, edit_mode=False):
    allowed = (current, target) in SCORE_TRANSITIONS
    if not allowed and edit_mode:
        allowed = (current, target) in SCORE_EDIT_TRANSITIONS
    if allowed:
        return
    if current == ScoreStatus.SUBMITTED and target in (ScoreStatus.DRAFT, ScoreStatus.SUBMITTED):
        raise InvalidTransitionError("Scores already submitted are locked. Use edit mode to change them.")
    if current == ScoreStatus.REJECTED and target == ScoreStatus.DRAFT:
        raise InvalidTransitionError("This score was rejected. Correct it and resubmit.")
    raise InvalidTransitionError(
        f"A score cannot move from {_describe(current)} to {target}."
    )


def check_result_transition(current, target):
    if (current, target) in RESULT_TRANSITIONS:
        return
    if current == ResultStatus.APPROVED:
        raise InvalidTransitionError("This result has already been approved.")
    raise InvalidTransitionError(
        f"A result cannot move from {_describe(current)} to {target}."
    )


# -------------------------
# Role guards
# -------------------------
def teacher_profile_of(user):
    return getattr(user, "teacher_profile", None) if user is not None else None


def is_approver(user):
    return bool(user is not None and getattr(user, "is_approver", False))


def is_class_teacher(user, school_class):
    profile = teacher_profile_of(user)
    return bool(profile and school_class.form_teacher_id == profile.pk)


def is_subject_teacher(user, assignment):
    profile = teacher_profile_of(user)
    return bool(profile and assignment.teacher_id == profile.pk)


def ensure_subject_teacher(user, assignment):
    if not is_subject_teacher(user, assignment):
        logger.warning("User %s refused scores for assignment %s", user, assignment.pk)
        raise NotAuthorizedError("Only the subject teacher can enter scores for this subject.")


def ensure_class_teacher(user, school_class):
    if not is_class_teacher(user, school_class):
        logger.warning("User %s is not class teacher of %s", user, school_class.pk)
        raise NotAuthorizedError("Only the class teacher can do this for this class.")


def ensure_approver(user):
    if not is_approver(user):
        logger.warning("User %s refused approval action", user)
        raise NotAuthorizedError("Only a principal or school admin can approve or reject results.")


def ensure_can_reject_score(user, assignment):
    if is_approver(user) or is_class_teacher(user, assignment.school_class):
        return
    logger.warning("User %s refused score rejection on assignment %s", user, assignment.pk)
    raise NotAuthorizedError("Only the class teacher or an approver can reject scores.")
