"""
JSON endpoints of the result workflow.

Views only parse the request, load the records and scope them to the
user's school; the rules live in academics.services. Every failure answers
{"error": "<short message>"}.
"""
import functools
import json
import logging

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError
from django.http import HttpResponse, JsonResponse
from django.utils.dateparse import parse_date, parse_datetime
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from academics.exceptions import NotAuthorizedError, ResultWorkflowError
from academics.models import CompiledResult, SchoolClass, ScoreRecord, SubjectAssignment
from academics.repository import ResultRepository
from academics.services import (
    ScoreService,
    approval_service,
    compilation_service,
    guardian_service,
    rating_service,
    score_service,
)
from academics.workflow import ResultStatus
from notifications.services import mark_read, notifications_for
from students.models import Student
from .forms import ScoreImportForm, TermSelectionForm

logger = logging.getLogger(__name__)


class BadRequest(ResultWorkflowError):
    pass


def json_errors(view):
    """Turn workflow, lookup and database errors into JSON error responses."""
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ResultWorkflowError as exc:
            return JsonResponse({'error': exc.message}, status=exc.status_code)
        except ObjectDoesNotExist:
            return JsonResponse({'error': 'Not found'}, status=404)
        except DatabaseError:
            logger.exception("Database error in %s", view.__name__)
            return JsonResponse({'error': 'Could not save changes. Please try again.'}, status=503)
    return wrapper


def _json_body(request):
    try:
        data = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        raise BadRequest('Invalid JSON')
    if not isinstance(data, dict):
        raise BadRequest('Invalid JSON')
    return data


_JSON_KINDS = {dict: 'an object', list: 'a list', bool: 'true or false'}


def _json_field(data, key, kind, default=None):
    """Returns data[key] when it has the expected JSON type; a missing key gives ``default``."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise BadRequest(f'{key} must be {_JSON_KINDS[kind]}')
    return value


def _entries(data):
    entries = _json_field(data, 'entries', list, [])
    if not all(isinstance(entry, dict) for entry in entries):
        raise BadRequest('Each entry must be an object')
    return entries


def _ensure_same_school(user, school_id):
    if user.is_superuser:
        return
    if user.school_id != school_id:
        raise NotAuthorizedError('Access denied')


def _term_selection(params, school):
    form = TermSelectionForm(params, school=school)
    if not form.is_valid():
        raise BadRequest(' '.join(form.errors.get('__all__', [])) or 'Invalid session or term')
    return form.cleaned_data['session'], form.cleaned_data['term']


def _load_assignment(user, assignment_id):
    assignment = (
        SubjectAssignment.objects
        .select_related('school_class__school', 'school_class__form_teacher__user', 'subject',
                        'teacher__user', 'academic_session')
        .get(pk=assignment_id)
    )
    _ensure_same_school(user, assignment.school_class.school_id)
    return assignment


def _load_score(user, score_id):
    score = (
        ScoreRecord.objects
        .select_related('student', 'rejected_by', 'subject_assignment__school_class__form_teacher__user',
                        'subject_assignment__subject', 'subject_assignment__teacher__user')
        .get(pk=score_id)
    )
    _ensure_same_school(user, score.subject_assignment.school_class.school_id)
    return score


def _load_class(user, class_id):
    school_class = SchoolClass.objects.select_related('school', 'form_teacher__user').get(pk=class_id)
    _ensure_same_school(user, school_class.school_id)
    return school_class


def _load_student(school_class, student_id):
    if isinstance(student_id, bool):
        raise BadRequest('Invalid student id')
    try:
        return Student.objects.get(pk=student_id, school_class=school_class)
    except (TypeError, ValueError):
        raise BadRequest('Invalid student id')


def _load_result(user, result_id):
    result = (
        CompiledResult.objects
        .select_related('student__guardian__user', 'school_class__form_teacher__user')
        .get(pk=result_id)
    )
    _ensure_same_school(user, result.school_class.school_id)
    return result


def _score_dict(score):
    return {
        'id': score.id,
        'student_id': score.student_id,
        'student': str(score.student),
        'ca1': str(score.ca1),
        'ca2': str(score.ca2),
        'exam': str(score.exam),
        'total': str(score.total),
        'grade': score.grade,
        'remark': score.remark,
        'status': score.status,
        'rejection_reason': score.rejection_reason,
        'version': score.version,
    }


def _decimal_dict(values):
    return {key: str(value) if not isinstance(value, int) else value for key, value in values.items()}


# ========================================
# Scores (subject teacher)
# ========================================

@login_required
@require_GET
@json_errors
def assignment_scores(request, assignment_id):
    assignment = _load_assignment(request.user, assignment_id)
    service = score_service()
    scores = service.repository.scores_for_assignment(assignment)
    return JsonResponse({
        'assignment': {
            'id': assignment.id,
            'class': assignment.school_class.name,
            'subject': assignment.subject.name,
            'term': assignment.term,
        },
        'scores': [_score_dict(s) for s in scores],
        'statistics': _decimal_dict(service.subject_statistics(assignment)),
    })


@login_required
@require_POST
@json_errors
def autosave_scores(request, assignment_id):
    data = _json_body(request)
    assignment = _load_assignment(request.user, assignment_id)
    outcome = score_service().save_drafts(request.user, assignment, _entries(data))
    return JsonResponse({'success': True, **outcome.as_dict()})


@login_required
@require_POST
@json_errors
def submit_scores(request, assignment_id):
    data = _json_body(request)
    assignment = _load_assignment(request.user, assignment_id)
    summary = score_service().submit_scores(
        request.user,
        assignment,
        entries=_entries(data),
        edit_mode=bool(data.get('edit_mode')),
    )
    return JsonResponse({
        'success': True,
        'message': f"Scores submitted! {summary['submitted_count']} student(s) recorded.",
        **_decimal_dict(summary),
    })


@login_required
@require_POST
@json_errors
def reject_score(request, score_id):
    data = _json_body(request)
    score = _load_score(request.user, score_id)
    score = score_service().reject_score(request.user, score, data.get('reason'))
    return JsonResponse({'success': True, 'score': _score_dict(score)})


@login_required
@require_GET
@json_errors
def score_correction_notice(request, score_id):
    score = _load_score(request.user, score_id)
    notice = score_service().correction_notice(request.user, score)
    return JsonResponse({'notice': notice})


@login_required
@require_POST
@json_errors
def resubmit_score(request, score_id):
    data = _json_body(request)
    score = _load_score(request.user, score_id)
    score = score_service().resubmit_score(
        request.user, score,
        data.get('ca1'), data.get('ca2'), data.get('exam'),
        expected_version=data.get('version'),
    )
    return JsonResponse({'success': True, 'score': _score_dict(score)})


@login_required
@require_GET
@json_errors
def export_scores_csv(request, assignment_id):
    assignment = _load_assignment(request.user, assignment_id)
    content = score_service().export_csv(request.user, assignment)
    response = HttpResponse(content, content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{ScoreService.export_filename(assignment)}"'
    return response


@login_required
@require_POST
@json_errors
def import_scores_csv(request, assignment_id):
    assignment = _load_assignment(request.user, assignment_id)
    form = ScoreImportForm(request.POST, request.FILES)
    if not form.is_valid():
        raise BadRequest(' '.join(form.errors.get('csv_file', [])) or 'Invalid upload')
    outcome = score_service().import_csv(request.user, assignment, form.cleaned_data['csv_file'])
    return JsonResponse({'success': True, **outcome.as_dict()})


# ========================================
# Ratings and attendance (class teacher)
# ========================================

def _save_rating(request, class_id, kind):
    data = _json_body(request)
    school_class = _load_class(request.user, class_id)
    student = _load_student(school_class, data.get('student_id'))
    session, term = _term_selection(data, school_class.school)
    service = rating_service()
    upsert = service.upsert_affective if kind == 'affective' else service.upsert_psychomotor
    traits = _json_field(data, 'traits', dict, {})
    rating = upsert(request.user, school_class, student, session, term, traits)
    return JsonResponse({'success': True, 'id': rating.id, 'ratings': rating.snapshot()})


@login_required
@require_POST
@json_errors
def save_affective_rating(request, class_id):
    return _save_rating(request, class_id, 'affective')


@login_required
@require_POST
@json_errors
def save_psychomotor_rating(request, class_id):
    return _save_rating(request, class_id, 'psychomotor')


@login_required
@require_POST
@json_errors
def save_attendance(request, class_id):
    data = _json_body(request)
    school_class = _load_class(request.user, class_id)
    date = parse_date(data.get('date') or '')
    if date is None:
        raise BadRequest('A valid date (YYYY-MM-DD) is required')
    session, term = _term_selection(data, school_class.school)
    records = rating_service().mark_attendance(
        request.user, school_class, date, session, term, _json_field(data, 'marks', dict, {})
    )
    return JsonResponse({
        'success': True,
        'marked': len(records),
        'present': sum(1 for r in records if r.is_present),
    })


@login_required
@require_GET
@json_errors
def attendance_for_date(request, class_id):
    school_class = _load_class(request.user, class_id)
    date = parse_date(request.GET.get('date') or '')
    if date is None:
        raise BadRequest('A valid date (YYYY-MM-DD) is required')
    records = ResultRepository().attendance_for_date(school_class, date)
    return JsonResponse({
        'date': date.isoformat(),
        'records': [
            {'student_id': r.student_id, 'student': str(r.student), 'is_present': r.is_present}
            for r in records
        ],
    })


# ========================================
# Compilation (class teacher)
# ========================================

@login_required
@require_GET
@json_errors
def class_results(request, class_id):
    school_class = _load_class(request.user, class_id)
    session, term = _term_selection(request.GET, school_class.school)
    status = request.GET.get('status') or None
    if status is not None and status not in ResultStatus.values:
        raise BadRequest(f"Unknown status '{status}'")
    results = compilation_service().class_results(request.user, school_class, session, term, status=status)
    return JsonResponse({'results': [r.as_dict() for r in results]})


@login_required
@require_GET
@json_errors
def result_correction_notice(request, result_id):
    result = _load_result(request.user, result_id)
    notice = compilation_service().correction_notice(request.user, result)
    return JsonResponse({'notice': notice})


@login_required
@require_GET
@json_errors
def class_standings(request, class_id):
    school_class = _load_class(request.user, class_id)
    session, term = _term_selection(request.GET, school_class.school)
    standings = compilation_service().class_standings(school_class, session, term)
    statistics = standings.statistics
    rows = []
    for student_id, aggregate in standings.aggregates.items():
        standing = standings.standings[student_id]
        rows.append({
            'student_id': student_id,
            'total_score': str(aggregate.total_score),
            'average_score': str(aggregate.average_score),
            'subject_count': aggregate.subject_count,
            'position': standing.position,
            'total_students': standing.total_students,
        })
    rows.sort(key=lambda row: row['position'])
    return JsonResponse({
        'class_average': str(statistics.class_average),
        'class_highest': str(statistics.class_highest),
        'class_lowest': str(statistics.class_lowest),
        'standings': rows,
    })


@login_required
@require_GET
@json_errors
def student_completeness(request, class_id, student_id):
    school_class = _load_class(request.user, class_id)
    student = _load_student(school_class, student_id)
    session, term = _term_selection(request.GET, school_class.school)
    report = compilation_service().completeness(school_class, student, session, term)
    return JsonResponse(report.as_dict())


@login_required
@require_GET
@json_errors
def comment_options(request, class_id, student_id):
    school_class = _load_class(request.user, class_id)
    student = _load_student(school_class, student_id)
    session, term = _term_selection(request.GET, school_class.school)
    options = compilation_service().comment_options(request.user, school_class, student, session, term)
    return JsonResponse(options)


@login_required
@require_POST
@json_errors
def save_result_draft(request, class_id, student_id):
    data = _json_body(request)
    school_class = _load_class(request.user, class_id)
    student = _load_student(school_class, student_id)
    session, term = _term_selection(data, school_class.school)
    result = compilation_service().save_draft_result(
        request.user, school_class, student, session, term,
        data.get('comment'), expected_version=data.get('version'),
    )
    return JsonResponse({'success': True, 'result': result.as_dict()})


@login_required
@require_POST
@json_errors
def submit_result(request, class_id, student_id):
    data = _json_body(request)
    school_class = _load_class(request.user, class_id)
    student = _load_student(school_class, student_id)
    session, term = _term_selection(data, school_class.school)
    result = compilation_service().submit_result(
        request.user, school_class, student, session, term,
        comment=data.get('comment'),
        auto_comment=bool(data.get('auto_comment')),
        times_present=data.get('times_present'),
        expected_version=data.get('version'),
    )
    return JsonResponse({
        'success': True,
        'message': f'Result for {student.full_name} submitted for approval.',
        'result': result.as_dict(),
    })


@login_required
@require_POST
@json_errors
def submit_all_results(request, class_id):
    data = _json_body(request)
    school_class = _load_class(request.user, class_id)
    session, term = _term_selection(data, school_class.school)
    outcome = compilation_service().submit_all(
        request.user, school_class, session, term,
        auto_comment=_json_field(data, 'auto_comment', bool, True),
    )
    return JsonResponse({'success': True, **outcome.as_dict()})


# ========================================
# Approval (principal / school admin)
# ========================================

@login_required
@require_GET
@json_errors
def pending_results(request):
    if not request.user.is_approver:
        raise NotAuthorizedError('Access denied')
    queryset = CompiledResult.objects.filter(status=ResultStatus.SUBMITTED).select_related('student')
    if not request.user.is_superuser:
        queryset = queryset.filter(school_class__school_id=request.user.school_id)
    return JsonResponse({'results': [r.as_dict() for r in queryset]})


@login_required
@require_POST
@json_errors
def approve_result(request, result_id):
    data = _json_body(request)
    result = _load_result(request.user, result_id)
    result = approval_service().approve(
        request.user, result, data.get('principal_comment'), expected_version=data.get('version'),
    )
    return JsonResponse({'success': True, 'result': result.as_dict()})


@login_required
@require_POST
@json_errors
def reject_result(request, result_id):
    data = _json_body(request)
    result = _load_result(request.user, result_id)
    result = approval_service().reject(
        request.user, result, data.get('reason'), expected_version=data.get('version'),
    )
    return JsonResponse({'success': True, 'result': result.as_dict()})


def _scoped_result_ids(user, result_ids):
    """Splits the requested ids into (own school, elsewhere or unknown)."""
    if not isinstance(result_ids, list) or not result_ids:
        raise BadRequest('Select at least one result')
    ids = [_to_int(rid) for rid in result_ids]
    queryset = CompiledResult.objects.filter(pk__in=[rid for rid in ids if rid is not None])
    if not user.is_superuser:
        queryset = queryset.filter(school_class__school_id=user.school_id)
    visible = set(queryset.values_list('pk', flat=True))
    return [rid for rid in ids if rid in visible], [rid for rid in result_ids if _to_int(rid) not in visible]


def _to_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _bulk_response(outcome, hidden_ids):
    for result_id in hidden_ids:
        outcome.add_failure(result_id, 'Result not found.')
    return JsonResponse({'success': True, **outcome.as_dict()})


@login_required
@require_POST
@json_errors
def bulk_approve_results(request):
    data = _json_body(request)
    result_ids, hidden = _scoped_result_ids(request.user, data.get('result_ids'))
    outcome = approval_service().bulk_approve(request.user, result_ids, data.get('comment'))
    return _bulk_response(outcome, hidden)


@login_required
@require_POST
@json_errors
def bulk_reject_results(request):
    data = _json_body(request)
    result_ids, hidden = _scoped_result_ids(request.user, data.get('result_ids'))
    outcome = approval_service().bulk_reject(request.user, result_ids, data.get('reason'))
    return _bulk_response(outcome, hidden)


@login_required
@require_POST
@json_errors
def set_print_approval(request, result_id):
    data = _json_body(request)
    result = _load_result(request.user, result_id)
    result = approval_service().set_print_approval(
        request.user, result,
        approved=_json_field(data, 'approved', bool, True),
        expected_version=data.get('version'),
    )
    return JsonResponse({'success': True, 'result': result.as_dict()})


@login_required
@require_POST
@json_errors
def delete_result(request, result_id):
    result = _load_result(request.user, result_id)
    approval_service().delete_result(request.user, result)
    return JsonResponse({'success': True})


# ========================================
# Guardians
# ========================================

@login_required
@require_GET
@json_errors
def my_children_results(request):
    results = guardian_service().children_results(request.user)
    return JsonResponse({'results': [r.as_dict() for r in results]})


# ========================================
# Notifications and change feed
# ========================================

@login_required
@require_GET
@json_errors
def my_notifications(request):
    unread_only = request.GET.get('unread') in ('1', 'true')
    queryset = notifications_for(request.user, unread_only=unread_only)[:50]
    return JsonResponse({'notifications': [n.as_dict() for n in queryset]})


@login_required
@require_POST
@json_errors
def mark_notification_read(request, notification_id):
    notification = notifications_for(request.user).get(pk=notification_id)
    mark_read(notification, request.user)
    return JsonResponse({'success': True})


@login_required
@require_GET
@json_errors
def changes_since(request):
    since = parse_datetime(request.GET.get('since') or '')
    if since is None:
        raise BadRequest('since must be an ISO timestamp')
    if timezone.is_naive(since):
        since = timezone.make_aware(since)
    school = None if request.user.is_superuser else request.user.school
    if school is None and not request.user.is_superuser:
        raise NotAuthorizedError('Access denied')
    scores, results = ResultRepository().changed_since(since, school=school)
    return JsonResponse({
        'now': timezone.now().isoformat(),
        'scores': [
            {'id': s.id, 'student_id': s.student_id, 'assignment_id': s.subject_assignment_id,
             'status': s.status, 'version': s.version}
            for s in scores
        ],
        'results': [
            {'id': r.id, 'student_id': r.student_id, 'status': r.status, 'version': r.version}
            for r in results
        ],
    })
