from django.urls import path
from . import views

app_name = "portal"

urlpatterns = [
    # Scores (subject teacher)
    path("api/assignments/<int:assignment_id>/scores/", views.assignment_scores, name="assignment_scores"),
    path("api/assignments/<int:assignment_id>/scores/autosave/", views.autosave_scores, name="autosave_scores"),
    path("api/assignments/<int:assignment_id>/scores/submit/", views.submit_scores, name="submit_scores"),
    path("api/assignments/<int:assignment_id>/scores/export/", views.export_scores_csv, name="export_scores_csv"),
    path("api/assignments/<int:assignment_id>/scores/import/", views.import_scores_csv, name="import_scores_csv"),
    path("api/scores/<int:score_id>/reject/", views.reject_score, name="reject_score"),
    path("api/scores/<int:score_id>/correction/", views.score_correction_notice, name="score_correction_notice"),
    path("api/scores/<int:score_id>/resubmit/", views.resubmit_score, name="resubmit_score"),

    # Ratings and attendance (class teacher)
    path("api/classes/<int:class_id>/affective/", views.save_affective_rating, name="save_affective_rating"),
    path("api/classes/<int:class_id>/psychomotor/", views.save_psychomotor_rating, name="save_psychomotor_rating"),
    path("api/classes/<int:class_id>/attendance/", views.save_attendance, name="save_attendance"),
    path("api/classes/<int:class_id>/attendance/day/", views.attendance_for_date, name="attendance_for_date"),

    # Compilation (class teacher)
    path("api/classes/<int:class_id>/standings/", views.class_standings, name="class_standings"),
    path("api/classes/<int:class_id>/students/<int:student_id>/completeness/", views.student_completeness, name="student_completeness"),
    path("api/classes/<int:class_id>/students/<int:student_id>/comment-options/", views.comment_options, name="comment_options"),
    path("api/classes/<int:class_id>/students/<int:student_id>/draft/", views.save_result_draft, name="save_result_draft"),
    path("api/classes/<int:class_id>/students/<int:student_id>/submit/", views.submit_result, name="submit_result"),
    path("api/classes/<int:class_id>/submit-all/", views.submit_all_results, name="submit_all_results"),
    path("api/classes/<int:class_id>/results/", views.class_results, name="class_results"),
    path("api/results/<int:result_id>/correction/", views.result_correction_notice, name="result_correction_notice"),

    # Approval (principal / school admin)
    path("api/results/pending/", views.pending_results, name="pending_results"),
    path("api/results/bulk-approve/", views.bulk_approve_results, name="bulk_approve_results"),
    path("api/results/bulk-reject/", views.bulk_reject_results, name="bulk_reject_results"),
    path("api/results/<int:result_id>/approve/", views.approve_result, name="approve_result"),
    path("api/results/<int:result_id>/reject/", views.reject_result, name="reject_result"),
    path("api/results/<int:result_id>/print-approval/", views.set_print_approval, name="set_print_approval"),
    path("api/results/<int:result_id>/delete/", views.delete_result, name="delete_result"),

    # Guardians
    path("api/my-children/results/", views.my_children_results, name="my_children_results"),

    # Notifications and change feed
    path("api/notifications/", views.my_notifications, name="my_notifications"),
    path("api/notifications/<int:notification_id>/read/", views.mark_notification_read, name="mark_notification_read"),
    path("api/changes/", views.changes_since, name="changes_since"),
]
