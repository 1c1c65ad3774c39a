from django.contrib import admin, messages
from .models import (
    SchoolClass, Subject, SubjectAssignment, ScoreRecord,
    AffectiveRating, PsychomotorRating, AttendanceRecord,
    ClassTermInfo, CompiledResult
)
from .exceptions import ResultWorkflowError
from .repository import ResultRepository
from .services import approval_service
from students.models import Student


@admin.register(SchoolClass)
class SchoolClassAdmin(admin.ModelAdmin):
    list_display = ("name", "school", "form_teacher", "is_active")
    list_filter = ("school", "is_active")
    search_fields = ("name",)


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ("name", "school", "code")
    list_filter = ("school",)
    search_fields = ("name", "code")


@admin.register(SubjectAssignment)
class SubjectAssignmentAdmin(admin.ModelAdmin):
    list_display = ("school_class", "subject", "teacher", "academic_session", "term", "is_active")
    list_filter = ("school_class", "academic_session", "term", "is_active")


@admin.register(ScoreRecord)
class ScoreRecordAdmin(admin.ModelAdmin):
    list_display = (
        "student",
        "subject_assignment",
        "term",
        "ca1",
        "ca2",
        "exam",
        "total",
        "grade",
        "status",
    )
    list_filter = ("status", "academic_session", "term", "subject_assignment__school_class")
    search_fields = ("student__first_name", "student__last_name", "student__admission_number")
    readonly_fields = (
        "total", "grade", "remark", "version", "term", "academic_session",
        "status", "rejection_reason", "rejected_by", "rejected_date", "entered_by", "entered_date",
    )

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return self.readonly_fields
        return ("student", "subject_assignment") + self.readonly_fields

    def save_model(self, request, obj, form, change):
        # Changes are versioned writes like every other score update
        if change:
            ResultRepository().save_score(obj)
        else:
            super().save_model(request, obj, form, change)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        user = request.user

        if not user.is_superuser and user.school:
            if db_field.name == "student":
                kwargs["queryset"] = Student.objects.filter(
                    school=user.school,
                    is_active=True
                )
            elif db_field.name == "subject_assignment":
                kwargs["queryset"] = SubjectAssignment.objects.filter(
                    school_class__school=user.school,
                    is_active=True
                )

        return super().formfield_for_foreignkey(db_field, request, **kwargs)


@admin.register(AffectiveRating)
class AffectiveRatingAdmin(admin.ModelAdmin):
    list_display = ("student", "school_class", "term", "attentiveness", "honesty", "punctuality", "neatness")
    list_filter = ("school_class", "academic_session", "term")
    search_fields = ("student__first_name", "student__last_name")


@admin.register(PsychomotorRating)
class PsychomotorRatingAdmin(admin.ModelAdmin):
    list_display = ("student", "school_class", "term", "sports", "handwork", "drawing", "music")
    list_filter = ("school_class", "academic_session", "term")
    search_fields = ("student__first_name", "student__last_name")


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ("student", "school_class", "date", "is_present", "marked_by")
    list_filter = ("school_class", "academic_session", "term", "is_present")
    search_fields = ("student__first_name", "student__last_name")
    date_hierarchy = "date"


@admin.register(ClassTermInfo)
class ClassTermInfoAdmin(admin.ModelAdmin):
    list_display = ("school_class", "academic_session", "term", "times_school_opened", "next_term_begins")
    list_filter = ("school_class", "academic_session", "term")


@admin.register(CompiledResult)
class CompiledResultAdmin(admin.ModelAdmin):
    list_display = (
        "student",
        "school_class",
        "term",
        "average_score",
        "grade",
        "position",
        "total_students",
        "status",
        "print_approved",
    )
    list_filter = ("status", "school_class", "academic_session", "term", "print_approved")
    search_fields = ("student__first_name", "student__last_name")
    actions = ["approve_results"]

    def has_add_permission(self, request):
        return False

    def get_readonly_fields(self, request, obj=None):
        # Results change only through the compile and approval workflow
        return [f.name for f in self.model._meta.fields if f.name != "id"]

    def approve_results(self, request, queryset):
        if not queryset.exists():
            self.message_user(request, "No results selected.", messages.WARNING)
            return

        service = approval_service()
        approved = 0
        for result in queryset.select_related("student__guardian__user", "school_class__form_teacher__user"):
            try:
                service.approve(request.user, result)
            except ResultWorkflowError as exc:
                self.message_user(request, f"{result.student}: {exc}", messages.ERROR)
            else:
                approved += 1

        if approved:
            self.message_user(
                request,
                f"{approved} result(s) approved.",
                messages.SUCCESS,
            )

    approve_results.short_description = "Approve selected results with their principal comment"
