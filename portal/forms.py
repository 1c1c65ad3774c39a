from django import forms
from academics.models import TERM_CHOICES
from schools.models import AcademicSession, Term


class TermSelectionForm(forms.Form):
    """
    Academic session and term a request works on.
    Both fall back to the school's active session and term.
    """
    session_id = forms.IntegerField(required=False)
    term = forms.ChoiceField(choices=TERM_CHOICES, required=False)

    def __init__(self, *args, school=None, **kwargs):
        self.school = school
        super().__init__(*args, **kwargs)

    def clean(self):
        cleaned_data = super().clean()
        active_session, active_term = Term.current_for(self.school)

        session_id = cleaned_data.get("session_id")
        if session_id:
            session = AcademicSession.objects.filter(pk=session_id, school=self.school).first()
            if session is None:
                raise forms.ValidationError("Academic session not found.")
        else:
            session = active_session
        term = cleaned_data.get("term") or active_term

        if session is None or not term:
            raise forms.ValidationError("No active academic session or term. Pick one explicitly.")

        cleaned_data["session"] = session
        cleaned_data["term"] = term
        return cleaned_data


class ScoreImportForm(forms.Form):
    """Upload of the score sheet produced by the CSV export"""
    csv_file = forms.FileField(
        label="Upload CSV file",
        help_text="S/No, Reg ID, Student Name, 1st CA[20], 2nd CA[20], Exams[60], Total [100]"
    )

    def clean_csv_file(self):
        upload = self.cleaned_data["csv_file"]
        if not (upload.name or "").lower().endswith(".csv"):
            raise forms.ValidationError("Please upload a valid CSV file (.csv).")
        try:
            return upload.read().decode("utf-8-sig")
        except UnicodeDecodeError:
            raise forms.ValidationError("The file is not UTF-8 text.")
