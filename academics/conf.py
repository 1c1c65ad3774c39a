from django.conf import settings


DEFAULTS = {
    "POLL_INTERVAL_SECONDS": 30,
    "AUTOSAVE_QUIET_SECONDS": 3,
    "COMMENT_OPTION_COUNT": 5,
    "COMMENT_MIN_UNIQUE": 3,
    "COMMENT_MAX_RETRIES": 20,
    "DEFAULT_ATTENDANCE_DAYS": 60,
}


def results_setting(name):
    """Read a key of settings.RESULTS, falling back to the built-in default."""
    overrides = getattr(settings, "RESULTS", {})
    return overrides.get(name, DEFAULTS[name])
