import os


def get_settings_module() -> str:
    """Settings module for APP_ENV (development by default)."""
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "ulb_staff.settings.production"

    if env in {"test", "testing"}:
        return "ulb_staff.settings.testing"

    return "ulb_staff.settings.development"
