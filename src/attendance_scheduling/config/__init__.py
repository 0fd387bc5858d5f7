import os


def get_settings_module() -> str:
    # APP_ENV chọn module cấu hình, mặc định là development
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "attendance_scheduling.config.production"

    if env in {"test", "testing"}:
        return "attendance_scheduling.config.testing"

    return "attendance_scheduling.config.development"
