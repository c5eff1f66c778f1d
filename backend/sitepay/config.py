import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>/backend
load_dotenv(dotenv_path=BASE_DIR / ".env")


def _default_sqlite_uri() -> str:
    return f"sqlite:///{(BASE_DIR / 'sitepay.db').as_posix()}"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    DATABASE_URL = os.getenv("SITEPAY_DATABASE_URL") or _default_sqlite_uri()
    LOG_LEVEL = os.getenv("SITEPAY_LOG_LEVEL", "INFO").upper()

    # bank transfer sheet: "받는분통장표시"
    SENDER_NAME = os.getenv("PAYROLL_SENDER_NAME", "㈜다원")
    DISPLAY_CONTENT = os.getenv("PAYROLL_DISPLAY_CONTENT", "월급")

    IMPORT_CHUNK_SIZE = max(1, int(_float_env("IMPORT_CHUNK_SIZE", 20)))
    IMPORT_CHUNK_DELAY = max(0.0, _float_env("IMPORT_CHUNK_DELAY", 0.0))
