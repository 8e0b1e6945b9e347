"""
Trade Documents – Django Settings (Infrastructure Only)
=========================================================
Django hosts the persistent Document Store. The lifecycle core does
not depend on Django; only core.document_store.persistence does.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("TRADEDOCS_SECRET_KEY", "tradedocs-dev-key")

DEBUG = os.environ.get("TRADEDOCS_DEBUG", "true").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "core.document_store",
]

MIDDLEWARE = []

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("TRADEDOCS_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "tradedocs": {
            "handlers": ["console"],
            "level": os.environ.get("TRADEDOCS_LOG_LEVEL", "INFO"),
        },
    },
}
