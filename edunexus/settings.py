import os
from pathlib import Path

from dotenv import load_dotenv

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get(
    "EDUNEXUS_SECRET_KEY", "django-insecure-edunexus-dev-secret-key-change-me"
)

DEBUG = os.environ.get("EDUNEXUS_DEBUG", "1") == "1"

ALLOWED_HOSTS = [
    h.strip()
    for h in os.environ.get("EDUNEXUS_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")
    if h.strip()
]


# Application definition
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    "campus",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "campus.middleware.DatabaseErrorMiddleware",
]

ROOT_URLCONF = "edunexus.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
                "campus.context_processors.current_actor",
                "campus.context_processors.query_flash",
            ],
        },
    },
]

WSGI_APPLICATION = "edunexus.wsgi.application"


# Database: default SQLite
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("EDUNEXUS_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}


# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("EDUNEXUS_TIME_ZONE", "Asia/Kolkata")
USE_I18N = True
USE_TZ = True


# Static files (CSS, JS)
STATIC_URL = "static/"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Sessions carry the authenticated identity (see campus.auth_utils)
SESSION_COOKIE_AGE = 60 * 60 * 8
SESSION_EXPIRE_AT_BROWSER_CLOSE = True

LOGIN_URL = "/auth/login/"

MESSAGE_STORAGE = "django.contrib.messages.storage.session.SessionStorage"


# Logging
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "campus": {
            "handlers": ["console"],
            "level": os.environ.get("EDUNEXUS_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}


# App settings
EDUNEXUS_PAGE_SIZE = 10
EDUNEXUS_SEARCH_LIMIT = 20
