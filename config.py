"""Application settings. Values come from the environment, with `.env` loaded first."""

import os

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _int_env(key, default):
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "sqlite:///" + os.path.join(basedir, "campus_events.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # pooled connections, checked on checkout and released with the request's session
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # relative paths resolve against the project directory
    UPLOAD_FOLDER = os.path.join(basedir, os.environ.get("UPLOAD_FOLDER", "uploads"))
    MAX_CONTENT_LENGTH = _int_env("MAX_CONTENT_LENGTH", 200 * 1024 * 1024)

    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@gdgconnect.com")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FILE = os.environ.get("LOG_FILE") or None
