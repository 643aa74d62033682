from __future__ import annotations
import os
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # HTTP Basic credentials for the admin API
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")

    MAX_SUBJECTS_PER_TERM = int(os.getenv("MAX_SUBJECTS_PER_TERM", "7"))
    DEFAULT_DEPARTMENT_CODE = "GEN"

    SEED_REFERENCE_DATA = True
    SEED_DEMO_DATA = False

class DevConfig(BaseConfig):
    DEBUG = True
    SEED_DEMO_DATA = True

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SEED_REFERENCE_DATA = True
    SEED_DEMO_DATA = False

class ProdConfig(BaseConfig):
    DEBUG = False
    SEED_REFERENCE_DATA = False
    SEED_DEMO_DATA = False

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
