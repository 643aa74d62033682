from __future__ import annotations
import os
from importlib import import_module
from flask import Flask
from config import config_map
from extensions import db, migrate, login_manager
from sqlalchemy import inspect

def _seed_from_config(app):
    if not (app.config.get("SEED_REFERENCE_DATA") or app.config.get("SEED_DEMO_DATA")):
        return
    with app.app_context():
        # при запуске через alembic таблиц ещё может не быть
        if not inspect(db.engine).has_table("periods"):
            return

        from seed import seed_reference_data, seed_demo_data  # локальный импорт, чтобы избежать циклов
        if app.config.get("SEED_REFERENCE_DATA"):
            seed_reference_data()
        if app.config.get("SEED_DEMO_DATA"):
            seed_demo_data()
        db.session.commit()

def register_blueprints(app: Flask) -> None:
    # core первым: логирование и обработчики ошибок
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.directory import bp as directory_bp
    from blueprints.registry import bp as registry_bp
    from blueprints.admin.routes import api_bp as admin_api_bp
    from blueprints.import_export.routes import api_bp as import_export_api_bp
    from blueprints.public.routes import api_bp as public_api_bp

    app.register_blueprint(core_bp, url_prefix="/api")
    app.register_blueprint(public_api_bp, url_prefix="/api")
    app.register_blueprint(auth_api_bp, url_prefix="/api/admin")
    app.register_blueprint(admin_api_bp, url_prefix="/api/admin")
    app.register_blueprint(directory_bp, url_prefix="/api/admin")
    app.register_blueprint(registry_bp, url_prefix="/api/admin")
    app.register_blueprint(import_export_api_bp, url_prefix="/api/admin")

def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # pytest выставляет PYTEST_CURRENT_TEST: БД в памяти, чтобы тесты не протекали друг в друга
    if os.environ.get("PYTEST_CURRENT_TEST"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
    # явные настройки вызывающего сильнее конфига и pytest-подмены
    if overrides:
        app.config.update(overrides)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db, render_as_batch=True)
    login_manager.init_app(app)
    register_blueprints(app)
    _seed_from_config(app)
    return app
