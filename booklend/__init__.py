from flask import Flask, jsonify
from booklend.config import Config
from booklend.errors import LibraryError, StorageUnavailableError
from booklend.extensions import db, migrate, jwt


def create_app(config_object=Config, **overrides):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    # 1) db first; models must be imported before create_all/migrations
    db.init_app(app)
    from booklend.models import title, copy, loan_record, sequence_counter  # noqa: F401

    # 2) other extensions
    migrate.init_app(app, db)
    jwt.init_app(app)

    # 3) API blueprints
    from booklend.controllers.title_controller import title_bp
    from booklend.controllers.circulation_controller import circulation_bp
    app.register_blueprint(title_bp)
    app.register_blueprint(circulation_bp)

    @app.errorhandler(LibraryError)
    def library_error(e: LibraryError):
        body = {"success": False, "message": e.message, "error": e.__class__.__name__}
        if isinstance(e, StorageUnavailableError) and e.partial is not None:
            body["partial"] = e.partial.to_dict()
        if e.status_code >= 500:
            app.logger.error(f"[api] {e.__class__.__name__}: {e.message}")
        return jsonify(body), e.status_code

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    # Scheduler (integrity audit)
    from booklend.tasks.scheduler import start_scheduler
    start_scheduler(app)

    return app
