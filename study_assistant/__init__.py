from flask import Flask, jsonify
from config import Config
from study_assistant.extensions import db, migrate, login_manager
from study_assistant.errors import register_error_handlers


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Register blueprints
    from study_assistant.routes.auth import auth_bp
    from study_assistant.routes.notes import notes_bp
    from study_assistant.routes.chat import chat_bp
    from study_assistant.routes.study_materials import study_materials_bp
    from study_assistant.routes.tts import tts_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(study_materials_bp)
    app.register_blueprint(tts_bp)

    register_error_handlers(app)

    # User loader
    from study_assistant.models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Login required"}), 401

    # Create tables on first run
    with app.app_context():
        from study_assistant.models import user, note, note_chunk, study_material  # noqa
        db.create_all()

    return app
