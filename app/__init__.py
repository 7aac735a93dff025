import logging

import click
from flask import Flask, jsonify
from flask.cli import AppGroup
from .config import Config
from .extensions import db, migrate, jwt, mail
from .routes import auth, profile, hsk, lessons, uploads, comments, payment, admin
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix


def create_app(config_class=Config):
    app = Flask(__name__, static_folder="../static")
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)
    CORS(app, resources={r"/*": {"origins": "*"}})
    app.config.from_object(config_class)

    if not app.testing:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)

    # Register blueprints
    app.register_blueprint(auth.bp, url_prefix="/auth")
    app.register_blueprint(profile.bp, url_prefix="/profile")
    app.register_blueprint(hsk.bp, url_prefix="/hsk")
    app.register_blueprint(lessons.bp, url_prefix="/lessons")
    app.register_blueprint(uploads.bp, url_prefix="/uploads")
    app.register_blueprint(comments.bp, url_prefix="/comments")
    app.register_blueprint(payment.bp, url_prefix="/payments")
    app.register_blueprint(admin.bp, url_prefix="/admin")

    register_error_handlers(app)
    register_commands(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"error": "File size too large"}), 413


def register_commands(app):
    from .models import User, HSKLevel, Lesson, LevelPrice, HSK_LEVELS
    from .utils.moderation import generate_keyword_variants

    @app.cli.command("seed")
    def seed():
        """Create the tables, the admin account, HSK levels 1-6 and level prices."""
        db.create_all()

        if not User.query.filter_by(username=app.config["ADMIN_USERNAME"]).first():
            admin_user = User(
                username=app.config["ADMIN_USERNAME"],
                email=app.config["ADMIN_EMAIL"],
                display_name="Nancy",
                role="admin"
            )
            admin_user.set_password(app.config["ADMIN_PASSWORD"])
            db.session.add(admin_user)
            click.echo(f"Created admin user {admin_user.username}")

        for level in HSK_LEVELS:
            if not HSKLevel.query.filter_by(level=level).first():
                db.session.add(HSKLevel(
                    level=level,
                    title_en=f"HSK {level}",
                    title_sc=f"HSK {level}级",
                    title_tc=f"HSK {level}級",
                    word_count=0
                ))
            if not LevelPrice.query.filter_by(level=level).first():
                db.session.add(LevelPrice(level=level, price=app.config["DEFAULT_LEVEL_PRICE"]))

        if not Lesson.query.filter_by(level=1).first():
            db.session.add(Lesson(
                title="Pinyin and tones",
                description="The four tones and the neutral tone.",
                level=1,
                order=1,
                is_free=True
            ))
            db.session.add(Lesson(
                title="Greetings",
                description="你好, 再见 and everyday greetings.",
                level=1,
                order=2
            ))

        db.session.commit()
        click.echo("Seed complete")

    keywords = AppGroup("keywords", help="Moderation keyword helpers.")

    @keywords.command("variants")
    @click.argument("words", nargs=-1, required=True)
    def variants(words):
        """Print the obfuscated spellings of each WORD."""
        for word in words:
            click.echo(f"{word}: {', '.join(generate_keyword_variants(word))}")

    app.cli.add_command(keywords)
