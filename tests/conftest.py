import pytest

from app import create_app
from app.config import Config
from app.extensions import db
from app.models import User, Lesson, HSKLevel, LevelPrice, HSK_LEVELS


@pytest.fixture()
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite://"
        UPLOAD_ROOT = str(tmp_path / "static")
        STORAGE_BACKEND = "local"
        MAIL_SUPPRESS_SEND = True
        PAYPAL_CLIENT_ID = None
        PAYPAL_CLIENT_SECRET = None
        JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
        SECRET_KEY = "test-secret"

    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _make_user(username, role="student", password="secret1"):
    user = User(username=username, email=f"{username}@example.com", role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def _login(client, username, password="secret1"):
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.get_json()['access_token']}"}


@pytest.fixture()
def admin_user(app):
    return _make_user("nancyadm", role="admin")


@pytest.fixture()
def student_user(app):
    return _make_user("student1")


@pytest.fixture()
def admin_headers(client, admin_user):
    return _login(client, "nancyadm")


@pytest.fixture()
def student_headers(client, student_user):
    return _login(client, "student1")


@pytest.fixture()
def levels(app):
    for level in HSK_LEVELS:
        db.session.add(HSKLevel(
            level=level,
            title_en=f"HSK {level}",
            title_sc=f"HSK {level}级",
            title_tc=f"HSK {level}級",
            word_count=150 * level
        ))
        db.session.add(LevelPrice(level=level, price=20.0 + level))
    db.session.commit()


@pytest.fixture()
def lesson(app):
    lesson = Lesson(title="Greetings", level=1, order=1)
    db.session.add(lesson)
    db.session.commit()
    return lesson


@pytest.fixture()
def free_lesson(app):
    lesson = Lesson(title="Pinyin", level=1, order=2, is_free=True)
    db.session.add(lesson)
    db.session.commit()
    return lesson


@pytest.fixture()
def other_student_headers(client, app):
    _make_user("student2")
    return _login(client, "student2")
