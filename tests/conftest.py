import pytest
from flask_jwt_extended import create_access_token

from booklend import create_app
from booklend.config import TestConfig
from booklend.extensions import db
from booklend.models.borrower import BorrowerKind, BorrowerRef
from booklend.services.title_service import TitleService


@pytest.fixture
def app(tmp_path):
    # file database: the sequence allocator commits on its own connection
    db_file = tmp_path / "booklend_test.db"
    app = create_app(TestConfig, SQLALCHEMY_DATABASE_URI=f"sqlite:///{db_file}")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def student():
    return BorrowerRef("CSE-2021-001", BorrowerKind.STUDENT)


@pytest.fixture
def other_student():
    return BorrowerRef("ECE-2021-042", BorrowerKind.STUDENT)


@pytest.fixture
def faculty():
    return BorrowerRef("EMP-77", BorrowerKind.FACULTY)


@pytest.fixture
def register(app):
    """Register a title with sensible defaults; returns (title, copies)."""
    def _register(title="Operating System Concepts", stock=3, **overrides):
        fields = dict(
            title=title,
            author="Silberschatz",
            details="9th edition",
            price=450,
            course="B.Tech",
            branch="CSE",
            stock=stock,
        )
        fields.update(overrides)
        return TitleService.register_title(**fields)
    return _register


@pytest.fixture
def auth_headers(app):
    def _headers(user_id="lib-1", role="librarian"):
        token = create_access_token(identity=user_id, additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}
    return _headers
