import copy
import json
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from ballotbox import create_app
from ballotbox.extensions import db
from ballotbox.models import Voter

ADMIN_KEY = "test-admin-key"

SCHEMA_DOCUMENT = {
    "positions": [
        {"id": "R1", "label": "Directeur"},
        {"id": "R2", "label": "Chef des travaux"},
    ],
    "candidates": [
        {"id": "X", "name": "Alice K.", "positionId": "R1", "bio": "Ingénieure civile"},
        {"id": "Y", "name": "Benoit M.", "positionId": "R1"},
        {"id": "Z", "name": "Chantal N.", "positionId": "R2"},
        {"id": "W", "name": "David T.", "positionId": "R2"},
    ],
}


def _write_json(path, document):
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture()
def schema_document():
    return copy.deepcopy(SCHEMA_DOCUMENT)


@pytest.fixture()
def schema_file(tmp_path: Path):
    return _write_json(tmp_path / "candidates.json", SCHEMA_DOCUMENT)


@pytest.fixture()
def app_config(tmp_path: Path, schema_file):
    db_file = tmp_path / "test.sqlite3"
    return {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file}",
        "ADMIN_KEY": ADMIN_KEY,
        "DATA_DIR": str(tmp_path),
        "SCHEMA_FILE": str(schema_file),
        "VOTERS_FILE": str(tmp_path / "voters.json"),
        "AUTH_MODE": "code",
        "ADMIN_CONTACT": "",
        "CLOSE_AT": None,
    }


@pytest.fixture()
def app(app_config):
    app = create_app(app_config)

    with app.app_context():
        driver = db.engine.url.drivername
        if driver != "sqlite":
            raise RuntimeError(
                f"Test database must be SQLite, got '{driver}'. Refusing to run destructive test setup."
            )
        db.drop_all()
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def phone_app(app_config):
    app_config = {**app_config, "AUTH_MODE": "phone", "ADMIN_CONTACT": "+243 834 757 010"}
    app = create_app(app_config)

    with app.app_context():
        db.drop_all()
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def phone_client(phone_app):
    return phone_app.test_client()


@pytest.fixture()
def db_session(app):
    with app.app_context():
        yield db.session


@pytest.fixture()
def schema(app):
    return app.extensions["schema"]


@pytest.fixture()
def voters(db_session):
    v1 = Voter(code="VOTER-001", name="Esron Tshibamba", used=False)
    v2 = Voter(code="VOTER-002", name="John Doe", used=False)
    db_session.add_all([v1, v2])
    db_session.commit()
    return v1, v2


@pytest.fixture()
def write_json(tmp_path: Path):
    def write(name, document):
        return _write_json(tmp_path / name, document)

    return write


@pytest.fixture()
def admin_key():
    return ADMIN_KEY
