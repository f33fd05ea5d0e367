import os

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = os.path.abspath(os.getenv("DATA_DIR", "data"))


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    ADMIN_KEY = os.getenv("ADMIN_KEY", "changez-moi")
    PORT = int(os.getenv("PORT", "3000"))

    DATA_DIR = DATA_DIR
    SCHEMA_FILE = os.getenv("SCHEMA_FILE", os.path.join(DATA_DIR, "candidates.json"))
    VOTERS_FILE = os.getenv("VOTERS_FILE", os.path.join(DATA_DIR, "voters.json"))

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(DATA_DIR, "ballots.sqlite3"),
    )

    # "code": pre-issued voter codes; "phone": one ballot per phone number
    AUTH_MODE = os.getenv("AUTH_MODE", "code").lower()
    ADMIN_CONTACT = os.getenv("ADMIN_CONTACT", "")
    CLOSE_AT = os.getenv("CLOSE_AT") or None

    ELECTION_TITLE = os.getenv("ELECTION_TITLE", "Élection — Département Construction")
    ORGANIZATION = os.getenv("ORGANIZATION", "ESR — Ensemble sur la Réussite")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
