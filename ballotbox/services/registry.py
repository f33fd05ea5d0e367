import json
import re
from typing import List, Optional

from flask import current_app
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ballotbox.errors import (
    AlreadyVoted,
    InvalidIdentity,
    InvalidRequest,
    StorageUnavailable,
    VoterNotFound,
)
from ballotbox.extensions import db
from ballotbox.models import Ballot, Voter
from ballotbox.services.security import generate_voter_code

PHONE_RE = re.compile(r"^\+?\d{6,15}$")
_PHONE_SEPARATORS = re.compile(r"[\s.\-()]")


class VoterEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    code: Optional[str] = Field(None, validation_alias=AliasChoices("id", "code"))
    phone: Optional[str] = None
    name: Optional[str] = None
    used: StrictBool = False


class VotersDocument(BaseModel):
    voters: List[VoterEntry]


def normalize_code(raw):
    code = (raw or "").strip().upper() if isinstance(raw, str) else ""
    if not code:
        raise InvalidRequest("Entrez votre code électeur.")
    return code


def normalize_phone(raw):
    if not isinstance(raw, str):
        raise InvalidIdentity("Entrez votre téléphone (WhatsApp).")
    phone = _PHONE_SEPARATORS.sub("", raw)
    if phone.startswith("00"):
        phone = "+" + phone[2:]
    if not PHONE_RE.match(phone):
        raise InvalidIdentity("Numéro de téléphone invalide.")
    return phone


def normalize_identity(raw, mode):
    if mode == "phone":
        return normalize_phone(raw)
    return normalize_code(raw)


def authenticate(identity, mode="code"):
    """Check that ``identity`` may still vote; never mutates state.

    Returns the registry ``Voter`` in code mode. In phone mode the voter
    need not be registered, so the normalized phone is returned instead.
    """
    ref = normalize_identity(identity, mode)

    try:
        if mode == "phone":
            voter = Voter.query.filter_by(phone=ref).first()
            already_cast = Ballot.query.filter_by(voter_ref=ref).first() is not None
            if already_cast or (voter is not None and voter.used):
                raise AlreadyVoted("Ce numéro WhatsApp a déjà voté.")
            return ref

        voter = Voter.query.filter_by(code=ref).first()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Voter registry unavailable")
        raise StorageUnavailable() from exc

    if voter is None:
        current_app.logger.warning("Authentication failed for unknown voter code")
        raise VoterNotFound()
    if voter.used:
        raise AlreadyVoted()
    return voter


def add_voter(name, code=None, phone=None):
    if phone:
        phone = normalize_phone(phone)
    code = normalize_code(code) if code else (None if phone else generate_voter_code())

    voter = Voter(name=(name or "").strip(), code=code, phone=phone, used=False)
    db.session.add(voter)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise InvalidRequest("Code ou téléphone déjà utilisé.") from exc
    return voter


def _match_voter(code, phone):
    by_code = Voter.query.filter_by(code=code).first() if code else None
    by_phone = Voter.query.filter_by(phone=phone).first() if phone else None

    if by_phone is not None and code and by_phone.code and by_phone.code != code:
        raise InvalidRequest(
            f"Le téléphone {phone} appartient déjà à l'électeur {by_phone.code}."
        )
    if by_code is not None and by_phone is not None and by_code.id != by_phone.id:
        raise InvalidRequest(
            f"Le code {code} et le téléphone {phone} désignent deux électeurs différents."
        )
    return by_code or by_phone


def import_voters(path):
    """Upsert voters from a ``{"voters": [...]}`` document.

    Entries are matched on code (``id`` or ``code``) or phone; an entry whose
    phone belongs to a voter with another code is refused. A ``used`` flag
    already set in the database is never cleared.
    """
    try:
        with open(path, "r", encoding="utf-8") as handle:
            document = VotersDocument.model_validate(json.load(handle))
    except ValidationError as exc:
        raise StorageUnavailable(f"Registre électeurs invalide: {path}") from exc
    except (OSError, ValueError) as exc:
        raise StorageUnavailable(f"Registre électeurs illisible: {path}") from exc

    created = updated = 0
    try:
        for entry in document.voters:
            code = normalize_code(entry.code) if entry.code else None
            phone = normalize_phone(entry.phone) if entry.phone else None
            if not code and not phone:
                raise InvalidRequest(f"Électeur sans code ni téléphone: {entry.name or '?'}")

            voter = _match_voter(code, phone)
            if voter is None:
                voter = Voter(code=code, phone=phone, used=False)
                db.session.add(voter)
                created += 1
            else:
                updated += 1

            voter.name = entry.name or voter.name or ""
            if code:
                voter.code = code
            if phone:
                voter.phone = phone
            if entry.used:
                voter.used = True

        db.session.commit()
    except InvalidRequest:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        raise InvalidRequest(f"Registre électeurs incohérent: {path}") from exc

    current_app.logger.info(
        "Imported voters from %s (%d created, %d updated)", path, created, updated
    )
    return created, updated
