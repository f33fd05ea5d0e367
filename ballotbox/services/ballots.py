import json
import threading
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ballotbox.errors import (
    AlreadyVoted,
    InvalidCandidate,
    InvalidRequest,
    InvalidSelection,
    MissingSelection,
    StorageUnavailable,
)
from ballotbox.extensions import db
from ballotbox.models import Ballot, Voter
from ballotbox.services.registry import authenticate
from ballotbox.services.security import generate_ballot_id

NOTE_MAX_LENGTH = 1000

# All registry/ballot mutations in this process go through this lock.
_submit_lock = threading.Lock()


def _clean_choice(schema, race, choice):
    if race.max_choices == 1:
        if isinstance(choice, list) and len(choice) == 1:
            choice = choice[0]
        if not isinstance(choice, str) or schema.candidate(race.id, choice) is None:
            raise InvalidCandidate(race.id)
        return choice

    choices = [choice] if isinstance(choice, str) else choice
    if not isinstance(choices, list) or not 1 <= len(choices) <= race.max_choices:
        raise InvalidCandidate(race.id)
    for candidate_id in choices:
        if not isinstance(candidate_id, str) or schema.candidate(race.id, candidate_id) is None:
            raise InvalidCandidate(race.id)
    if len(set(choices)) != len(choices):
        raise InvalidCandidate(race.id)
    return list(choices)


def validate_selections(schema, selections):
    """Return the normalized selections or raise an InvalidSelection.

    Every open race needs exactly one entry; entries for unknown or closed
    races are rejected rather than ignored.
    """
    if not isinstance(selections, dict):
        raise InvalidRequest("Les sélections doivent être un objet {poste: candidat}.")

    for race_id in selections:
        race = schema.race(race_id)
        if race is None or not race.open:
            raise InvalidSelection(race_id)

    cleaned = {}
    for race in schema.open_races():
        choice = selections.get(race.id)
        if choice is None or choice == "" or choice == []:
            raise MissingSelection(race.id, race.title)
        cleaned[race.id] = _clean_choice(schema, race, choice)
    return cleaned


def _clean_note(note):
    if note is None:
        return None
    if not isinstance(note, str):
        raise InvalidRequest("La remarque doit être du texte.")
    note = note.strip()
    if len(note) > NOTE_MAX_LENGTH:
        raise InvalidRequest(f"La remarque dépasse {NOTE_MAX_LENGTH} caractères.")
    return note or None


def _mark_used(voter_id, now):
    result = db.session.execute(
        update(Voter)
        .where(Voter.id == voter_id, Voter.used.is_(False))
        .values(used=True, used_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def submit_ballot(
    schema,
    identity,
    selections,
    note=None,
    ip=None,
    voter_name=None,
    mode="code",
):
    """Record one ballot for ``identity`` and mark the voter as used.

    Both writes share a single transaction: either the ballot exists and the
    voter is marked, or neither change is persisted.
    """
    if identity is None or selections is None:
        raise InvalidRequest()

    voter = authenticate(identity, mode)
    cleaned = validate_selections(schema, selections)
    note = _clean_note(note)

    if mode == "phone":
        voter_ref = voter
        voter_name = (voter_name or "").strip() if isinstance(voter_name, str) else ""
        if not voter_name:
            raise InvalidRequest("Entrez votre nom complet.")
    else:
        voter_ref = voter.code
        voter_name = voter.name

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    ballot = Ballot(
        id=generate_ballot_id(),
        voter_ref=voter_ref,
        voter_name=voter_name,
        selections=cleaned,
        note=note,
        ip=(ip or "")[:64] or None,
        created_at=now,
    )

    with _submit_lock:
        try:
            if mode == "phone":
                registered = Voter.query.filter_by(phone=voter_ref).first()
                if registered is not None and not _mark_used(registered.id, now):
                    raise AlreadyVoted("Ce numéro WhatsApp a déjà voté.")
            elif not _mark_used(voter.id, now):
                raise AlreadyVoted()

            db.session.add(ballot)
            db.session.commit()
        except AlreadyVoted:
            db.session.rollback()
            current_app.logger.warning("Duplicate ballot attempt rejected")
            raise
        except IntegrityError as exc:
            db.session.rollback()
            current_app.logger.warning("Duplicate ballot attempt rejected by the store")
            raise AlreadyVoted() from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Ballot store unavailable")
            raise StorageUnavailable() from exc

    current_app.logger.info("Ballot %s accepted", ballot.id)
    return ballot


def list_ballots():
    try:
        return Ballot.query.order_by(Ballot.created_at, Ballot.id).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Ballot store unavailable")
        raise StorageUnavailable() from exc


def count_voters():
    try:
        return Voter.query.count()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Voter registry unavailable")
        raise StorageUnavailable() from exc


def ballot_records():
    return {"votes": [ballot.to_record() for ballot in list_ballots()]}


def export_ballots(path):
    records = ballot_records()
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(records, handle, indent=2, ensure_ascii=False)
    return len(records["votes"])
