import hmac
import uuid

from flask import current_app

from ballotbox.errors import Unauthorized


def generate_voter_code():
    return uuid.uuid4().hex[:8].upper()


def generate_ballot_id():
    return uuid.uuid4().hex[:12]


def check_admin_key(provided):
    expected = current_app.config.get("ADMIN_KEY") or ""
    provided = provided or ""
    if not expected or not hmac.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        current_app.logger.warning("Rejected admin request with invalid key")
        raise Unauthorized()
