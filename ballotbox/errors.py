from flask import jsonify, request


class SchemaError(Exception):
    pass


class ConfigError(Exception):
    pass


class BallotError(Exception):
    status_code = 400
    message = "Requête invalide."

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class InvalidRequest(BallotError):
    message = "Requête invalide."


class InvalidIdentity(InvalidRequest):
    message = "Identifiant électeur invalide."


class VoterNotFound(BallotError):
    message = "Code électeur introuvable."


class AlreadyVoted(BallotError):
    message = "Ce code a déjà voté."


class InvalidSelection(BallotError):
    message = "Sélection invalide."

    def __init__(self, race_id=None, message=None):
        self.race_id = race_id
        if message is None and race_id is not None:
            message = f"Poste invalide: {race_id}"
        super().__init__(message)


class MissingSelection(InvalidSelection):
    def __init__(self, race_id, race_title=None):
        super().__init__(
            race_id,
            f"Veuillez choisir un candidat pour: {race_title or race_id}",
        )


class InvalidCandidate(InvalidSelection):
    def __init__(self, race_id):
        super().__init__(race_id, f"Candidat invalide pour {race_id}")


class Unauthorized(BallotError):
    status_code = 401
    message = "Unauthorized"


class ElectionClosed(BallotError):
    status_code = 423
    message = "Vote clôturé."


class StorageUnavailable(BallotError):
    status_code = 503
    message = "Stockage indisponible. Réessayez plus tard."


def register_error_handlers(app):
    @app.errorhandler(BallotError)
    def handle_ballot_error(error):
        if request.path.startswith("/api/") or request.is_json:
            return jsonify({"message": error.message}), error.status_code
        return error.message, error.status_code, {"Content-Type": "text/plain; charset=utf-8"}

    @app.errorhandler(404)
    def not_found(error):
        if request.path.startswith("/api/"):
            return jsonify({"message": "Endpoint introuvable."}), 404
        return error
