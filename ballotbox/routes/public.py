from flask import current_app, jsonify, render_template, request

from ballotbox.errors import InvalidRequest
from ballotbox.schema import get_schema
from ballotbox.services.ballots import submit_ballot
from ballotbox.services.election import get_election_state
from ballotbox.services.notify import build_admin_message_url
from ballotbox.services.registry import authenticate


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest()
    return data


def _identity_from(data):
    # older clients post voterId (code) or phone instead of identity
    for key in ("identity", "voterId", "phone"):
        value = data.get(key)
        if value:
            return value
    return None


def _client_ip():
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or ""


def register_public_routes(app):
    @app.route("/")
    def index():
        return render_template(
            "index.html",
            title=current_app.config["ELECTION_TITLE"],
            organization=current_app.config["ORGANIZATION"],
            mode=current_app.config["AUTH_MODE"],
        )

    @app.route("/api/schema")
    @app.route("/api/candidates")
    def api_schema():
        return jsonify(get_schema().to_public_dict())

    @app.route("/api/status")
    def api_status():
        status = get_election_state().to_dict()
        status["mode"] = current_app.config["AUTH_MODE"]
        return jsonify(status)

    @app.route("/api/auth", methods=["POST"])
    def api_auth():
        data = _json_body()
        authenticate(_identity_from(data), current_app.config["AUTH_MODE"])
        return jsonify({"ok": True})

    @app.route("/api/vote", methods=["POST"])
    def api_vote():
        get_election_state().ensure_open()

        data = _json_body()
        mode = current_app.config["AUTH_MODE"]
        schema = get_schema()
        ballot = submit_ballot(
            schema,
            _identity_from(data),
            data.get("selections"),
            note=data.get("note"),
            ip=_client_ip(),
            voter_name=data.get("name"),
            mode=mode,
        )

        response = {"ok": True, "ballotId": ballot.id}
        if mode == "phone":
            notify_url = build_admin_message_url(
                schema,
                ballot.selections,
                ballot.voter_name,
                ballot.voter_ref,
                ballot.id,
                current_app.config["ADMIN_CONTACT"],
            )
            if notify_url:
                response["notifyUrl"] = notify_url
        return jsonify(response)
