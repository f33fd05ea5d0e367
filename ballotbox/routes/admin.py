from flask import Response, current_app, jsonify, render_template, request

from ballotbox.errors import InvalidRequest
from ballotbox.schema import get_schema
from ballotbox.services.ballots import ballot_records, count_voters, list_ballots
from ballotbox.services.election import get_election_state
from ballotbox.services.security import check_admin_key
from ballotbox.services.tally import build_results, render_results_csv, tally_ballots


def get_results(admin_key):
    check_admin_key(admin_key)
    return tally_ballots(get_schema(), list_ballots())


def register_admin_routes(app):
    @app.route("/admin")
    def admin_results():
        key = request.args.get("key", "")
        check_admin_key(key)

        schema = get_schema()
        ballots = list_ballots()
        counts = tally_ballots(schema, ballots)

        return render_template(
            "admin/results.html",
            title=current_app.config["ELECTION_TITLE"],
            results=build_results(schema, counts),
            ballot_count=len(ballots),
            voter_count=count_voters(),
            election=get_election_state().to_dict(),
            key=key,
        )

    @app.route("/admin/export.csv")
    def admin_export_csv():
        counts = get_results(request.args.get("key", ""))
        csv_text = render_results_csv(get_schema(), counts)
        response = Response(csv_text, mimetype="text/csv")
        response.headers["Content-Disposition"] = 'attachment; filename="resultats.csv"'
        return response

    @app.route("/admin/export.json")
    def admin_export_json():
        check_admin_key(request.args.get("key", ""))
        return jsonify(ballot_records())

    @app.route("/admin/close-at", methods=["POST"])
    def admin_close_at():
        check_admin_key(request.args.get("key", ""))

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise InvalidRequest()

        state = get_election_state()
        state.set_close_at(data.get("isoDate"))
        current_app.logger.info("Close time set to %s", state.to_dict()["closeAt"])
        return jsonify({"ok": True, **state.to_dict()})
