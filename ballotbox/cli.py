import os

import click
from flask import current_app

from ballotbox.errors import BallotError
from ballotbox.extensions import db
from ballotbox.schema import get_schema
from ballotbox.services.ballots import export_ballots, list_ballots
from ballotbox.services.registry import add_voter, import_voters
from ballotbox.services.tally import render_results_csv, tally_ballots


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create tables and load the voters file when present."""
        db.create_all()
        click.echo("Database ready.")

        voters_file = current_app.config["VOTERS_FILE"]
        if os.path.exists(voters_file):
            try:
                created, updated = import_voters(voters_file)
            except BallotError as exc:
                raise click.ClickException(exc.message) from exc
            click.echo(f"Voters imported: {created} created, {updated} updated.")

    @app.cli.command("import-voters")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    def import_voters_command(path):
        try:
            created, updated = import_voters(path)
        except BallotError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Voters imported: {created} created, {updated} updated.")

    @app.cli.command("add-voter")
    @click.argument("name")
    @click.option("--code", default=None, help="Voter code; generated when omitted.")
    @click.option("--phone", default=None, help="Phone number for phone-based voting.")
    def add_voter_command(name, code, phone):
        try:
            voter = add_voter(name, code=code, phone=phone)
        except BallotError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(voter.ref)

    @app.cli.command("export-ballots")
    @click.argument("path", type=click.Path(dir_okay=False, writable=True))
    def export_ballots_command(path):
        count = export_ballots(path)
        click.echo(f"{count} ballots written to {path}.")

    @app.cli.command("results")
    def results_command():
        schema = get_schema()
        click.echo(render_results_csv(schema, tally_ballots(schema, list_ballots())), nl=False)
