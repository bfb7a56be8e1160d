"""
Maintenance commands, run with `flask --app movie_review <command>`.
"""
import json

import click
from flask import Flask
from sqlalchemy import inspect

from .extensions import db
from .services import aggregator, catalog


def register_commands(app: Flask):
    @app.cli.command("create-tables")
    def create_tables():
        """Create any missing database tables."""
        db.create_all()
        tables = inspect(db.engine).get_table_names()
        click.echo(f"Tables: {', '.join(sorted(tables))}")

    @app.cli.command("import-movies")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--enrich", is_flag=True, help="Look up missing posters on TMDB.")
    def import_movies(path, enrich):
        """Import catalog records from a JSON array file."""
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise click.ClickException("Expected a JSON array of movie records")

        created, skipped = catalog.import_many(records, enrich=enrich)
        click.echo(f"Imported {created} movie(s), skipped {skipped}.")

    @app.cli.command("catalog-summary")
    @click.option("--limit", default=5, show_default=True, help="How many recent movies to list.")
    def catalog_summary(limit):
        """Show the catalog size and the latest movies."""
        summary = catalog.summary(limit=limit)
        click.echo(f"Total movies in database: {summary['total']}")
        for m in summary["latest"]:
            click.echo(f"  - {m.title} ({m.year}) - {', '.join(m.genre or [])} - {float(m.average_rating or 0):.1f} ({m.total_reviews})")

    @app.cli.command("reconcile-ratings")
    def reconcile_ratings():
        """Recompute every movie's rating aggregate from its reviews."""
        repaired, failed = aggregator.reconcile()
        if repaired:
            click.echo(f"Repaired {len(repaired)} movie(s): {', '.join(str(i) for i in repaired)}")
        elif not failed:
            click.echo("All rating aggregates are consistent.")
        if failed:
            raise click.ClickException(f"Could not recompute {len(failed)} movie(s): {', '.join(str(i) for i in failed)}")
