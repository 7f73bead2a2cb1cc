"""CLI tools for seeding and maintaining forms."""

import json
from importlib import resources

import click

from stepforms.core.errors import StepformsError
from stepforms.core.structured_logging import configure_logging
from stepforms.db.session import SessionLocal
from stepforms.services import form_service, storage_service


FEEDBACK_SEEDS = ("report_problem.json", "feedback.json")


def _load_seed(filename: str) -> dict:
    seed = resources.files("stepforms.seeds").joinpath(filename)
    return json.loads(seed.read_text(encoding="utf-8"))


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level: str | None):
    """Stepforms CLI tools."""
    configure_logging(log_level)


def _seed(name: str, slug: str, schema: dict, description: str | None) -> None:
    db = SessionLocal()
    try:
        version, published = form_service.ensure_published_form(
            db, name=name, slug=slug, schema=schema, description=description
        )
        if published:
            click.echo(f"✓ Published '{slug}' as version {version.version}")
        else:
            click.echo(f"✓ Form '{slug}' already exists and is published")
        click.echo(f"  Form ID: {version.form_id}")
        click.echo(f"  Version: {version.version}")
    except StepformsError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise click.exceptions.Exit(1)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Form name")
@click.option("--slug", required=True, help="URL slug")
@click.option(
    "--schema-file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file containing the form schema (steps + settings)",
)
@click.option("--description", default=None, help="Optional description")
def seed_form(name: str, slug: str, schema_file: str, description: str | None):
    """
    Ensure a form exists with the given schema and is published.

    Safe to re-run: an already published form is left untouched.

    Example:
        stepforms seed-form --name "Volunteer Signup" --slug volunteer --schema-file volunteer.json
    """
    with open(schema_file, encoding="utf-8") as f:
        try:
            schema = json.load(f)
        except json.JSONDecodeError as e:
            click.echo(f"❌ Schema file is not valid JSON: {e}")
            raise click.exceptions.Exit(1)
    _seed(name, slug, schema, description)


@cli.command()
def seed_floor_lead():
    """Ensure the Floor Lead Application form (5 steps, 19 fields) is published."""
    seed = _load_seed("floor_lead.json")
    _seed(seed["name"], seed["slug"], seed["schema"], seed.get("description"))


@cli.command()
def seed_feedback_forms():
    """Ensure the Report a Problem and Feedback & Suggestions forms are published."""
    for filename in FEEDBACK_SEEDS:
        seed = _load_seed(filename)
        click.echo(f"{seed['name']}:")
        _seed(seed["name"], seed["slug"], seed["schema"], seed.get("description"))


@cli.command()
@click.option("--slug", required=True, help="Slug of the form to publish")
def publish(slug: str):
    """Publish the current draft of a form as a new version."""
    db = SessionLocal()
    try:
        form = form_service.get_form_by_slug(db, slug)
        if not form:
            click.echo(f"❌ Form not found: {slug}")
            raise click.exceptions.Exit(1)
        version = form_service.publish_form(db, form.id)
        click.echo(f"✓ Published '{form.slug}' as version {version.version}")
    except StepformsError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise click.exceptions.Exit(1)
    finally:
        db.close()


@cli.command()
def list_forms():
    """List forms with status and current version."""
    db = SessionLocal()
    try:
        forms = form_service.list_forms(db)
        if not forms:
            click.echo("No forms found")
            return
        for form in forms:
            versions = form_service.list_versions(db, form.id)
            latest = versions[0].version if versions else "-"
            click.echo(f"{form.slug:<30} {form.status:<10} v{latest}  {form.name}")
    finally:
        db.close()


@cli.command()
def sweep_files():
    """Delete uploaded files no submission references (older than the cutoff)."""
    db = SessionLocal()
    try:
        deleted = storage_service.sweep_orphaned_files(db)
        click.echo(f"✓ Cleaned up {deleted} orphaned files")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
