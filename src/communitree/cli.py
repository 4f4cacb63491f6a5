"""CommuniTree CLI."""

from __future__ import annotations

from pathlib import Path

import click

from communitree.config import Config
from communitree.engine import Engine
from communitree.exceptions import UnknownTrustActionError
from communitree.logs import configure_logging
from communitree.trust.ledger import TrustAction, should_warn, trust_level


def _get_engine(data_dir: str | None = None, backend: str | None = None) -> Engine:
    config = Config()
    if data_dir:
        config.data_dir = Path(data_dir)
    if backend:
        config.storage.backend = backend
    configure_logging(config.logging)
    return Engine(config)


@click.group()
@click.option("--data-dir", envvar="COMMUNITREE_DATA_DIR", default=None, help="Data directory")
@click.option("--backend", type=click.Choice(["sqlite", "memory"]), default=None,
              help="Storage backend")
@click.pass_context
def main(ctx: click.Context, data_dir: str | None, backend: str | None) -> None:
    """CommuniTree state engine — local profile storage and trust points."""
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["backend"] = backend


def _engine(ctx: click.Context) -> Engine:
    return _get_engine(ctx.obj.get("data_dir"), ctx.obj.get("backend"))


@main.command()
@click.option("--user-id", "-u", default=None,
              help="Sign in as this known user when no profile is persisted")
@click.pass_context
def init(ctx: click.Context, user_id: str | None) -> None:
    """Reconcile persisted data with fresh data and save the result."""
    engine = _engine(ctx)
    try:
        result = engine.initialize()
        state = result.state
        if state.user is None and user_id:
            state.user = next((u for u in state.available_users if u.id == user_id), None)
            if state.user is None:
                raise click.ClickException(f"Unknown user id: {user_id}")
        if state.user is not None:
            engine.persist(state)
        click.echo(f"Persisted data:    {'yes' if result.has_persisted_data else 'no'}")
        click.echo(f"Active user:       {state.user.id if state.user else '-'}")
        click.echo(f"NGOs:              {len(state.ngos)}")
        click.echo(f"Events:            {len(state.events)}")
        click.echo(f"Chat threads:      {len(state.chat_threads)}")
        click.echo(f"Repairs applied:   {len(result.repairs.applied)}")
        for issue in result.repairs.applied:
            click.echo(f"  - {issue.description}")
    finally:
        engine.close()


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show storage usage and the persisted profile."""
    engine = _engine(ctx)
    try:
        stats = engine.repository.storage_stats()
        click.echo("CommuniTree Storage Status")
        click.echo(f"  Keys:              {stats['keys']}")
        click.echo(f"  Bytes:             {stats['bytes']}")
        user = engine.repository.load_user()
        if user is None:
            click.echo("  Profile:           (none)")
            return
        history = engine.repository.load_trust_history(user.id)
        click.echo(f"  Profile:           {user.name} ({user.id})")
        click.echo(f"  Trust points:      {user.trust_points} [{trust_level(user.trust_points)}]")
        click.echo(f"  Trust history:     {len(history)} entries")
        if should_warn(user.trust_points, engine.config.trust):
            click.echo("  Warning:           trust points are low; RSVPs may be restricted")
    finally:
        engine.close()


@main.command()
@click.option("--repair", is_flag=True, help="Apply fixes and persist the repaired state")
@click.pass_context
def validate(ctx: click.Context, repair: bool) -> None:
    """Check persisted data against fresh reference data."""
    engine = _engine(ctx)
    try:
        user = engine.repository.load_user()
        if user is None:
            click.echo("No persisted profile.")
            return
        state = engine.reconciler.merge(engine.fresh_source(), user,
                                        engine.repository.load_last_track())
        report = engine.validate(state, repair=repair)
        if report.is_valid:
            click.echo("No consistency issues found.")
            return
        click.echo(f"{len(report.issues)} consistency issue(s):")
        for description in report.descriptions:
            click.echo(f"  - {description}")
        if repair:
            engine.persist(state)
            click.echo("Repaired state persisted.")
    finally:
        engine.close()


@main.command()
@click.argument("action", type=click.Choice([a.value for a in TrustAction], case_sensitive=False))
@click.option("--related-id", "-r", default=None, help="Related event/NGO id")
@click.pass_context
def trust(ctx: click.Context, action: str, related_id: str | None) -> None:
    """Apply a trust action to the persisted profile."""
    engine = _engine(ctx)
    try:
        result = engine.initialize()
        if result.state.user is None:
            raise click.ClickException("No persisted profile; run `communitree init -u <id>` first")
        try:
            award = engine.award(result.state, action, related_id)
        except UnknownTrustActionError as e:
            raise click.ClickException(str(e)) from e
        engine.persist(result.state)
        click.echo(f"{action.upper()}: {award.previous} -> {award.current} "
                   f"({award.delta:+d}) [{trust_level(award.current)}]")
    finally:
        engine.close()


@main.command(name="export")
@click.option("--output", "-o", default="", help="Write the backup to this file")
@click.pass_context
def export_cmd(ctx: click.Context, output: str) -> None:
    """Export all stored data as JSON."""
    engine = _engine(ctx)
    try:
        data = engine.repository.export_data()
        if output:
            Path(output).write_text(data, encoding="utf-8")
            click.echo(f"Exported to {output}")
        else:
            click.echo(data)
    finally:
        engine.close()


@main.command(name="import")
@click.argument("path", type=click.Path(exists=True))
@click.pass_context
def import_cmd(ctx: click.Context, path: str) -> None:
    """Import a JSON backup produced by `export`."""
    engine = _engine(ctx)
    try:
        ok = engine.repository.import_data(Path(path).read_text(encoding="utf-8"))
        if not ok:
            raise click.ClickException("Invalid backup file")
        click.echo("Import complete.")
    finally:
        engine.close()


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Remove every stored CommuniTree key."""
    if not yes:
        click.confirm("Delete all stored data?", abort=True)
    engine = _engine(ctx)
    try:
        removed = engine.reset()
        click.echo(f"Removed {removed} keys.")
    finally:
        engine.close()


if __name__ == "__main__":
    main()
