"""Command-line entry point for drama-watch."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from .commands import check as check_cmd
from .commands import init_config as init_cmd
from .commands import schema as schema_cmd
from .commands import status as status_cmd
from .core.errors import ConfigurationError, LedgerWriteError
from .core.paths import default_config_path

# Setup logging early so submodules inherit sane defaults
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def _cli_path(path: str | None) -> str | None:
    """Paths typed on the command line are relative to the working directory."""
    return str(Path(path).expanduser().resolve()) if path else None


@click.group()
@click.option(
    "--config",
    default=None,
    help="Path to config file (defaults to data_dir/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """drama-watch - track new titles published by JSON APIs."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config or str(default_config_path())


@cli.command("check")
@click.option("--ledger", "ledger_path", help="Ledger file to use instead of the configured one")
@click.option("--dry-run", is_flag=True, help="Report new items without writing the ledger or notifying")
@click.option("--no-notify", is_flag=True, help="Skip Telegram notifications")
@click.pass_context
def check(ctx: click.Context, ledger_path: str | None, dry_run: bool, no_notify: bool) -> None:
    """Fetch all sources once and record newly seen items."""
    try:
        summary = check_cmd.run(
            ctx.obj["config_path"],
            ledger_path=_cli_path(ledger_path),
            dry_run=dry_run,
            notify=not no_notify,
        )
    except (ConfigurationError, LedgerWriteError) as exc:
        click.echo(f"❌ Check failed: {exc}", err=True)
        sys.exit(1)
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Check failed unexpectedly: {exc}", err=True)
        sys.exit(1)

    if summary.failed_sources:
        click.echo(f"⚠️  Sources without results: {', '.join(summary.failed_sources)}", err=True)

    if not summary.total_new:
        click.echo("✅ No new items found")
        return

    for source_name, titles in summary.new_items.items():
        click.echo(f"  {source_name}: {len(titles)} new")
    if dry_run:
        click.echo(f"📝 Dry run: {summary.total_new} new items (ledger not modified)")
    else:
        click.echo(f"✨ Recorded {summary.total_new} new items in {summary.ledger_path}")
    failed_chats = [chat for chat, ok in summary.notifications.items() if not ok]
    if failed_chats:
        click.echo(f"⚠️  Notification failed for chats: {', '.join(failed_chats)}", err=True)


@cli.command("status")
@click.option("--ledger", "ledger_path", help="Ledger file to inspect instead of the configured one")
@click.pass_context
def status(ctx: click.Context, ledger_path: str | None) -> None:
    """Show configuration and ledger status."""
    try:
        info = status_cmd.run(ctx.obj["config_path"], _cli_path(ledger_path))
        click.echo(f"📄 Config file: {info['config_path']}")

        if not info["valid"]:
            click.echo(f"❌ {info.get('error', 'Configuration is invalid')}")
            for problem in info.get("problems", []):
                click.echo(f"   - {problem}")
            sys.exit(1)

        click.echo("✅ Configuration is valid")
        click.echo(f"📡 Sources ({len(info['sources'])}): {', '.join(info['sources'])}")
        click.echo(f"🔔 Telegram chats: {info['telegram_chats']}")
        click.echo(f"⏱️  Request timeout: {info['timeout']}s")
        state = "exists" if info["ledger_exists"] else "not created yet"
        click.echo(f"🗒️  Ledger: {info['ledger_path']} ({state})")
        click.echo(f"📝 Known items: {info['known_items']}")
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Error checking status: {exc}", err=True)
        sys.exit(1)


@cli.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a starter configuration file."""
    try:
        path = init_cmd.run(ctx.obj["config_path"], force=force)
        click.echo(f"✅ Config written to {path}")
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Init failed: {exc}", err=True)
        sys.exit(1)


@cli.command("schema")
@click.option(
    "--output",
    default=schema_cmd.DEFAULT_SCHEMA_FILENAME,
    show_default=True,
    help="Where to write the JSON Schema",
)
def schema(output: str) -> None:
    """Write the configuration JSON Schema."""
    try:
        path = schema_cmd.run(output)
        click.echo(f"✅ JSON schema written to {path}")
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Schema generation failed: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - script entry
    cli()
