"""PasPages CLI - Main Entry Point.

Commands:
    serve    - Run the application under uvicorn
    modules  - List discovered modules and their admission verdicts
    migrate  - Apply pending module schemas to the configured database
"""

import asyncio
import logging
import sys
from typing import Optional

import click

from . import CORE_VERSION, __version__
from .config import load_config
from .faults import Fault
from .loader import discover_modules
from .migrator import MigrationStatus
from .validator import ManifestValidator


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


@click.group()
@click.version_option(version=__version__, prog_name="paspages")
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=None,
              help='YAML config file (defaults to ./paspages.yaml when present)')
@click.option('--env-file', type=str, default='.env', help='Dotenv file to read')
@click.option('--log-level', type=str, default=None, help='Override the configured log level')
@click.pass_context
def cli(ctx, config_path: Optional[str], env_file: str, log_level: Optional[str]):
    """PasPages Core - modular content engine.

    \b
    Quick start:
      paspages modules
      paspages migrate
      paspages serve --port 8000
    """
    try:
        config = load_config(path=config_path, env_file=env_file)
    except Fault as e:
        click.echo(click.style(f"✗ {e.message}", fg="red"), err=True)
        sys.exit(1)

    _configure_logging(log_level or config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


# ============================================================================
# Commands
# ============================================================================

@cli.command('serve')
@click.option('--host', type=str, default='127.0.0.1', help='Server host')
@click.option('--port', type=int, default=8000, help='Server port')
@click.pass_context
def serve(ctx, host: str, port: int):
    """
    Start the server.

    Examples:
      paspages serve
      paspages serve --host 0.0.0.0 --port 3000
    """
    import uvicorn

    from .app import create_app

    config = ctx.obj['config']
    try:
        app = create_app(config)
    except Fault as e:
        click.echo(click.style(f"✗ {e.message}", fg="red"), err=True)
        sys.exit(1)

    click.echo(click.style(f"PasPages Core v{CORE_VERSION}", fg="cyan", bold=True))
    click.echo(f"  theme: {app.registry.active_theme}  plugins: {app.registry.plugin_count}")
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


@cli.command('modules')
def modules():
    """List discovered modules and whether they would be admitted."""
    try:
        found = discover_modules()
    except Fault as e:
        click.echo(click.style(f"✗ {e.message}", fg="red"), err=True)
        sys.exit(1)

    validator = ManifestValidator(CORE_VERSION)
    for module in found:
        manifest = module.manifest
        if manifest is None:
            click.echo(click.style(f"  ✗ {module.source}: manifest missing", fg="red"))
            continue
        result = validator.validate(module, module.kind)
        kind = str(getattr(manifest.kind, "value", manifest.kind))
        line = f"{manifest.slug:<20} {kind:<7} v{manifest.version:<8} {module.source}"
        if result:
            click.echo(click.style(f"  ✓ {line}", fg="green"))
        else:
            click.echo(click.style(f"  ✗ {line}  ({result.error})", fg="red"))
    click.echo(f"\n{len(found)} module(s) discovered")


@cli.command('migrate')
@click.pass_context
def migrate(ctx):
    """Apply every registered schema not yet recorded in the ledger."""
    from .app import create_app

    try:
        app = create_app(ctx.obj['config'])
    except Fault as e:
        click.echo(click.style(f"✗ {e.message}", fg="red"), err=True)
        sys.exit(1)

    async def _run():
        await app.startup()
        try:
            return await app.migrate()
        finally:
            await app.shutdown()

    try:
        outcomes = asyncio.run(_run())
    except Fault as e:
        click.echo(click.style(f"✗ {e.message}", fg="red"), err=True)
        sys.exit(1)

    colors = {
        MigrationStatus.SUCCESS: "green",
        MigrationStatus.SKIP: "yellow",
        MigrationStatus.ERROR: "red",
    }
    for outcome in outcomes:
        click.echo(click.style(str(outcome), fg=colors[outcome.status]))

    if any(o.status is MigrationStatus.ERROR for o in outcomes):
        sys.exit(1)


def main():
    """Entry point for `paspages` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
