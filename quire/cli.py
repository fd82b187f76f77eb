"""Command-line interface for Quire.

This module defines the CLI commands using Click framework.

Commands:
- new: Scaffold a new Quire site.
- post: Create a new draft document from an archetype and open it.
- build: Build the site into the output directory.
- serve: Run a live-reload preview server.
- publish: Build for production and deploy.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import click
import questionary

from . import __version__
from .config import SiteConfig, load_config
from .errors import AlreadyExists, ConfigurationError, DeployFailure, RenderFailure

# Path to the files copied into a new site
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"

# Scaffold entries stored without their leading dot so they ship as package data
_DOTTED_NAMES = {"gitignore", "github"}


class _ClickHandler(logging.Handler):
    """Logging handler that writes records to stderr through click."""

    colors = {
        logging.DEBUG: "blue",
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "red",
    }

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            if record.levelno != logging.INFO:
                label = click.style(
                    f"{record.levelname.lower()}:", fg=self.colors.get(record.levelno), bold=True
                )
                message = f"{label} {message}"
            click.echo(message, err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("quire")
    for handler in list(logger.handlers):
        if isinstance(handler, _ClickHandler):
            logger.removeHandler(handler)
    logger.addHandler(_ClickHandler())
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group()
@click.version_option(version=__version__, prog_name="quire")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Quire static site generator."""
    _configure_logging(verbose)


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Quire site."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Quire site created at {target}")


@cli.command()
@click.argument("path", required=False)
@click.option("--edit/--no-edit", default=True, help="Open the new document in $EDITOR")
def post(path: str | None, edit: bool):
    """Create a new draft document at PATH (relative to the content directory)."""
    project_root = Path.cwd()
    config = _load_config_or_exit(project_root)
    from .archetype import ArchetypeProvider

    if path is None:
        path = _prompt_for_target(project_root / config.content_dir)

    provider = ArchetypeProvider(project_root, config)
    try:
        document = provider.create(path)
    except AlreadyExists as exc:
        raise click.ClickException(
            f"File already exists: {_relative(exc.path, project_root)}"
        ) from None
    except (ValueError, ConfigurationError) as exc:
        raise click.ClickException(str(exc)) from None

    click.echo(f"Created {_relative(document.path, project_root)}")
    if edit:
        click.edit(filename=str(document.path))


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (overrides quire.yaml output_dir)",
)
@click.option("--base-url", help="Base URL (overrides quire.yaml base_url)")
def build(drafts: bool, output: Path | None, base_url: str | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site
    from .selection import BuildMode

    try:
        result = build_site(
            project_root,
            BuildMode.from_flag(drafts),
            output_dir=output,
            base_url=base_url,
        )
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from None
    except RenderFailure as exc:
        _report_render_failure(exc, project_root)
        raise SystemExit(1) from None
    _report_build(result)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the preview server (overrides quire.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (defaults to port + 1)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Run a live-reload preview server."""
    project_root = Path.cwd()
    from .server import PreviewServer

    try:
        server = PreviewServer(project_root, http_port=port, ws_port=ws_port, include_drafts=drafts)
        server.start()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from None
    except RenderFailure as exc:
        _report_render_failure(exc, project_root)
        raise SystemExit(1) from None


@cli.command()
def publish():
    """Build the site for production and deploy it."""
    project_root = Path.cwd()
    from .publish import publish_site

    try:
        result = publish_site(project_root)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from None
    except RenderFailure as exc:
        _report_render_failure(exc, project_root)
        click.echo("Nothing was deployed.", err=True)
        raise SystemExit(1) from None
    except DeployFailure as exc:
        raise click.ClickException(f"Deploy failed: {exc}") from None
    _report_build(result.build)
    click.echo(f"Deployed to {result.deployer.description}")


def _load_config_or_exit(project_root: Path) -> SiteConfig:
    try:
        return load_config(project_root)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from None


def _report_build(result) -> None:
    if result.problems:
        click.echo(
            click.style(
                f"Skipped {len(result.problems)} malformed document(s)", fg="yellow"
            ),
            err=True,
        )
    click.echo(
        f"Built {len(result.entries)} documents ({result.mode.value}) into {result.output_dir}"
    )


def _report_render_failure(exc: RenderFailure, project_root: Path) -> None:
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    if exc.source_path is not None:
        click.echo(
            click.style(f"  File: {_relative(exc.source_path, project_root)}", fg="yellow"),
            err=True,
        )
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
    click.echo("Previous output left untouched.", err=True)


def _relative(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return path


def _prompt_for_target(content_dir: Path) -> str:
    """Ask for a section and a name, returning a content-relative path."""
    sections = _get_content_sections(content_dir)
    section = questionary.select(
        "Select section:",
        choices=sections,
        style=_questionary_style(),
    ).ask()
    if section is None:
        raise click.Abort()

    name = questionary.text(
        "Name (without .md extension):",
        validate=lambda x: len(x.strip()) > 0 or "Name cannot be empty",
        style=_questionary_style(),
    ).ask()
    if name is None:
        raise click.Abort()

    name = name.strip()
    return name if section == ". (root)" else f"{section}/{name}"


def _get_content_sections(content_dir: Path) -> list[str]:
    """List content sections, with posts first when it exists.

    Folders starting with _ or . are excluded.
    """
    sections = []
    if content_dir.is_dir():
        for path in content_dir.iterdir():
            if path.is_dir() and not path.name.startswith(("_", ".")):
                sections.append(path.name)
    sections.sort(key=lambda name: (name != "posts", name))
    if "posts" not in sections:
        sections.insert(0, "posts")
    sections.append(". (root)")
    return sections


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Quire site.

    Args:
        root: Root directory for the new site.
    """
    for src_path in sorted(_SCAFFOLD_DIR.rglob("*")):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_SCAFFOLD_DIR)
        parts = [f".{p}" if p in _DOTTED_NAMES else p for p in rel_path.parts]
        dest_path = root.joinpath(*parts)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
    (root / "static").mkdir(parents=True, exist_ok=True)
