"""Site building functionality for Quire.

This module wires the pipeline together: load configuration, load the
content store, select documents for the build mode, and hand them to the
renderer. Rendering happens in a staging directory next to the output
directory; only a complete render replaces the previous output.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .config import SiteConfig, load_config
from .errors import ConfigurationError, MalformedDocument, RenderFailure
from .protocols import Renderer
from .selection import BuildMode, ListingEntry, select_documents
from .store import ContentStore
from .theme import Site, ThemeRenderer
from .utils import ensure_clean_dir, hidden_sibling, replace_dir

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        entries: Selected documents in listing order.
        problems: Documents skipped as malformed.
        output_dir: Directory where the site was built.
        config: Configuration used for the build.
        mode: Build mode.
        files: Files written, relative to output_dir.
    """

    entries: list[ListingEntry]
    problems: list[MalformedDocument]
    output_dir: Path
    config: SiteConfig
    mode: BuildMode
    files: list[Path] = field(default_factory=list)


def staging_dir_for(output_dir: Path) -> Path:
    """Return the staging directory used while building output_dir."""
    return hidden_sibling(output_dir, "staging")


def _check_output_dir(project_root: Path, target: Path) -> None:
    """Refuse output directories that would replace the project itself."""
    if not target.name or project_root.resolve().is_relative_to(target.resolve()):
        raise ConfigurationError(
            f"Output directory '{target}' would replace the project directory"
        )


def build_site(
    project_root: Path,
    mode: BuildMode = BuildMode.PRODUCTION,
    output_dir: Path | None = None,
    base_url: str | None = None,
    renderer: Renderer | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        mode: PRODUCTION excludes drafts and minifies; DRAFT_PREVIEW includes drafts.
        output_dir: Optional output directory instead of the configured one.
        base_url: Optional base URL instead of the configured one.
        renderer: Optional renderer; defaults to the Jinja2 theme renderer.

    Returns:
        BuildResult describing what was built.

    Raises:
        ConfigurationError: If quire.yaml is missing or invalid.
        RenderFailure: If rendering fails. The previous output is untouched.
    """
    config = load_config(project_root).with_overrides(base_url=base_url)
    target = output_dir or (project_root / config.output_dir)
    _check_output_dir(project_root, target)

    loaded = ContentStore(project_root / config.content_dir).load()
    entries = select_documents(loaded.documents, mode)
    logger.info(
        "Selected %d of %d documents (%s)",
        len(entries),
        len(loaded.documents),
        mode.value,
    )

    site = Site(
        config=config,
        entries=tuple(entries),
        mode=mode,
        project_root=project_root,
    )
    staging = staging_dir_for(target)
    ensure_clean_dir(staging)
    renderer = renderer or ThemeRenderer()
    try:
        written = renderer.render_site(site, staging)
    except RenderFailure:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    except Exception as exc:
        shutil.rmtree(staging, ignore_errors=True)
        raise RenderFailure(f"{type(exc).__name__}: {exc}", original_error=exc) from exc

    replace_dir(staging, target)
    files = sorted({path.relative_to(staging) for path in written})
    logger.debug("Built %d files into %s", len(files), target)
    return BuildResult(
        entries=entries,
        problems=loaded.problems,
        output_dir=target,
        config=config,
        mode=mode,
        files=files,
    )
