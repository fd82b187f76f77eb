"""Static asset pipeline for Quire.

Copies the theme's static files and then the project's static files into
the output directory, so a project file overrides a theme file of the same
name. Production builds minify JavaScript with rjsmin.

Key classes:
- AssetPipeline: Copies and optionally minifies static assets.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rjsmin import jsmin

from .utils import copy_tree

logger = logging.getLogger(__name__)


class AssetPipeline:
    """Copies static asset trees into the output directory.

    Attributes:
        sources: Directories copied in order; later ones win.
        output_dir: Directory receiving the assets.
        minify: Whether to minify JavaScript.
    """

    def __init__(self, sources: list[Path], output_dir: Path, minify: bool = False):
        self.sources = sources
        self.output_dir = output_dir
        self.minify = minify

    def run(self) -> list[Path]:
        """Copy every source tree and minify scripts when requested.

        Returns:
            Output paths written, deduplicated, in write order.
        """
        written: dict[Path, None] = {}
        for source in self.sources:
            for path in copy_tree(source, self.output_dir):
                written[path] = None
        if self.minify:
            for path in written:
                if path.suffix == ".js" and not path.name.endswith(".min.js"):
                    self._minify_js(path)
        logger.debug("Copied %d static files", len(written))
        return list(written)

    def _minify_js(self, path: Path) -> None:
        source = path.read_text(encoding="utf-8")
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(jsmin(source))
