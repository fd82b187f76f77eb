"""Quire static site generator.

This package builds a personal blog from Markdown documents with YAML
frontmatter, rendered through a Jinja2 theme into a self-contained static
directory that can be published to any static host.

The main entry point is the CLI module, which provides commands for
scaffolding a site, creating posts, building, previewing and publishing.

Pipeline stages:
- Content Store: discovers and parses documents (store, document).
- Selection: filters drafts and orders the listing (selection).
- Rendering: turns the selection into HTML through a theme (renderer, templates).
- Build/Publish: stages output, swaps it in and deploys it (build, publish).
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
