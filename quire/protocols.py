"""Protocol definitions for Quire.

The build pipeline talks to its two outside collaborators, the theme that
renders HTML and the host that receives it, only through these interfaces.
Tests substitute fakes for both.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .theme import Site


@runtime_checkable
class Renderer(Protocol):
    """Protocol for turning a selected site into static files."""

    @abstractmethod
    def render_site(self, site: Site, output_dir: Path) -> list[Path]:
        """Render every output file for a site.

        Args:
            site: Configuration plus the selected, ordered listing.
            output_dir: Empty directory to write into.

        Returns:
            Paths of the files written.

        Raises:
            RenderFailure: If the theme cannot produce the site.
        """
        ...


@runtime_checkable
class Deployer(Protocol):
    """Protocol for transferring a built site to its hosting target."""

    @abstractmethod
    def deploy(self, output_dir: Path) -> None:
        """Publish the contents of output_dir.

        Raises:
            DeployFailure: If the transfer fails. The host must be left
                serving the previous version.
        """
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Short human-readable description of the target."""
        ...
