"""Publishing for Quire.

Publishing is a production build followed by a deploy. A failed build
stops the pipeline before anything is transferred, so the host keeps
serving the last good version.

Key classes:
- DirectoryDeployer: Swap the output into a local directory (a mounted
  host, a checked-out pages branch, ...).
- CommandDeployer: Run a shell command such as ``rsync`` or a CLI upload.

Key functions:
- create_deployer: Build a deployer from the site configuration.
- publish_site: Build in production mode and deploy.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .build import BuildResult, build_site
from .config import DeploySettings, load_config
from .errors import ConfigurationError, DeployFailure
from .protocols import Deployer
from .selection import BuildMode
from .utils import copy_tree, ensure_clean_dir, replace_dir

logger = logging.getLogger(__name__)


class DirectoryDeployer:
    """Copies the built site into a target directory.

    The copy is written to a staging sibling of the target and swapped in
    only once complete.
    """

    def __init__(self, target: Path):
        self.target = target

    @property
    def description(self) -> str:
        return f"directory {self.target}"

    def deploy(self, output_dir: Path) -> None:
        staging = self.target.with_name(f".{self.target.name}.deploying")
        try:
            ensure_clean_dir(staging)
            copy_tree(output_dir, staging)
            replace_dir(staging, self.target)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise DeployFailure(f"Could not deploy to {self.target}: {exc}") from exc


class CommandDeployer:
    """Runs a shell command to upload the built site.

    The output directory is passed in the ``QUIRE_OUTPUT_DIR`` environment
    variable.
    """

    def __init__(self, command: str, cwd: Path):
        self.command = command
        self.cwd = cwd

    @property
    def description(self) -> str:
        return f"command {self.command!r}"

    def deploy(self, output_dir: Path) -> None:
        env = {**os.environ, "QUIRE_OUTPUT_DIR": str(output_dir.resolve())}
        try:
            completed = subprocess.run(
                self.command,
                shell=True,
                cwd=self.cwd,
                env=env,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise DeployFailure(f"Could not run deploy command: {exc}") from exc
        if completed.stdout:
            logger.debug("%s", completed.stdout.rstrip())
        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout).strip()
            raise DeployFailure(
                f"Deploy command exited with status {completed.returncode}"
                + (f": {detail}" if detail else "")
            )


def create_deployer(settings: DeploySettings, project_root: Path) -> Deployer:
    """Create the deployer described by the ``deploy`` configuration.

    Raises:
        ConfigurationError: If no deploy target is configured.
    """
    if settings.target:
        target = Path(settings.target).expanduser()
        if not target.is_absolute():
            target = project_root / target
        return DirectoryDeployer(target)
    if settings.command:
        return CommandDeployer(settings.command, cwd=project_root)
    raise ConfigurationError("No 'deploy' section in quire.yaml")


@dataclass
class PublishResult:
    build: BuildResult
    deployer: Deployer


def publish_site(project_root: Path, deployer: Deployer | None = None) -> PublishResult:
    """Build the site for production and deploy it.

    Args:
        project_root: Root directory of the project.
        deployer: Optional deployer; defaults to the configured one.

    Returns:
        PublishResult with the build and the deployer used.

    Raises:
        ConfigurationError: If configuration or the deploy target is invalid.
        RenderFailure: If the build fails; nothing is deployed.
        DeployFailure: If the transfer fails.
    """
    if deployer is None:
        deployer = create_deployer(load_config(project_root).deploy, project_root)
    result = build_site(project_root, BuildMode.PRODUCTION)
    logger.info("Deploying %s to %s", result.output_dir, deployer.description)
    deployer.deploy(result.output_dir)
    return PublishResult(build=result, deployer=deployer)
