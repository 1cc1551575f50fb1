# SPDX-License-Identifier: MIT
"""Pre-publish hooks declared in package.json."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Mapping

from .models import PackageManager

logger = logging.getLogger(__name__)

PREPUBLISH_SCRIPT = "vscode:prepublish"
RELEASE_SCRIPT = "vscode:prepublish:release"
PRERELEASE_SCRIPT = "vscode:prepublish:prerelease"


class ScriptError(Exception):
    """Raised when a pre-publish script fails."""

    pass


def prepublish_scripts(manifest: Mapping[str, Any], pre_release: bool) -> list[str]:
    """Return the pre-publish scripts to run, in order."""
    scripts = manifest.get("scripts")
    if not isinstance(scripts, Mapping):
        return []

    selected = []
    if PREPUBLISH_SCRIPT in scripts:
        selected.append(PREPUBLISH_SCRIPT)
    if not pre_release and RELEASE_SCRIPT in scripts:
        selected.append(RELEASE_SCRIPT)
    if pre_release and PRERELEASE_SCRIPT in scripts:
        selected.append(PRERELEASE_SCRIPT)
    return selected


def run_script(cwd: Path, package_manager: PackageManager | str, script: str) -> bool:
    """Run ``<package manager> run <script>``, returning True on success."""
    manager = str(package_manager)
    executable = shutil.which(manager) or manager
    logger.debug("Running %s run %s in %s", manager, script, cwd)

    try:
        result = subprocess.run(
            [executable, "run", script],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.warning("Could not run %s with %s: %s", script, manager, e)
        return False

    if result.returncode != 0:
        logger.warning(
            "Script %s exited with code %d:\n%s",
            script,
            result.returncode,
            (result.stderr or result.stdout).strip(),
        )
        return False
    return True


def prepublish(
    cwd: str | Path,
    package_manager: PackageManager | str,
    manifest: Mapping[str, Any],
    pre_release: bool = False,
) -> list[str]:
    """Run the extension's pre-publish scripts.

    Runs ``vscode:prepublish``, then ``vscode:prepublish:release`` for
    releases or ``vscode:prepublish:prerelease`` for pre-releases, skipping
    any the manifest does not declare. Every selected script is run even if
    an earlier one fails.

    Args:
        cwd: Extension directory
        package_manager: Package manager used to run the scripts
        manifest: Extension manifest
        pre_release: Whether a pre-release is being packaged

    Returns:
        The scripts that were run

    Raises:
        ScriptError: If any script fails
    """
    scripts = prepublish_scripts(manifest, pre_release)
    results = [run_script(Path(cwd), package_manager, script) for script in scripts]
    if not all(results):
        raise ScriptError("failed to run one or more scripts")
    return scripts
