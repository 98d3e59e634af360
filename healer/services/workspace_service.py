"""
Workspace Service
=================
Creates and discards disposable working copies of a repository.

Philosophy:
    - Fixes are only ever written to a working copy, never to the source.
    - One fresh copy per event under WORKSPACE_ROOT/<repo-name>-XXXX/.
    - Local directories are copied; anything else is treated as a git URL.
"""
import os
import shutil
import logging
import subprocess
import tempfile
from typing import Optional

from healer.core.config import GITHUB_TOKEN, WORKSPACE_ROOT

logger = logging.getLogger(__name__)

# Not copied into local working copies
_COPY_IGNORE = shutil.ignore_patterns("node_modules", "__pycache__", ".venv", "venv")


def get_repo_name(repo_url: str) -> str:
    """Extract repository name from a URL or local path."""
    # Handle git@github.com:org/repo.git or https://github.com/org/repo
    name = repo_url.rstrip("/\\").replace(":", "/").split("/")[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return name or "repo"


def _auth_url(repo_url: str, github_token: Optional[str]) -> str:
    if github_token and "github.com" in repo_url and repo_url.startswith("https://"):
        return repo_url.replace("https://", f"https://x-access-token:{github_token}@", 1)
    return repo_url


def create_working_copy(
    source: str,
    root: str = WORKSPACE_ROOT,
    github_token: Optional[str] = GITHUB_TOKEN,
) -> str:
    """
    Create a fresh working copy of `source`.

    Parameters
    ----------
    source : str
        Local directory or git URL.
    root : str
        Parent directory for working copies.
    github_token : str or None
        Optional token for private GitHub repositories.

    Returns
    -------
    str
        Absolute path to the working copy.

    Raises
    ------
    RuntimeError
        If the copy or clone fails.
    """
    os.makedirs(root, exist_ok=True)
    dest_path = tempfile.mkdtemp(prefix=f"{get_repo_name(source)}-", dir=root)

    if os.path.isdir(source):
        logger.info("Copying %s into %s", source, dest_path)
        try:
            # mkdtemp already created the directory
            shutil.copytree(source, dest_path, ignore=_COPY_IGNORE, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            discard_working_copy(dest_path)
            logger.error("Failed to copy repository: %s", e)
            raise RuntimeError(f"Copy failed: {e}")
        return os.path.abspath(dest_path)

    logger.info("Cloning %s into %s", source, dest_path)
    try:
        subprocess.run(
            ["git", "clone", "--depth", "1", _auth_url(source, github_token), dest_path],
            check=True,
            capture_output=True,
            text=True,
        )
        logger.info("Successfully cloned repository to %s", dest_path)
    except (subprocess.CalledProcessError, OSError) as e:
        discard_working_copy(dest_path)
        stderr = getattr(e, "stderr", "") or str(e)
        logger.error("Failed to clone repository: %s", stderr)
        raise RuntimeError(f"Cloning failed: {stderr}")

    return os.path.abspath(dest_path)


def discard_working_copy(path: str) -> None:
    """Remove a working copy (no-op if it is already gone)."""
    if path and os.path.exists(path):
        logger.info("Discarding working copy %s", path)
        shutil.rmtree(path, ignore_errors=True)
