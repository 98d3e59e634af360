"""
Path Utils
==========
Path normalisation, skip rules and target-file resolution.

Responsibilities:
    - Convert frame / URL-style paths to clean repo-relative paths
    - Refuse to patch dependency, build, generated, config and test files
    - Find the real file when a reported path does not exist in the repo
"""
import fnmatch
import glob
import os
import re
import logging
from typing import Optional

from healer.core.constants import IGNORE_DIRS, SOURCE_EXTENSIONS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Path Normalisation
# ---------------------------------------------------------------------------
_URL_ORIGIN_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://[^/]*", re.IGNORECASE)


def normalize_path(raw_path: str, repo_path: str = "") -> str:
    """
    Convert a frame path to a clean repo-relative path with forward slashes.

    Strips bundler prefixes (webpack://, app:///, ~/), URL origins, query
    strings, the repo prefix when absolute, and leading ./ or /.
    """
    path = raw_path.strip().strip("'\"")
    path = path.replace("\\", "/")
    path = path.split("?", 1)[0].split("#", 1)[0]

    for prefix in ("webpack-internal:///", "webpack:///", "webpack://", "app:///", "app://"):
        if path.startswith(prefix):
            path = path[len(prefix):]
            break
    path = _URL_ORIGIN_RE.sub("", path)

    if repo_path:
        root = repo_path.replace("\\", "/").rstrip("/")
        if path.startswith(root + "/"):
            path = path[len(root) + 1:]

    while path.startswith(("./", "~/")):
        path = path[2:]
    return path.lstrip("/")


def is_ignored_path(path: str) -> bool:
    """Return True if any segment of the path is a dependency/build/VCS directory."""
    segments = path.replace("\\", "/").split("/")
    return any(seg in IGNORE_DIRS for seg in segments[:-1])


def has_source_extension(path: str) -> bool:
    return path.lower().endswith(SOURCE_EXTENSIONS)


# ---------------------------------------------------------------------------
# Skip Rules
# ---------------------------------------------------------------------------
_SKIP_PATTERNS: list[re.Pattern] = [re.compile(p) for p in (
    # Dependencies and build output
    r"node_modules/", r"_next/", r"(^|/)dist/", r"(^|/)build/", r"\.next/", r"(^|/)out/",
    # Generated bundles
    r"\.min\.(js|css)$", r"\.bundle\.(js|css)$", r"\.chunk\.(js|css)$",
    # Static assets and caches
    r"(^|/)static/", r"(^|/)assets/", r"(^|/)public/",
    r"\.cache/", r"\.tmp/", r"\.temp/",
    # Lock files and environment
    r"package-lock\.json$", r"yarn\.lock$", r"pnpm-lock\.yaml$", r"\.lock$",
    r"\.env$", r"\.env\.",
    # Tooling config
    r"\.gitignore$", r"\.eslintrc", r"\.prettierrc", r"tsconfig\.json$",
    r"webpack\.config\.", r"next\.config\.", r"vite\.config\.",
    # Docs and binaries
    r"README\.md$", r"CHANGELOG\.md$", r"LICENSE$",
    r"\.(png|jpg|jpeg|gif|svg|ico|woff|woff2|ttf|eot|mp4|mp3|pdf|zip|tar|gz)$",
    # IDE files
    r"\.vscode/", r"\.idea/", r"\.DS_Store$",
    # Tests
    r"\.test\.(js|ts|jsx|tsx)$", r"\.spec\.(js|ts|jsx|tsx)$",
    r"__tests__/", r"(^|/)tests?/",
    # Generated declarations, styles and data
    r"\.d\.ts$", r"\.(css|scss|sass|less)$", r"\.html$", r"\.json$", r"\.ya?ml$",
)]


def should_skip_file(file_path: str) -> bool:
    """Return True if the path must never be patched automatically."""
    normalized = file_path.replace("\\", "/")
    for pattern in _SKIP_PATTERNS:
        if pattern.search(normalized):
            logger.info("Skipping %s due to pattern %s", file_path, pattern.pattern)
            return True
    return False


# ---------------------------------------------------------------------------
# Repository Walk
# ---------------------------------------------------------------------------
def iter_repo_files(repo_path: str):
    """Yield file paths under repo_path, never descending into ignored directories."""
    for root, dirs, files in os.walk(repo_path):
        dirs[:] = sorted(d for d in dirs if d not in IGNORE_DIRS)
        for name in sorted(files):
            yield os.path.join(root, name)


# ---------------------------------------------------------------------------
# Target Resolution
# ---------------------------------------------------------------------------
_COMMON_DIRS = ("", "src", "src/components", "src/pages", "src/utils", "src/services", "app", "lib")
_ALT_EXTENSIONS = (".js", ".ts", ".tsx", ".jsx")


def _find_by_name(repo_path: str, pattern: str) -> list[str]:
    return [p for p in iter_repo_files(repo_path) if fnmatch.fnmatch(os.path.basename(p), pattern)]


def find_alternative_file(
    repo_path: str,
    reported_path: str,
    search_term: Optional[str] = None,
) -> Optional[str]:
    """
    Find the real file for a reported path that does not exist in the repo.

    Order:
        1. Same basename under common source directories (and sibling extensions)
        2. Recursive name match for <stem>*<ext>
        3. Source files whose content contains `search_term`

    Ties are broken by the shortest path. Returns an absolute path or None.
    """
    try:
        name = os.path.basename(normalize_path(reported_path))
        stem, ext = os.path.splitext(name)
        if name:
            names = [name] + [stem + alt for alt in _ALT_EXTENSIONS if alt != ext]
            candidates = [os.path.join(d, n) for n in names for d in _COMMON_DIRS]
            for rel in candidates:
                abs_path = os.path.join(repo_path, rel)
                if os.path.isfile(abs_path):
                    logger.info("Found alternative file: %s", abs_path)
                    return abs_path

            matches = _find_by_name(repo_path, f"{glob.escape(stem)}*{ext}") if stem else []
            if matches:
                best = min(matches, key=len)
                logger.info("Found similar file: %s", best)
                return best

        if search_term:
            matching: list[str] = []
            for candidate in iter_repo_files(repo_path):
                if not has_source_extension(candidate):
                    continue
                try:
                    with open(candidate, "r", encoding="utf-8") as f:
                        if search_term in f.read():
                            matching.append(candidate)
                except (OSError, UnicodeDecodeError):
                    continue
            if matching:
                best = min(matching, key=len)
                logger.info("Mapped %s to %s by content search", reported_path, best)
                return best
    except OSError as e:
        logger.warning("Error finding alternative file path for %s: %s", reported_path, e)

    return None
