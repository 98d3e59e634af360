"""
Context Assembler
=================
Builds the bounded text context sent to the generative model.

Sections (in order):
    1. Error File        — ±10 lines around the error line, line-numbered
    2. Related Files     — files named by import/require literals, first 50 lines each
    3. Project Structure — directory tree without dependency/build/VCS directories

Budget Discipline:
    - 1 token ~= 4 characters
    - A section is added only if estimate + section <= budget
    - The first section that does not fit closes the bundle: it and every
      later section are skipped, never partially included

Degradation:
    - Unreadable target file   → "file not found" placeholder section
    - Unreadable related file  → skipped
    - Unreadable directory     → omitted from the tree
    Assembly itself never raises.
"""
import os
import posixpath
import re
import logging
from typing import Optional

from healer.core.constants import IGNORE_DIRS, RELATED_FILE_MAX_LINES, TARGET_WINDOW_RADIUS
from healer.models.context_bundle import ContextBundle
from healer.utils.path_utils import iter_repo_files

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Import Patterns (per file type)
# ---------------------------------------------------------------------------
_JS_IMPORT_RE = re.compile(
    r"""(?:import\s+(?:[\w*{}\s,]+\s+from\s+)?|require\s*\(\s*|import\s*\(\s*)['"]([^'"]+)['"]"""
)
_PY_IMPORT_RE = re.compile(r"^\s*(?:from\s+([\w.]+)\s+import|import\s+([\w.]+))", re.MULTILINE)
_JAVA_IMPORT_RE = re.compile(r"^\s*import\s+(?:static\s+)?([\w.]+(?:\.\*)?)\s*;", re.MULTILINE)

_JS_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".vue", ".svelte"}


def extract_imports(content: str, file_path: str) -> list[str]:
    """
    Extract import targets from source text, keyed on the file extension.

    Returns search stems relative to the repo: JS specifiers are stripped of
    leading ./ and ../ segments, dotted Python / Java names become paths.
    """
    ext = os.path.splitext(file_path)[1].lower()
    stems: list[str] = []

    if ext == ".py":
        for match in _PY_IMPORT_RE.finditer(content):
            name = (match.group(1) or match.group(2) or "").lstrip(".")
            if name:
                stems.append(name.replace(".", "/"))
    elif ext in (".java", ".kt"):
        for match in _JAVA_IMPORT_RE.finditer(content):
            stems.append(match.group(1).rstrip(".*").replace(".", "/"))
    else:
        for match in _JS_IMPORT_RE.finditer(content):
            specifier = match.group(1)
            # Relative specifiers: search by the remaining path
            while specifier.startswith(("./", "../")):
                specifier = specifier.split("/", 1)[1]
            if specifier.startswith("@/"):
                specifier = specifier[2:]
            if specifier:
                stems.append(specifier)

    seen: set[str] = set()
    return [s for s in stems if not (s in seen or seen.add(s))]


def _matches_import(rel_path: str, stem: str) -> bool:
    """True when rel_path ends in <stem>* at a directory boundary."""
    stem_dir, stem_name = posixpath.split(stem)
    rel_dir, rel_name = posixpath.split(rel_path.replace("\\", "/"))
    if not rel_name.startswith(stem_name):
        return False
    return not stem_dir or rel_dir == stem_dir or rel_dir.endswith("/" + stem_dir)


# ---------------------------------------------------------------------------
# Context Assembler
# ---------------------------------------------------------------------------
class ContextAssembler:
    """
    Token-bounded context builder.

    Parameters
    ----------
    max_tokens : int
        Token budget for the whole context (default: 4000).
    window_radius : int
        Lines shown above and below the error line (default: 10).
    related_max_lines : int
        Lines kept from the top of each related file (default: 50).
    """

    def __init__(
        self,
        max_tokens: int = 4000,
        window_radius: int = TARGET_WINDOW_RADIUS,
        related_max_lines: int = RELATED_FILE_MAX_LINES,
    ) -> None:
        self.max_tokens = max_tokens
        self.window_radius = window_radius
        self.related_max_lines = related_max_lines

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    def build(self, file_path: str, error_line: Optional[int], repo_path: str) -> ContextBundle:
        """
        Assemble the context bundle for one analysis call.

        Parameters
        ----------
        file_path : str
            Absolute path of the file containing the error.
        error_line : int or None
            1-based error line (None → window starts at line 1).
        repo_path : str
            Repository root used for related-file search and the tree.

        Returns
        -------
        ContextBundle
            Ordered sections within budget.
        """
        bundle = ContextBundle(budget=self.max_tokens)
        line = error_line or 1
        name = os.path.basename(file_path)

        target = self.get_file_window(file_path, max(1, line - self.window_radius), line + self.window_radius)
        if target is None:
            target = f"<file not found: {file_path}>"
        bundle.try_add(f"Error File ({name})", target)

        for related in self.find_related_files(file_path, repo_path):
            text = self.get_file_window(related, 1, self.related_max_lines)
            if not text:
                continue
            if not bundle.try_add(f"Related File ({os.path.basename(related)})", text):
                break

        bundle.try_add("Project Structure", self.get_project_structure(repo_path))

        logger.debug(
            "Context for %s: %d sections, ~%d tokens (budget %d)",
            name, len(bundle.sections), bundle.token_estimate, self.max_tokens,
        )
        return bundle

    def build_context(self, file_path: str, error_line: Optional[int], repo_path: str) -> str:
        """Rendered form of build()."""
        return self.build(file_path, error_line, repo_path).render()

    # -------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------
    @staticmethod
    def get_file_window(file_path: str, start_line: int, end_line: int) -> Optional[str]:
        """
        Return lines start_line..end_line (1-based, inclusive) prefixed with
        their line numbers, or None when the file cannot be read.
        """
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                lines = f.read().splitlines()
        except OSError as e:
            logger.warning("Error reading file %s: %s", file_path, e)
            return None
        start = max(1, start_line)
        selected = lines[start - 1:end_line]
        return "\n".join(f"{start + i}: {text}" for i, text in enumerate(selected))

    def find_related_files(self, file_path: str, repo_path: str) -> list[str]:
        """Resolve import literals to files in the repo with one pruned walk."""
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError:
            return []

        stems = extract_imports(content, file_path)
        if not stems:
            return []

        target = os.path.abspath(file_path)
        files = [os.path.abspath(p) for p in iter_repo_files(repo_path)]
        related: list[str] = []
        for stem in stems:
            for match in sorted(f for f in files if _matches_import(os.path.relpath(f, repo_path), stem)):
                if match != target and match not in related:
                    related.append(match)
        return related

    @staticmethod
    def get_project_structure(repo_path: str) -> str:
        """Indented directory tree, skipping dependency/build/VCS directories."""
        structure: list[str] = []

        def walk(directory: str, level: int) -> None:
            try:
                items = sorted(os.listdir(directory))
            except OSError as e:
                logger.debug("Skipping unreadable directory %s: %s", directory, e)
                return
            for item in items:
                if item in IGNORE_DIRS:
                    continue
                full_path = os.path.join(directory, item)
                if os.path.isdir(full_path) and not os.path.islink(full_path):
                    structure.append("  " * level + f"📁 {item}/")
                    walk(full_path, level + 1)
                else:
                    structure.append("  " * level + f"📄 {item}")

        walk(repo_path, 0)
        return "\n".join(structure)
