"""
Constants
Centralised storage for source extensions, ignore lists and known source roots.
"""
SOURCE_EXTENSIONS = (
    ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs",
    ".py", ".java", ".kt", ".go", ".rb", ".php",
    ".vue", ".svelte",
)
MARKUP_EXTENSIONS = (".jsx", ".tsx", ".vue", ".svelte", ".html")

# Directories never walked or patched (dependencies, build output, VCS)
IGNORE_DIRS = {
    "node_modules", "dist", "build", ".git", "coverage", ".next", "out",
    "__pycache__", ".venv", "venv", ".tox", ".mypy_cache", ".pytest_cache",
    "site-packages", "target", ".cache",
}

# Path prefixes that mark a frame as application code
SOURCE_ROOTS = ("src/", "app/", "lib/", "pages/", "components/", "server/", "api/")

RELATED_FILE_MAX_LINES = 50
TARGET_WINDOW_RADIUS = 10
