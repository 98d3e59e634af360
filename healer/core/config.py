"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    OPENAI_API_KEY       — API key for the chat-completion provider
    OPENAI_BASE_URL      — OpenAI-compatible base URL (default: https://api.openai.com/v1)
    OPENAI_MODEL         — Model name used for fix generation (default: gpt-4)
    LLM_TIMEOUT          — Seconds before a model call is abandoned (default: 60)
    CONTEXT_MAX_TOKENS   — Token budget for assembled model context (default: 4000)
    PIPELINE_MODE        — "standard" or "enhanced" (default: enhanced)
    FIX_HISTORY_MAX      — Max remembered fix patterns (default: 100)
    WORKSPACE_ROOT       — Parent directory for disposable working copies
    GITHUB_TOKEN         — Optional token for cloning private repositories
    LOG_LEVEL            — Root log level name (default: INFO)
    LOG_DIR              — Directory for daily log files (default: logs)
    LOG_TO_FILE          — "false" disables the file handler (default: true)

Pipeline Modes:
    The two historical pipeline generations disagreed on how confident a fix
    must be and how wide the replaced window is. Both are kept as modes:

        standard  — confidence >= 0.8, replace ±2 lines around the error
        enhanced  — confidence >= 0.6, replace ±5 lines around the error
"""
import os
import tempfile
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", 60))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", 2000))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", 0.1))

CONTEXT_MAX_TOKENS = int(os.getenv("CONTEXT_MAX_TOKENS", 4000))
FIX_HISTORY_MAX = int(os.getenv("FIX_HISTORY_MAX", 100))

WORKSPACE_ROOT = os.getenv(
    "WORKSPACE_ROOT", os.path.join(tempfile.gettempdir(), "healer-workspaces")
)
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").strip().lower() not in ("0", "false", "no")


@dataclass(frozen=True)
class PipelineMode:
    """Confidence threshold and replacement radius for one pipeline flavour."""
    name: str
    confidence_threshold: float
    window_radius: int


STANDARD_MODE = PipelineMode(name="standard", confidence_threshold=0.8, window_radius=2)
ENHANCED_MODE = PipelineMode(name="enhanced", confidence_threshold=0.6, window_radius=5)

PIPELINE_MODES: dict[str, PipelineMode] = {
    STANDARD_MODE.name: STANDARD_MODE,
    ENHANCED_MODE.name: ENHANCED_MODE,
}


def get_pipeline_mode(name: str | None = None) -> PipelineMode:
    """Resolve a mode by name, falling back to PIPELINE_MODE and then enhanced."""
    key = (name or os.getenv("PIPELINE_MODE", ENHANCED_MODE.name)).strip().lower()
    return PIPELINE_MODES.get(key, ENHANCED_MODE)
