"""
Event Locator
=============
Converts an arbitrary error-report payload (Sentry-style event JSON) into a
structured ErrorLocation.

Pipeline:
    1. Gather stack frames from every known payload shape
    2. Seed error type / message / function from the exception
    3. Run the strategy chain until one resolves a source file
    4. Let the remaining strategies back-fill a missing line / column, but
       only when they point at the same file

Strategy chain (first file wins):
    app_frame       — frame under a known source root, preferring frames with source context
    any_frame       — any frame carrying both a filename and a line number
    event_fields    — culprit / transaction / request.url / metadata.filename
    tags            — tag keys matching endpoint|url|route|controller
    message_class   — <Name>Controller / Service / Repository named in the message
    payload_scan    — regex scan of the serialised payload for a source path

Contract:
    - TOTAL: never raises. Unparseable input yields an all-None location.
    - Each strategy is a pure function (payload, seed) -> ErrorLocation | None.
    - No LLM allowed in this layer.
"""
import json
import re
import logging
from typing import Any, Callable, Optional

from healer.core.constants import SOURCE_EXTENSIONS, SOURCE_ROOTS
from healer.models.error_location import ErrorLocation
from healer.utils.path_utils import normalize_path, is_ignored_path, has_source_extension

logger = logging.getLogger(__name__)

Strategy = Callable[[dict, ErrorLocation], Optional[ErrorLocation]]


# ---------------------------------------------------------------------------
# Payload Helpers
# ---------------------------------------------------------------------------
def _dig(data: Any, *keys: Any) -> Any:
    """Safe nested lookup over dicts and lists; returns None on any miss."""
    current = data
    for key in keys:
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int):
            current = current[key] if -len(current) <= key < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def _as_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _exception_values(payload: dict) -> list[dict]:
    values: list[dict] = []
    for container in (
        _dig(payload, "exception", "values"),
        *(_dig(entry, "data", "values") for entry in (payload.get("entries") or [])
          if isinstance(entry, dict) and entry.get("type") == "exception"),
    ):
        if isinstance(container, list):
            values.extend(v for v in container if isinstance(v, dict))
    return values


def collect_frames(payload: dict) -> list[dict]:
    """Gather stack frames, outermost first, from every supported shape."""
    frames: list[dict] = []
    stacks: list[Any] = [v.get("stacktrace") for v in _exception_values(payload)]
    stacks.append(payload.get("stacktrace"))
    threads = _dig(payload, "threads", "values")
    if isinstance(threads, list):
        stacks.extend(t.get("stacktrace") for t in threads if isinstance(t, dict))

    for stack in stacks:
        stack_frames = _dig(stack, "frames")
        if isinstance(stack_frames, list):
            frames.extend(f for f in stack_frames if isinstance(f, dict))
    return frames


def _frame_path(frame: dict) -> Optional[str]:
    raw = frame.get("filename") or frame.get("abs_path") or frame.get("module")
    if not raw or not isinstance(raw, str):
        return None
    return normalize_path(raw) or None


def _is_app_frame(frame: dict) -> bool:
    if frame.get("in_app") is False:
        return False
    path = _frame_path(frame)
    if not path or is_ignored_path(path):
        return False
    return path.startswith(SOURCE_ROOTS) or any(f"/{root}" in path for root in SOURCE_ROOTS)


def _has_source_context(frame: dict) -> bool:
    return bool(frame.get("context_line") or frame.get("pre_context") or frame.get("post_context"))


def _from_frame(seed: ErrorLocation, frame: dict, strategy: str) -> ErrorLocation:
    return seed.model_copy(update={
        "file": _frame_path(frame),
        "line": _as_int(frame.get("lineno")) or seed.line,
        "column": _as_int(frame.get("colno")) or seed.column,
        "function": frame.get("function") or seed.function,
        "pre_context": [str(s) for s in frame.get("pre_context") or []],
        "context_line": frame.get("context_line"),
        "post_context": [str(s) for s in frame.get("post_context") or []],
        "strategy": strategy,
    })


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------
def locate_from_app_frame(payload: dict, seed: ErrorLocation) -> Optional[ErrorLocation]:
    """Innermost application frame, frames with surrounding source preferred."""
    app_frames = [f for f in collect_frames(payload) if _is_app_frame(f)]
    if not app_frames:
        return None
    with_context = [f for f in app_frames if _has_source_context(f)]
    frame = (with_context or app_frames)[-1]
    return _from_frame(seed, frame, "app_frame")


def locate_from_any_frame(payload: dict, seed: ErrorLocation) -> Optional[ErrorLocation]:
    """Innermost frame with both a file and a line number."""
    for frame in reversed(collect_frames(payload)):
        if _frame_path(frame) and _as_int(frame.get("lineno")):
            return _from_frame(seed, frame, "any_frame")
    return None


_FILE_LINE_RE = re.compile(r"^(?P<path>[^\s:()]+?)(?::(?P<line>\d+))?(?::(?P<col>\d+))?$")


def _location_from_text(seed: ErrorLocation, text: str, strategy: str) -> Optional[ErrorLocation]:
    # Origins and bundler prefixes go first so "https://host/x.js:3" still splits
    match = _FILE_LINE_RE.match(normalize_path(text))
    if not match:
        return None
    path = match.group("path")
    return seed.model_copy(update={
        "file": path,
        "line": seed.line or _as_int(match.group("line")),
        "column": seed.column or _as_int(match.group("col")),
        "strategy": strategy,
    })


def locate_from_event_fields(payload: dict, seed: ErrorLocation) -> Optional[ErrorLocation]:
    """Culprit, transaction, request URL and metadata.filename."""
    metadata_file = _dig(payload, "metadata", "filename")
    if isinstance(metadata_file, str) and metadata_file.strip():
        found = _location_from_text(seed, metadata_file, "event_fields")
        if found:
            return found.model_copy(update={
                "line": found.line or _as_int(_dig(payload, "metadata", "line")),
            })

    for value in (payload.get("culprit"), payload.get("transaction"), _dig(payload, "request", "url")):
        if not isinstance(value, str) or not value.strip():
            continue
        # "GET /api/users" / "app/views.py in handler": keep the path-like token
        token = next((t for t in value.split() if "/" in t or "." in t), value.split()[0])
        found = _location_from_text(seed, token, "event_fields")
        if found:
            return found
    return None


_TAG_KEY_RE = re.compile(r"endpoint|url|route|controller", re.IGNORECASE)


def _iter_tags(tags: Any):
    if isinstance(tags, dict):
        yield from tags.items()
    elif isinstance(tags, list):
        for tag in tags:
            if isinstance(tag, (list, tuple)) and len(tag) == 2:
                yield tag[0], tag[1]
            elif isinstance(tag, dict) and "key" in tag:
                yield tag.get("key"), tag.get("value")


def locate_from_tags(payload: dict, seed: ErrorLocation) -> Optional[ErrorLocation]:
    """First tag whose key looks like an endpoint / url / route / controller."""
    for key, value in _iter_tags(payload.get("tags")):
        if isinstance(key, str) and _TAG_KEY_RE.search(key) and isinstance(value, str) and value.strip():
            found = _location_from_text(seed, value.split()[-1], "tags")
            if found:
                return found
    return None


_CLASS_NAME_RE = re.compile(r"\b(\w+?)(Controller|Service|Repository)\b")


def locate_from_message_class(payload: dict, seed: ErrorLocation) -> Optional[ErrorLocation]:
    """Class name such as UserController named in the error message."""
    for text in (seed.error_message, payload.get("message"), payload.get("title")):
        if not isinstance(text, str):
            continue
        match = _CLASS_NAME_RE.search(text)
        if match:
            return seed.model_copy(update={
                "file": match.group(1) + match.group(2),
                "strategy": "message_class",
            })
    return None


_EXT_ALTERNATION = "|".join(re.escape(ext.lstrip(".")) for ext in
                            sorted(SOURCE_EXTENSIONS, key=len, reverse=True))
_PAYLOAD_PATH_RE = re.compile(
    r"((?:[\w@.\-~]+/)*[\w@.\-]+\.(?:" + _EXT_ALTERNATION + r"))\b(?::(\d+))?(?::(\d+))?"
)


def locate_from_payload_scan(payload: dict, seed: ErrorLocation) -> Optional[ErrorLocation]:
    """Exhaustive scan of the serialised payload for a source-file path."""
    try:
        blob = json.dumps(payload, default=str).replace("\\\\", "/").replace("\\/", "/")
    except (TypeError, ValueError):
        return None
    for match in _PAYLOAD_PATH_RE.finditer(blob):
        path = normalize_path(match.group(1))
        if not path or is_ignored_path(path) or not has_source_extension(path):
            continue
        return seed.model_copy(update={
            "file": path,
            "line": seed.line or _as_int(match.group(2)),
            "column": seed.column or _as_int(match.group(3)),
            "strategy": "payload_scan",
        })
    return None


STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("app_frame", locate_from_app_frame),
    ("any_frame", locate_from_any_frame),
    ("event_fields", locate_from_event_fields),
    ("tags", locate_from_tags),
    ("message_class", locate_from_message_class),
    ("payload_scan", locate_from_payload_scan),
)


# ---------------------------------------------------------------------------
# Seed Extraction
# ---------------------------------------------------------------------------
def _seed_location(payload: dict) -> ErrorLocation:
    values = _exception_values(payload)
    exception = values[-1] if values else {}
    error = (
        exception.get("value")
        or payload.get("message")
        or payload.get("title")
        or payload.get("error")
    )
    if isinstance(error, dict):
        error = error.get("formatted") or error.get("message")
    return ErrorLocation(
        error_type=exception.get("type") or _dig(payload, "metadata", "type"),
        error_message=str(error) if error is not None else None,
        line=_as_int(_dig(payload, "metadata", "line")),
        frames=collect_frames(payload),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def locate_error(payload: Any, strategies: tuple[tuple[str, Strategy], ...] = STRATEGIES) -> ErrorLocation:
    """
    Normalise an error payload into an ErrorLocation.

    The first strategy that resolves a file wins; later strategies are still
    consulted to back-fill a missing line or column when they resolve the
    same file. A position reported for another file is never borrowed.

    Parameters
    ----------
    payload : Any
        Parsed event JSON (dict) or its JSON string form.
    strategies : tuple
        Ordered (name, function) pairs.

    Returns
    -------
    ErrorLocation
        Never raises. `file is None` means the location is unresolved.
    """
    try:
        if isinstance(payload, str):
            payload = json.loads(payload)
        if not isinstance(payload, dict):
            return ErrorLocation()

        location = _seed_location(payload)
        for name, strategy in strategies:
            if location.is_resolved and location.line and location.column:
                break
            try:
                found = strategy(payload, location)
            except Exception as e:
                logger.warning("Locator strategy %s failed: %s", name, e)
                continue
            if not found or not found.file:
                continue
            if not location.is_resolved:
                location = found
                logger.debug("Resolved %s via %s", found.file, name)
            elif found.file == location.file:
                location = location.model_copy(update={
                    "line": location.line or found.line,
                    "column": location.column or found.column,
                })

        if not location.is_resolved:
            logger.warning("Could not resolve a source location from event")
        return location
    except Exception as e:
        logger.error("Event location failed: %s", e, exc_info=True)
        return ErrorLocation()
