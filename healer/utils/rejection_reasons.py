"""
Rejection Reasons
=================
Standardised constants for why a fix attempt did not result in a write.

Used by ApplyResult.reason so callers get clean, machine-readable outcomes.
"""

LOW_CONFIDENCE = "low confidence"
NO_MEANINGFUL_CHANGE = "no meaningful change"
VALIDATION_FAILED = "validation failed"
LOCATION_FAILED = "location failed"
SKIPPED_FILE = "skipped file"
FILE_NOT_FOUND = "file not found"
EMPTY_FIX = "empty fix"

