"""
Filename and SKU utilities.

Pure functions: validation of uploaded filenames and of the SKUs derived
from them, plus the sanitizing helpers used before any catalog lookup.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

MAX_FILENAME_LENGTH = 255
MAX_SKU_LENGTH = 100

FILENAME_FORBIDDEN_CHARS = set('<>:"/\\|?*')
SKU_FORBIDDEN_CHARS = set("<>\"'`")

# Characters dropped when making a filename filesystem-safe
_SANITIZE_CHARS = set('?[]/\\=<>:;,\'"&$#*()|~`!{}%+')
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_DASH_RUN_RE = re.compile(r"-{2,}")
_EXTENSION_RE = re.compile(r"\.[^.]+$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a filename or SKU check."""
    valid: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def fail(cls, reason: str) -> "ValidationResult":
        return cls(False, reason)


def _has_control_chars(value: str) -> bool:
    return any(ord(c) < 0x20 for c in value)


def validate_filename(name: Optional[str]) -> ValidationResult:
    """
    Check that an uploaded filename is structurally usable.

    Rejects:
    - empty names
    - any of < > : " / \\ | ? * or control characters (0x00-0x1F)
    - names longer than 255 characters
    - names without an extension ("photo", "photo.")

    Args:
        name: Filename as supplied by the client

    Returns:
        ValidationResult with the reason on failure
    """
    if not name:
        return ValidationResult.fail("Filename is empty")

    if any(c in FILENAME_FORBIDDEN_CHARS for c in name) or _has_control_chars(name):
        return ValidationResult.fail("Filename contains invalid characters")

    if len(name) > MAX_FILENAME_LENGTH:
        return ValidationResult.fail(
            f"Filename is too long (max {MAX_FILENAME_LENGTH} characters)"
        )

    if not _EXTENSION_RE.search(name):
        return ValidationResult.fail("Filename has no extension")

    return ValidationResult.ok()


def validate_sku(candidate: Optional[str]) -> ValidationResult:
    """
    Check a SKU derived from a filename.

    Whitespace is trimmed first. Rejects empty values, values longer than
    100 characters, and any of < > " ' ` or control characters.
    """
    sku = (candidate or "").strip()

    if not sku:
        return ValidationResult.fail("SKU is empty")

    if len(sku) > MAX_SKU_LENGTH:
        return ValidationResult.fail(f"SKU is too long (max {MAX_SKU_LENGTH} characters)")

    if any(c in SKU_FORBIDDEN_CHARS for c in sku) or _has_control_chars(sku):
        return ValidationResult.fail("SKU contains invalid characters")

    return ValidationResult.ok()


def sanitize_filename(name: Optional[str]) -> str:
    """
    Make a filename filesystem-safe.

    - "ABC 123.jpg" → "ABC-123.jpg"
    - "my<file>.png" → "myfile.png"
    - " -draft-.jpg " → "draft-.jpg"

    Args:
        name: Raw filename

    Returns:
        Sanitized filename ("" if nothing usable remains)
    """
    if not name:
        return ""

    name = unicodedata.normalize("NFC", name)
    name = _CONTROL_RE.sub("", name)
    name = "".join(c for c in name if c not in _SANITIZE_CHARS)
    name = _WHITESPACE_RE.sub("-", name.strip())
    name = _DASH_RUN_RE.sub("-", name)

    return name.strip(".-_")


def sanitize_sku_text(value: Optional[str]) -> str:
    """Strip control characters and collapse whitespace."""
    if not value:
        return ""
    value = _CONTROL_RE.sub("", value)
    return _WHITESPACE_RE.sub(" ", value).strip()


def strip_extension(name: str) -> str:
    """'ABC123.jpg' → 'ABC123'. Names without extension are returned as is."""
    return _EXTENSION_RE.sub("", name or "")


def get_extension(name: str) -> str:
    """Lowercase extension without the dot ('' if none)."""
    match = _EXTENSION_RE.search(name or "")
    if not match:
        return ""
    return match.group(0)[1:].lower()
