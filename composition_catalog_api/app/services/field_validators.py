"""
Validation rules for composition attributes.

``FIELD_RULES`` is a closed table from the public field name used by
patch requests (``title``, ``length``, ``diff`` ...) to a
``FieldRule``.  Each rule knows its database column, how to parse a
raw value (strings from query parameters or JSON numbers) and the
check the parsed value must pass.  Both ``PatchService`` and
``CompositionService.add_composition`` validate through this table.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

YOUTUBE_URL = re.compile(r"https://www\.youtube\.com/\S+")
INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")

MAX_TEXT_LENGTH = 50


class InvalidValue(Exception):
    """Raised by a parser when a raw value has the wrong shape."""


def is_blank(value: Optional[str]) -> bool:
    """True for ``None``, the empty string, or whitespace only."""
    return value is None or not value.strip()


def parse_int(raw: Any) -> int:
    # bool is an int subclass; True must not patch a page count.
    if isinstance(raw, bool):
        raise InvalidValue("boolean is not an integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        # int() would also take "2_0", " 20 " and non-ASCII digits.
        if not INTEGER_TEXT.fullmatch(raw):
            raise InvalidValue(f"{raw!r} is not an integer")
        return int(raw)
    raise InvalidValue(f"{type(raw).__name__} is not an integer")


def parse_str(raw: Any) -> str:
    if not isinstance(raw, str):
        raise InvalidValue(f"{type(raw).__name__} is not a string")
    return raw


def _short_text(value: str) -> bool:
    return not is_blank(value) and len(value) <= MAX_TEXT_LENGTH


@dataclass(frozen=True)
class FieldRule:
    """Parser and check for one editable composition attribute."""

    name: str
    column: str
    parse: Callable[[Any], Any]
    check: Callable[[Any], bool]
    description: str

    @property
    def status(self) -> str:
        """Legacy status string reported when this field changes, e.g. ``changedPages``."""
        return "changed" + self.name.capitalize()

    def validate(self, raw: Any) -> Any:
        """Return the parsed value, or raise ``InvalidValue``."""
        value = self.parse(raw)
        if not self.check(value):
            raise InvalidValue(f"{self.name} must be {self.description}")
        return value


FIELD_RULES: Dict[str, FieldRule] = {
    rule.name: rule
    for rule in (
        FieldRule("title", "title", parse_str, _short_text, "non-empty and at most 50 characters"),
        FieldRule("author", "author", parse_str, _short_text, "non-empty and at most 50 characters"),
        FieldRule("length", "length_seconds", parse_int, lambda v: 1 <= v <= 36000, "between 1 and 36000 seconds"),
        FieldRule("year", "year", parse_int, lambda v: 1 <= v <= 9999, "between 1 and 9999"),
        FieldRule("diff", "difficulty", parse_int, lambda v: v in (0, 1, 2), "0, 1 or 2"),
        FieldRule("pages", "page_count", parse_int, lambda v: 0 <= v <= 20, "between 0 and 20"),
        FieldRule(
            "video",
            "video_url",
            parse_str,
            lambda v: YOUTUBE_URL.fullmatch(v) is not None,
            "a https://www.youtube.com/ link",
        ),
        FieldRule("sheet", "sheet_url", parse_str, lambda v: not is_blank(v), "non-empty"),
    )
}

# Schema attribute name -> rule, used when validating a whole new composition.
COLUMN_RULES: Dict[str, FieldRule] = {rule.column: rule for rule in FIELD_RULES.values()}


def lookup_rule(field_name: str) -> Optional[FieldRule]:
    return FIELD_RULES.get(field_name)


def validate_comment_content(content: Any, max_length: int) -> str:
    """Return ``content`` if it is a non‑blank string of at most ``max_length`` characters.

    Raises ``InvalidValue`` otherwise.
    """
    if not isinstance(content, str) or is_blank(content):
        raise InvalidValue("Comment must not be empty")
    if len(content) > max_length:
        raise InvalidValue(f"Comment must be {max_length} characters or fewer")
    return content
