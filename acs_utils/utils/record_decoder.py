"""
record_decoder.py - Declarative record layouts.

A layout is an ordered list of fields, each described either by a regular
expression or by a fixed character width. Both kinds compile to one regular
expression, so sequence file names and fixed-width geography records are
decoded by the same code path.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from acs_utils.config import NOT_APPLICABLE
from acs_utils.errors import FormatError


@dataclass(frozen=True)
class Field:
    """One field of a record: a regex pattern or a fixed width."""
    name: str
    width: Optional[int] = None
    pattern: Optional[str] = None

    def __post_init__(self):
        if (self.width is None) == (self.pattern is None):
            raise ValueError(f"Field {self.name!r} needs exactly one of width or pattern")

    def regex(self) -> str:
        if self.pattern is not None:
            return f"(?P<{self.name}>{self.pattern})"
        return f"(?P<{self.name}>.{{{self.width}}})"


class RecordLayout:
    """
    Ordered field layout compiled to a single anchored regular expression.

    Args:
        fields: Fields in record order
        suffix: Literal regex that must follow the last field (e.g. r"\\.txt")
        strip: Strip whitespace from decoded values and turn empty values into None
    """

    def __init__(self, fields: Sequence[Field], suffix: str = "", strip: bool = False):
        self.fields: Tuple[Field, ...] = tuple(fields)
        self.names: List[str] = [f.name for f in self.fields]
        self.strip = strip
        self._regex = re.compile("".join(f.regex() for f in self.fields) + suffix, re.DOTALL)

    @property
    def fixed_width(self) -> Optional[int]:
        """Total width when every field is fixed-width, otherwise None."""
        if any(f.width is None for f in self.fields):
            return None
        return sum(f.width for f in self.fields)

    @classmethod
    def from_widths(cls, widths: Iterable[Tuple[str, int]], strip: bool = True) -> "RecordLayout":
        return cls([Field(name, width=width) for name, width in widths], strip=strip)

    def decode(self, text: str) -> Dict[str, Optional[str]]:
        """
        Decode one record into a field-name -> value mapping.

        Fixed-width records shorter than the layout are padded with spaces,
        longer ones are truncated. Raises FormatError when the text does not
        match the layout.
        """
        width = self.fixed_width
        if width is not None:
            text = text.rstrip("\r\n").ljust(width)[:width]
        match = self._regex.fullmatch(text)
        if match is None:
            raise FormatError(f"Record does not match layout: {text!r}")
        values = match.groupdict()
        if self.strip:
            for name, value in values.items():
                value = value.strip()
                values[name] = value or None
        return values

    def decode_row(self, text: str) -> List[Optional[str]]:
        """Decode one record into a list of values in field order."""
        values = self.decode(text)
        return [values[name] for name in self.names]


def clean_value(value: Optional[str]) -> Union[str, int, None]:
    if value == '' or value is None:
        return None
    if value == '.':
        return NOT_APPLICABLE
    return value


def clean_row(row: Iterable[Optional[str]]) -> List[Union[str, int, None]]:
    """Map '' to None and the '.' placeholder to the not-applicable marker."""
    return [clean_value(v) for v in row]
