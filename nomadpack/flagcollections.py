"""Key/value map and comma-separated list flag values."""

from __future__ import annotations

import json
from typing import Dict, Iterable, List, Mapping, Optional

from nomadpack.flagbase import FlagValue


def map_to_kv(mapping: Optional[Mapping[str, str]]) -> str:
    """Render a mapping as "k=v" pairs sorted by key and joined by commas."""
    if not mapping:
        return ""
    return ",".join(f"{key}={mapping[key]}" for key in sorted(mapping))


class StringMapValue(FlagValue):
    """A flag collecting key=value pairs into a mapping."""

    type_name = "StringMap"
    example = "key=value"

    def __init__(
        self,
        default: Optional[Mapping[str, str]] = None,
        *,
        hidden: bool = False,
    ) -> None:
        super().__init__(dict(default) if default else {}, hidden=hidden)

    def _parse(self, text: str) -> Dict[str, str]:
        key, sep, value = text.partition("=")
        if not sep:
            raise ValueError(
                f"missing = in KV pair: {json.dumps(text, ensure_ascii=False)}"
            )
        return {key: value}

    def set(self, text: str) -> None:
        """Add one key=value pair; raises ValueError when "=" is missing."""
        self.value.update(self._parse(text))

    def __str__(self) -> str:
        return map_to_kv(self.value)


class StringSliceValue(FlagValue):
    """A comma-separated list flag.

    The first use replaces the default; later uses append to it.
    """

    type_name = "StringSlice"
    example = "string"

    def __init__(
        self,
        default: Optional[Iterable[str]] = None,
        *,
        hidden: bool = False,
    ) -> None:
        super().__init__(list(default) if default is not None else [], hidden=hidden)
        self._was_set = False

    def _parse(self, text: str) -> List[str]:
        return text.strip().split(",")

    def set(self, text: str) -> None:
        """Append the comma-separated entries of text."""
        if not self._was_set:
            self._was_set = True
            self.value = []
        self.value.extend(self._parse(text))

    def __str__(self) -> str:
        return ",".join(self.value)