"""Enumerated flag values: a list of choices or a single choice."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from nomadpack.flagbase import FlagValue


def _invalid(value: str, values: List[str]) -> ValueError:
    return ValueError(f"'{value}' not valid. Must be one of: {', '.join(values)}")


class EnumValue(FlagValue):
    """A comma-separated list flag whose entries must be allowed values.

    Each use appends to the current list.
    """

    type_name = "enum"
    example = "string"

    def __init__(
        self,
        values: Iterable[str],
        default: Optional[Iterable[str]] = None,
        *,
        hidden: bool = False,
    ) -> None:
        super().__init__(list(default) if default is not None else [], hidden=hidden)
        self.values = list(values)

    def _parse(self, text: str) -> List[str]:
        return [part.strip() for part in text.split(",")]

    def set(self, text: str) -> None:
        """Append each comma-separated entry; raises ValueError on the first invalid one."""
        for entry in self._parse(text):
            if entry not in self.values:
                raise _invalid(entry, self.values)
            self.value.append(entry)

    def __str__(self) -> str:
        return ",".join(self.value)


class EnumSingleValue(FlagValue):
    """A flag holding exactly one of the allowed values."""

    type_name = "EnumSingle"
    example = "string"

    def __init__(
        self,
        values: Iterable[str],
        default: str = "",
        *,
        hidden: bool = False,
        set_hook: Optional[Callable[[str], None]] = None,
    ) -> None:
        super().__init__(default, hidden=hidden, set_hook=set_hook)
        self.values = list(values)

    def _parse(self, text: str) -> str:
        if text not in self.values:
            raise _invalid(text, self.values)
        return text

    def __str__(self) -> str:
        return self.value or ""