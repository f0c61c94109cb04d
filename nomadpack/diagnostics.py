"""Diagnostics reported while parsing packs and their variables."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

_WORD = re.compile(r"[^\W_]+(?:'[^\W_]+)*")


class Severity(enum.IntEnum):
    """How serious a diagnostic is."""

    INVALID = 0
    ERROR = 1
    WARNING = 2


@dataclass(frozen=True)
class Pos:
    """A position in a source file."""

    line: int = 0
    column: int = 0
    byte: int = 0


@dataclass(frozen=True)
class Range:
    """A span of a source file."""

    filename: str = ""
    start: Pos = field(default_factory=Pos)
    end: Pos = field(default_factory=Pos)

    def __str__(self) -> str:
        if self.start.line == self.end.line:
            return (
                f"{self.filename}:{self.start.line},{self.start.column}"
                f"-{self.end.column}"
            )
        return (
            f"{self.filename}:{self.start.line},{self.start.column}"
            f"-{self.end.line},{self.end.column}"
        )


@dataclass
class Diagnostic:
    """A single problem found in a pack, with an optional source range."""

    severity: Severity = Severity.INVALID
    summary: str = ""
    detail: str = ""
    subject: Optional[Range] = None


class Diagnostics(list):
    """A list of diagnostics.

    Entries must be Diagnostic instances; a None entry makes has_errors fail,
    which is what the safe_* helpers guard against.
    """

    def has_errors(self) -> bool:
        """Return True if any diagnostic has error severity."""
        return any(diag.severity == Severity.ERROR for diag in self)


def _title(text: str) -> str:
    return _WORD.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text)


def diag_file_not_found(filename: str) -> Diagnostic:
    """A required pack file could not be read."""
    return Diagnostic(
        severity=Severity.ERROR,
        summary="Failed to read file",
        detail=f'The file "{filename}" could not be read.',
    )


def diag_missing_root_var(name: str, subject: Optional[Range]) -> Diagnostic:
    """A value was given for a variable the pack does not declare."""
    return Diagnostic(
        severity=Severity.ERROR,
        summary="Missing base variable declaration to override",
        detail=(
            f'There is no variable named "{name}". An override file can only '
            "override a variable that was already declared in a primary "
            "configuration file."
        ),
        subject=subject,
    )


def diag_invalid_default_value(detail: str, subject: Optional[Range]) -> Diagnostic:
    """A variable default does not match the variable type."""
    return Diagnostic(
        severity=Severity.ERROR,
        summary="Invalid default value for variable",
        detail=detail,
        subject=subject,
    )


def diag_failed_to_convert_cty(err: BaseException, subject: Optional[Range]) -> Diagnostic:
    """A late conversion of a parsed value failed."""
    return Diagnostic(
        severity=Severity.ERROR,
        summary="Failed to convert Cty to interface",
        detail=_title(str(err)),
        subject=subject,
    )


def diag_invalid_value_for_type(err: BaseException, subject: Optional[Range]) -> Diagnostic:
    """A variable was set to a value incompatible with its type."""
    return Diagnostic(
        severity=Severity.ERROR,
        summary="Invalid value for variable",
        detail=(
            "This variable value is not compatible with the variable's type "
            f"constraint: {err}."
        ),
        subject=subject,
    )


def diag_invalid_variable_name(subject: Optional[Range]) -> Diagnostic:
    """A variable name in a varfile is not valid."""
    return Diagnostic(
        severity=Severity.ERROR,
        summary="Invalid variable name",
        detail=(
            "Name must start with a letter or underscore and may contain only "
            "letters, digits, underscores, and dashes."
        ),
        subject=subject,
    )


def safe_diagnostics_append(base: Iterable[Diagnostic], diag: Optional[Diagnostic]) -> Diagnostics:
    """Return base with diag added, skipping it when it is None."""
    result = Diagnostics(base)
    if diag is not None:
        result.append(diag)
    return result


def safe_diagnostics_extend(
    base: Iterable[Diagnostic], diags: Iterable[Optional[Diagnostic]]
) -> Diagnostics:
    """Return base extended with every non-None entry of diags."""
    result = Diagnostics(base)
    result.extend(diag for diag in diags if diag is not None)
    return result