"""Grouped command-line flag sets with posix and single-dash parsing."""

from __future__ import annotations

import json
import math
import os
import re
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Sequence

from nomadpack.flagbase import BoolValue, FlagValue, parse_bool, parse_duration, wrap_at_length_with_padding
from nomadpack.flagcollections import StringMapValue, StringSliceValue, map_to_kv
from nomadpack.flagenums import EnumSingleValue, EnumValue
from nomadpack.flagnumbers import FloatValue, IntValue, UintValue, format_float, parse_int, parse_uint
from nomadpack.flagtime import DurationValue, append_duration_suffix, format_duration

_WHITESPACE = re.compile(r"\s+")

_FLAG_AFTER_ARGS_MESSAGE = (
    "Flags must be specified before positional arguments when using Go standard\n"
    ' library style flags. For example, "nomad-pack plan -verbose example" instead\n'
    ' of "nomad-pack plan example -verbose".\n'
    "\n"
    " The CLI also accepts posix flags, which does allow flags after positional\n"
    ' arguments. For example, both "nomad-pack plan --verbose example" and\n'
    ' "nomad-pack plan example --verbose" are valid commands.'
)


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _format_float_e(value: float) -> str:
    """Format a float in shortest exponent form, such as "1.5e+00"."""
    if math.isnan(value) or math.isinf(value):
        return format_float(value)
    sign = "-" if math.copysign(1.0, value) < 0 else ""
    if value == 0:
        return sign + "0e+00"
    parts = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in parts.digits)
    exponent = len(digits) + parts.exponent - 1
    mantissa = digits[0]
    if len(digits) > 1:
        mantissa += "." + digits[1:]
    exp_sign = "-" if exponent < 0 else "+"
    return f"{sign}{mantissa}e{exp_sign}{abs(exponent):02d}"


def _env_lookup(env_var: str) -> Optional[str]:
    if not env_var:
        return None
    return os.environ.get(env_var)


def _split_env_list(text: str) -> List[str]:
    return [part.strip() for part in text.split(",")]


class FlagParseError(ValueError):
    """Command-line arguments could not be parsed."""

    def __init__(self, message: str, *, help_requested: bool = False) -> None:
        super().__init__(message)
        self.help_requested = help_requested


@dataclass(eq=False)
class Flag:
    """A registered flag: its name, value and help details."""

    name: str
    value: FlagValue
    usage: str = ""
    shorthand: str = ""
    default_text: str = ""
    no_opt_default: str = ""
    hidden: bool = False
    deprecated: str = ""
    changed: bool = False


@dataclass
class _Union:
    """Every flag of every set, as used for parsing."""

    flags: Dict[str, Flag] = field(default_factory=dict)
    shorthands: Dict[str, Flag] = field(default_factory=dict)
    go_flags: Dict[str, Flag] = field(default_factory=dict)
    completions: Dict[str, Any] = field(default_factory=dict)

    def add(self, flag: Flag, *, go_style: bool) -> None:
        if flag.name in self.flags:
            raise ValueError(f"{flag.name} flag redefined")
        if flag.shorthand:
            if len(flag.shorthand) > 1:
                raise ValueError(
                    f"{_quote(flag.shorthand)} shorthand is more than one ASCII character"
                )
            if flag.shorthand in self.shorthands:
                used = self.shorthands[flag.shorthand].name
                raise ValueError(
                    f"unable to redefine {_quote(flag.shorthand)} shorthand: "
                    f"it's already used for {used} flag"
                )
            self.shorthands[flag.shorthand] = flag
        self.flags[flag.name] = flag
        if go_style:
            self.go_flags[flag.name] = flag


class FlagSet:
    """A named group of flags, such as "Operation Options"."""

    def __init__(self, name: str, _union: Optional[_Union] = None) -> None:
        self.name = name
        self._union = _union if _union is not None else _Union()
        self._flags: Dict[str, Flag] = {}

    def var(self, value: FlagValue, name: str, shorthand: str = "", usage: str = "") -> Flag:
        """Register a value under a name without any usage decoration."""
        if name in self._flags:
            raise ValueError(f"{name} flag redefined")
        flag = Flag(
            name=name,
            value=value,
            usage=usage,
            shorthand=shorthand,
            default_text=str(value),
        )
        self._union.add(flag, go_style=True)
        self._flags[name] = flag
        return flag

    def var_flag(
        self,
        value: FlagValue,
        name: str,
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: str = "",
        env_var: str = "",
        completion: Any = None,
    ) -> FlagValue:
        """Register a value with aliases, default and environment notes in its usage."""
        if value.hidden:
            self.var(value, name, shorthand, "")
            return value

        full_usage = usage
        if aliases:
            quoted = [f'"-{alias}"' for alias in aliases]
            if len(quoted) == 1:
                sentence = quoted[0]
            elif len(quoted) == 2:
                sentence = f"{quoted[0]} and {quoted[1]}"
            else:
                sentence = ", ".join(quoted[:-1] + ["and " + quoted[-1]])
            full_usage += f" This is aliased as {sentence}."

        if default:
            if value.type_name == "string":
                full_usage += f" Defaults to {_quote(default)}."
            else:
                full_usage += f" Defaults to {default}."

        if env_var:
            full_usage += (
                f" This can also be specified via the {env_var} environment variable."
            )

        for alias in aliases:
            self._union.add(
                Flag(name=alias, value=value, default_text=str(value)), go_style=False
            )

        self.var(value, name, shorthand, full_usage)
        self._union.completions["--" + name] = completion
        return value

    def bool_var(
        self,
        name: str,
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: bool = False,
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
        set_hook: Optional[Callable[[bool], None]] = None,
    ) -> BoolValue:
        """Register a boolean flag that can be given without a value."""
        initial = default
        env = _env_lookup(env_var)
        if env is not None:
            try:
                initial = parse_bool(env)
            except ValueError:
                pass
        value = BoolValue(initial, hidden=hidden, set_hook=set_hook)
        self.var_flag(
            value,
            name,
            shorthand,
            aliases,
            usage,
            "true" if default else "false",
            env_var,
            completion,
        )
        # Aliases share the value, so they accept a bare flag as well.
        for flag in self._union.flags.values():
            if flag.value is value:
                flag.no_opt_default = "true"
        return value

    def int_var(
        self,
        name: str,
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: int = 0,
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
        set_hook: Optional[Callable[[int], None]] = None,
    ) -> IntValue:
        """Register a signed integer flag."""
        initial = default
        env = _env_lookup(env_var)
        if env is not None:
            try:
                initial = parse_int(env)
            except ValueError:
                pass
        value = IntValue(initial, hidden=hidden, set_hook=set_hook)
        default_text = str(default) if default != 0 else ""
        self.var_flag(value, name, shorthand, aliases, usage, default_text, env_var, completion)
        return value

    def uint_var(
        self,
        name: str,
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: int = 0,
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
        set_hook: Optional[Callable[[int], None]] = None,
    ) -> UintValue:
        """Register an unsigned integer flag."""
        initial = default
        env = _env_lookup(env_var)
        if env is not None:
            try:
                initial = parse_uint(env)
            except ValueError:
                pass
        value = UintValue(initial, hidden=hidden, set_hook=set_hook)
        default_text = str(default) if default != 0 else ""
        self.var_flag(value, name, shorthand, aliases, usage, default_text, env_var, completion)
        return value

    def float_var(
        self,
        name: str,
        aliases: Sequence[str] = (),
        usage: str = "",
        default: float = 0.0,
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
    ) -> FloatValue:
        """Register a floating point flag; it has no shorthand."""
        value = FloatValue(default, hidden=hidden)
        env = _env_lookup(env_var)
        if env is not None:
            try:
                value.set(env)
            except ValueError:
                pass
        default_text = _format_float_e(default) if default != 0 else ""
        self.var_flag(value, name, "", aliases, usage, default_text, env_var, completion)
        return value

    def duration_var(
        self,
        name: str,
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: float = 0.0,
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
    ) -> DurationValue:
        """Register a duration flag, held in seconds."""
        initial = default
        env = _env_lookup(env_var)
        if env is not None:
            try:
                initial = parse_duration(append_duration_suffix(env))
            except ValueError:
                pass
        value = DurationValue(initial, hidden=hidden)
        default_text = format_duration(default) if default != 0 else ""
        self.var_flag(value, name, shorthand, aliases, usage, default_text, env_var, completion)
        return value

    def enum_var(
        self,
        name: str,
        values: Sequence[str],
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: Optional[Sequence[str]] = None,
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
    ) -> EnumValue:
        """Register a flag collecting allowed values from comma-separated lists."""
        initial = list(default) if default is not None else []
        env = _env_lookup(env_var)
        if env is not None:
            initial = _split_env_list(env)
        default_text = ",".join(default) if default is not None else ""
        full_usage = (
            usage.rstrip(". \t") + ". One possible value from: " + ", ".join(values) + "."
        )
        value = EnumValue(values, initial, hidden=hidden)
        self.var_flag(value, name, shorthand, aliases, full_usage, default_text, env_var, completion)
        return value

    def enum_single_var(
        self,
        name: str,
        values: Sequence[str],
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: str = "",
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
        set_hook: Optional[Callable[[str], None]] = None,
    ) -> EnumSingleValue:
        """Register a flag holding exactly one allowed value."""
        initial = default
        env = _env_lookup(env_var)
        if env is not None:
            initial = env
        full_usage = (
            usage.rstrip(". \t") + ". One possible value from: " + ", ".join(values) + "."
        )
        value = EnumSingleValue(values, initial, hidden=hidden, set_hook=set_hook)
        self.var_flag(value, name, shorthand, aliases, full_usage, default, env_var, completion)
        return value

    def string_map_var(
        self,
        name: str,
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: Optional[Mapping[str, str]] = None,
        hidden: bool = False,
        completion: Any = None,
    ) -> StringMapValue:
        """Register a flag collecting key=value pairs."""
        default_text = map_to_kv(default) if default is not None else ""
        value = StringMapValue(default, hidden=hidden)
        self.var_flag(value, name, shorthand, aliases, usage, default_text, "", completion)
        return value

    def string_slice_var(
        self,
        name: str,
        shorthand: str = "",
        aliases: Sequence[str] = (),
        usage: str = "",
        default: Optional[Sequence[str]] = None,
        hidden: bool = False,
        env_var: str = "",
        completion: Any = None,
    ) -> StringSliceValue:
        """Register a comma-separated list flag."""
        initial = list(default) if default is not None else []
        env = _env_lookup(env_var)
        if env is not None:
            initial = _split_env_list(env)
        default_text = ",".join(default) if default is not None else ""
        value = StringSliceValue(initial, hidden=hidden)
        self.var_flag(value, name, shorthand, aliases, usage, default_text, env_var, completion)
        return value

    def flags(self) -> List[Flag]:
        """Return this set's flags in name order."""
        return [self._flags[key] for key in sorted(self._flags)]

    def set_flags(self) -> List[Flag]:
        """Return this set's flags that were given on the command line, in name order."""
        return [flag for flag in self.flags() if flag.changed]


def _default_is_zero_value(flag: Flag) -> bool:
    value = flag.value
    if value.is_bool_flag:
        return flag.default_text == "false"
    if isinstance(value, DurationValue):
        return flag.default_text in ("0", "0s")
    if isinstance(value, (IntValue, UintValue, FloatValue)):
        return flag.default_text == "0"
    if isinstance(value, StringSliceValue):
        return flag.default_text in ("[]", "")
    if isinstance(value, StringMapValue):
        return flag.default_text == ""
    return str(value) in ("false", "<nil>", "", "0")


def _flag_detail(flag: Flag) -> str:
    if flag.value.hidden:
        return ""
    if flag.shorthand:
        out = f"  -{flag.shorthand}, --{flag.name}"
    else:
        out = f"      --{flag.name}"
    if flag.value.example:
        out += f"=<{flag.value.example}>"
    if not _default_is_zero_value(flag):
        if flag.value.type_name == "string":
            out += f" (default {_quote(flag.default_text)})"
        else:
            out += f" (default {flag.default_text})"
    if flag.deprecated:
        out += f" (DEPRECATED: {flag.deprecated})"
    out += "\n"
    usage = _WHITESPACE.sub(" ", flag.usage)
    return out + wrap_at_length_with_padding(usage, 8) + "\n\n"


class FlagSets:
    """A group of flag sets parsed together and documented set by set."""

    def __init__(self) -> None:
        self._union = _Union()
        self._sets: List[FlagSet] = []
        self._posix_parsed = False
        self._posix_args: List[str] = []
        self._go_parsed = False
        self._go_args: List[str] = []

    def new_set(self, name: str) -> FlagSet:
        """Create a named set whose flags are parsed with all the others."""
        flag_set = FlagSet(name, self._union)
        self._sets.append(flag_set)
        return flag_set

    def parse(self, args: Sequence[str]) -> None:
        """Parse arguments, falling back to single-dash long flags when they appear."""
        args = list(args)
        if has_go_flags(args):
            self._parse_go(args)
            check_flags_after_args(self._go_args, self)
            return
        self._parse_posix(args)

    def args(self) -> List[str]:
        """Return the positional arguments left after parsing."""
        if self._go_parsed:
            return list(self._go_args)
        return list(self._posix_args)

    def parsed(self) -> bool:
        """Whether posix-style parsing has run."""
        return self._posix_parsed

    def uses_goflags(self) -> bool:
        """Whether parsing fell back to single-dash long flags."""
        return self._go_parsed

    def set_flags(self) -> List[Flag]:
        """Return every flag given on the command line, in name order."""
        return [
            self._union.flags[key]
            for key in sorted(self._union.flags)
            if self._union.flags[key].changed
        ]

    def completions(self) -> Dict[str, Any]:
        """Return the completion handlers keyed by "--name"."""
        return self._union.completions

    def help(self) -> str:
        """Build help text grouped by flag set."""
        out = []
        for flag_set in self._sets:
            out.append(f"{flag_set.name}:\n\n")
            out.extend(_flag_detail(flag) for flag in flag_set.flags() if not flag.hidden)
        return "".join(out).rstrip("\n")

    def sets(self) -> List[FlagSet]:
        """Return the flag sets in creation order."""
        return list(self._sets)

    def hide_unused_flags(self, set_name: str, flag_names: Iterable[str]) -> None:
        """Hide the named flags of the named set from help."""
        names = set(flag_names)
        for flag_set in self._sets:
            if flag_set.name != set_name:
                continue
            for flag in flag_set.flags():
                if flag.name in names:
                    flag.hidden = True

    def _set_posix(self, flag: Flag, text: str) -> None:
        try:
            flag.value.set(text)
        except ValueError as exc:
            label = f"-{flag.shorthand}, --{flag.name}" if flag.shorthand else f"--{flag.name}"
            raise FlagParseError(
                f"invalid argument {_quote(text)} for {_quote(label)} flag: {exc}"
            ) from exc
        flag.changed = True

    def _parse_posix(self, arguments: List[str]) -> None:
        self._posix_parsed = True
        self._posix_args = []
        rest: Deque[str] = deque(arguments)
        while rest:
            arg = rest.popleft()
            if len(arg) < 2 or arg[0] != "-":
                self._posix_args.append(arg)
                continue
            if arg[1] == "-":
                if len(arg) == 2:
                    self._posix_args.extend(rest)
                    return
                self._parse_long(arg, rest)
            else:
                self._parse_short(arg, rest)

    def _parse_long(self, arg: str, rest: Deque[str]) -> None:
        body = arg[2:]
        if not body or body[0] in "-=":
            raise FlagParseError(f"bad flag syntax: {arg}")
        name, sep, text = body.partition("=")
        flag = self._union.flags.get(name)
        if flag is None:
            if name == "help":
                raise FlagParseError("pflag: help requested", help_requested=True)
            raise FlagParseError(f"unknown flag: --{name}")
        if not sep:
            if flag.no_opt_default:
                text = flag.no_opt_default
            elif rest:
                text = rest.popleft()
            else:
                raise FlagParseError(f"flag needs an argument: {arg}")
        self._set_posix(flag, text)

    def _parse_short(self, arg: str, rest: Deque[str]) -> None:
        shorthands = arg[1:]
        while shorthands:
            char = shorthands[0]
            flag = self._union.shorthands.get(char)
            if flag is None:
                if char == "h":
                    raise FlagParseError("pflag: help requested", help_requested=True)
                raise FlagParseError(f"unknown shorthand flag: '{char}' in -{shorthands}")
            if len(shorthands) > 2 and shorthands[1] == "=":
                text, shorthands = shorthands[2:], ""
            elif flag.no_opt_default:
                text, shorthands = flag.no_opt_default, shorthands[1:]
            elif len(shorthands) > 1:
                text, shorthands = shorthands[1:], ""
            elif rest:
                text, shorthands = rest.popleft(), ""
            else:
                raise FlagParseError(f"flag needs an argument: '{char}' in -{shorthands}")
            self._set_posix(flag, text)

    def _parse_go(self, arguments: List[str]) -> None:
        self._go_parsed = True
        rest: Deque[str] = deque(arguments)
        self._go_args = []
        while rest:
            arg = rest[0]
            if len(arg) < 2 or arg[0] != "-":
                break
            minuses = 1
            if arg[1] == "-":
                minuses = 2
                if len(arg) == 2:
                    rest.popleft()
                    break
            body = arg[minuses:]
            if not body or body[0] in "-=":
                raise FlagParseError(f"bad flag syntax: {arg}")
            rest.popleft()
            name, sep, text = body.partition("=")
            flag = self._union.go_flags.get(name)
            if flag is None:
                if name in ("help", "h"):
                    raise FlagParseError("flag: help requested", help_requested=True)
                raise FlagParseError(f"flag provided but not defined: -{name}")
            if flag.value.is_bool_flag:
                text = text if sep else "true"
                try:
                    flag.value.set(text)
                except ValueError as exc:
                    raise FlagParseError(
                        f"invalid boolean value {_quote(text)} for -{name}: {exc}"
                    ) from exc
            else:
                if not sep and rest:
                    text = rest.popleft()
                    sep = "="
                if not sep:
                    raise FlagParseError(f"flag needs an argument: -{name}")
                try:
                    flag.value.set(text)
                except ValueError as exc:
                    raise FlagParseError(
                        f"invalid value {_quote(text)} for flag -{name}: {exc}"
                    ) from exc
            flag.changed = True
        self._go_args = list(rest)


def has_go_flags(args: Iterable[str]) -> bool:
    """Whether any argument is a single-dash flag longer than one letter."""
    return any(len(arg) > 2 and arg[0] == "-" and arg[1] != "-" for arg in args)


def check_flags_after_args(args: Sequence[str], sets: FlagSets) -> None:
    """Raise FlagParseError if a known flag follows positional arguments."""
    if not args:
        return
    seen = set()
    for arg in args:
        if arg == "--":
            break
        if len(arg) < 2 or arg[0] != "-":
            continue
        if arg[1] == "-":
            arg = arg[1:]
        if arg[1] == "-":
            continue
        arg = arg.partition("=")[0]
        seen.add(arg[1:])

    for flag_set in sets.sets():
        if any(flag.name in seen for flag in flag_set.flags()):
            raise FlagParseError(_FLAG_AFTER_ARGS_MESSAGE)