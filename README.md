# nomadpack

Building blocks for tools that work with Nomad job packs: a typed
command-line flag system with grouped help, reading of pack registries
kept in a local cache directory, and HCL-style diagnostics for the
common pack parsing failures.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `nomadpack.flagset`: `FlagSets` and `FlagSet`. A `FlagSets` holds named
  groups of flags that are parsed together. Each `FlagSet` registers typed
  flags with `bool_var`, `int_var`, `uint_var`, `float_var`,
  `duration_var`, `enum_var`, `enum_single_var`, `string_map_var` and
  `string_slice_var`; each returns the value object, whose `get()` gives
  the current value. Flags can have a one-letter shorthand, aliases, a
  default taken from an environment variable, and a set hook.
  `FlagSets.parse` accepts POSIX style (`--name value`, `--name=value`,
  `-n value`, bundled shorthands, flags after positional arguments) and
  falls back to single-dash long flags (`-name value`) when any argument
  looks like one; in that style a known flag after a positional argument
  raises `FlagParseError`. `args()` returns the positional arguments,
  `set_flags()` the flags that were given, `help()` the help text grouped
  by set, and `hide_unused_flags` hides flags from that help.
- `nomadpack.flagbase`: the `FlagValue` base class and `BoolValue`, plus
  `parse_bool`, `parse_duration` (text such as `"1h30m"` or `"1.5s"` to
  seconds), `env_default`, `env_bool_default`, `env_duration_default` and
  `wrap_at_length_with_padding`.
- `nomadpack.flagnumbers`: `IntValue`, `UintValue`, `FloatValue`,
  `parse_int` and `parse_uint` (64-bit range, `0x`, `0o`, `0b` and leading
  `0` octal accepted) and `format_float`.
- `nomadpack.flagtime`: `DurationValue` (a bare number means seconds),
  `append_duration_suffix` and `format_duration` (`90.5` gives
  `"1m30.5s"`).
- `nomadpack.flagenums`: `EnumValue` (a comma-separated list of allowed
  values, appended on each use) and `EnumSingleValue` (one allowed value).
- `nomadpack.flagcollections`: `StringMapValue` (`key=value` pairs),
  `StringSliceValue` (comma-separated list; the first use replaces the
  default, later uses append) and `map_to_kv`.
- `nomadpack.registry`: `Registry`, `CachedPack`, `GetOpts` and
  `PackConfig`, with `append_ref` (`"name@ref"`), `ref_from_pack_name`,
  `default_cache_path` and `invalid_pack_definition`.
- `nomadpack.diagnostics`: `Diagnostic`, `Diagnostics`, `Severity`,
  `Range` and `Pos`, the `diag_*` constructors, and
  `safe_diagnostics_append` / `safe_diagnostics_extend`, which drop `None`
  entries.

## Example: flags

```python
from nomadpack.flagset import FlagSets

sets = FlagSets()
operation = sets.new_set("Operation Options")
names = operation.string_slice_var("name", usage="Names to act on.")
count = operation.int_var("count", shorthand="c", usage="How many.")

sets.parse(["--name", "a,b", "-c", "3", "extra"])
print(names.get(), count.get(), sets.args())   # ['a', 'b'] 3 ['extra']
print(sets.help())
```

## Example: reading a cached registry

A cache directory holds `<registry>/<ref>/<pack>@<ref>/` directories, with
an optional `metadata.json` in each `<registry>/<ref>/` directory.

```python
from nomadpack.registry import GetOpts, Registry, default_cache_path

opts = GetOpts(cache_path=default_cache_path(), registry_name="default", ref="latest")
registry = Registry(name=opts.registry_name, ref=opts.ref)
registry.load_packs(opts)
for pack in registry.packs:
    print(pack.name, pack.ref, "ok" if pack.is_valid else pack.version)
```

Pack directories without a `metadata.hcl`, or that the loader fails on,
are listed as invalid pack definitions. `Registry.to_json()` and
`Registry.from_json()` write and read the registry metadata, and
`parse_pack_url` derives a registry source from a pack URL:

```python
registry = Registry()
registry.parse_pack_url("https://example.com/team/registry/packs/hello")
print(registry.source)   # example.com/team/registry
```

## Example: diagnostics

```python
from nomadpack.diagnostics import Diagnostics, diag_file_not_found, safe_diagnostics_append

diags = safe_diagnostics_append(Diagnostics(), diag_file_not_found("metadata.hcl"))
print(diags.has_errors())   # True
```

## What this package does not do

- It has no command-line program of its own; the flag sets are for
  building one.
- It does not download registries, nor add, update or delete entries in
  the cache directory; `Registry.load_packs` only reads what is there.
- It does not parse pack contents. `Registry` takes an optional `loader`
  callable for that; without one, `CachedPack.pack` is `None`.
- It does not render or deploy pack templates.