"""Flag sets, cached pack registry reading and diagnostics for Nomad job packs."""

__version__ = "0.1.0"

__all__ = [
    "diagnostics",
    "flagbase",
    "flagcollections",
    "flagenums",
    "flagnumbers",
    "flagset",
    "flagtime",
    "registry",
]