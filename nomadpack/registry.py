"""Registries and packs as stored in the local pack cache."""

from __future__ import annotations

import json
import logging
import os
import posixpath
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional
from urllib.parse import unquote, urlsplit

DEFAULT_REGISTRY_NAME = "default"
DEFAULT_REF = "latest"
DEV_REGISTRY_NAME = "<<local folder>>"
DEV_REF = "<<none>>"
DEFAULT_DIR_PERMS = 0o700

INVALID_PACK_VERSION = "Invalid pack definition"
METADATA_JSON = "metadata.json"
METADATA_HCL = "metadata.hcl"

_log = logging.getLogger(__name__)

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_PORT = re.compile(r":\d*")


def _path_join(*elements: str) -> str:
    """Join slash-separated path elements and clean the result."""
    parts = [element for element in elements if element]
    if not parts:
        return ""
    cleaned = posixpath.normpath("/".join(parts))
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _path_split(text: str) -> tuple:
    index = text.rfind("/")
    return text[: index + 1], text[index + 1:]


def _path_base(text: str) -> str:
    if not text:
        return "."
    stripped = text.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _user_cache_dir() -> str:
    if sys.platform == "win32":
        directory = os.environ.get("LocalAppData", "")
        if not directory:
            raise OSError("%LocalAppData% is not defined")
        return directory
    if sys.platform == "darwin":
        home = os.environ.get("HOME", "")
        if not home:
            raise OSError("$HOME is not defined")
        return home + "/Library/Caches"
    directory = os.environ.get("XDG_CACHE_HOME", "")
    if not directory:
        home = os.environ.get("HOME", "")
        if not home:
            raise OSError("neither $XDG_CACHE_HOME nor $HOME are defined")
        directory = home + "/.cache"
    return directory


def _user_home_dir() -> str:
    key = "USERPROFILE" if sys.platform == "win32" else "HOME"
    home = os.environ.get(key, "")
    if not home:
        raise OSError(f"${key} is not defined")
    return home


def default_cache_path() -> str:
    """Return the default location of the pack cache."""
    try:
        cache_dir = _user_cache_dir()
    except OSError:
        try:
            home = _user_home_dir()
        except OSError:
            home = "~"
        return _path_join(home, ".nomad/packs")
    return _path_join(cache_dir, "nomad/packs")


def append_ref(name: str, ref: str) -> str:
    """Format a pack name at a ref as "name@ref"."""
    if ref in ("", DEV_REF):
        return name
    return f"{name}@{ref}"


def ref_from_pack_name(name: str) -> str:
    """Return the ref part of a "name@ref" directory name, or "unknown"."""
    segments = name.split("@")
    if len(segments) == 2:
        return segments[1]
    return "unknown"


@dataclass
class CachedPack:
    """A pack found in the cache, together with its cached ref."""

    ref: str = ""
    name: str = ""
    description: str = ""
    version: str = ""
    path: str = ""
    pack: Any = None

    @property
    def is_valid(self) -> bool:
        """Whether the pack could be read from the cache."""
        return self.version != INVALID_PACK_VERSION


def invalid_pack_definition(pack_name: str, ref: str) -> CachedPack:
    """Return a placeholder for a pack that could not be loaded."""
    return CachedPack(
        ref=ref,
        name=pack_name,
        description="",
        version=INVALID_PACK_VERSION,
    )


@dataclass
class GetOpts:
    """Arguments for reading a registry or pack from the cache."""

    cache_path: str = ""
    registry_name: str = ""
    pack_name: str = ""
    ref: str = ""

    def registry_path(self) -> str:
        """Directory of the registry at the requested ref."""
        return _path_join(self.cache_path, self.registry_name, self.ref)

    def pack_path(self) -> str:
        """Path of the requested pack."""
        return _path_join(self.cache_path, self.registry_name, self.pack_dir())

    def pack_dir(self) -> str:
        """Directory name of the pack, including the ref when one is set."""
        if self.ref:
            return append_ref(self.pack_name, self.ref)
        return self.pack_name

    def is_latest(self) -> bool:
        """Whether the latest ref is requested."""
        return self.ref in ("", DEFAULT_REF)

    def is_target(self, entry_name: str) -> bool:
        """Whether a directory entry is a pack this operation targets."""
        if not self.pack_name and self.ref in entry_name:
            return True
        return entry_name == self.pack_dir()

    def _to_pack_dir(self, entry_name: str) -> str:
        return _path_join(self.registry_path(), entry_name)


def _default_loader(path: str) -> Any:
    return None


def _go_json_escape(text: str) -> str:
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


@dataclass
class Registry:
    """A registry held in the cache, with the packs loaded from it."""

    name: str = ""
    source: str = ""
    ref: str = ""
    local_ref: str = ""
    packs: List[CachedPack] = field(default_factory=list)
    loader: Optional[Callable[[str], Any]] = field(
        default=None, repr=False, compare=False
    )

    def load_packs(self, opts: GetOpts) -> None:
        """Read the targeted packs of the registry directory into packs.

        Packs without a metadata.hcl, or that fail to load, are added as
        invalid pack definitions. OSError is raised if the directory cannot
        be read; ValueError if its metadata.json is not valid.
        """
        registry_path = opts.registry_path()
        entries = sorted(os.listdir(registry_path))

        try:
            with open(os.path.join(registry_path, METADATA_JSON), encoding="utf-8") as handle:
                stored = type(self).from_json(handle.read())
        except FileNotFoundError:
            stored = None
        if stored is not None:
            self.local_ref = stored.local_ref
            self.source = stored.source
            self.ref = stored.ref

        loader = self.loader or _default_loader
        for entry in entries:
            if not opts.is_target(entry) or "@" not in entry:
                continue

            metadata_path = os.path.join(registry_path, entry, METADATA_HCL)
            try:
                os.stat(metadata_path)
            except FileNotFoundError:
                _log.error("no metadata.hcl found in pack %s", entry)
                self.packs.append(invalid_pack_definition(entry, opts.ref))
                continue
            except OSError as exc:
                _log.error("error checking metadata.hcl for pack %s: %s", entry, exc)
                continue

            pack_dir = opts._to_pack_dir(entry)
            ref = ref_from_pack_name(entry)
            try:
                loaded = loader(pack_dir)
            except Exception as exc:  # a broken pack must not stop the others
                _log.debug("failed to load pack %s: %s", entry, exc)
                self.packs.append(invalid_pack_definition(entry, ref))
                continue
            self.packs.append(
                CachedPack(
                    ref=ref,
                    name=entry.split("@", 1)[0],
                    path=pack_dir,
                    pack=loaded,
                )
            )

    def parse_pack_url(self, pack_url: str) -> bool:
        """Set source from a pack URL; return whether that succeeded."""
        if not pack_url:
            return False
        try:
            if (
                pack_url.startswith(":")
                or any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in pack_url)
                or _BAD_ESCAPE.search(pack_url)
            ):
                raise ValueError(pack_url)
            parts = urlsplit(pack_url)
            url_path = unquote(parts.path)
        except ValueError:
            self.source = f"invalid url ({pack_url})"
            return False

        host = parts.netloc.rpartition("@")[2]
        colon = host.rfind(":")
        if colon != -1 and _PORT.fullmatch(host[colon:]):
            host = host[:colon]
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]

        directory, _ = _path_split(url_path)
        directory, _ = _path_split(directory.rstrip("/") if directory.endswith("/") else directory)
        if directory.endswith(".git/"):
            directory = directory[: -len(".git/")]
        self.source = _path_join(host, directory)
        return True

    def to_json(self) -> str:
        """Serialise the registry metadata, leaving out empty fields."""
        data = {
            key: value
            for key, value in (
                ("name", self.name),
                ("source", self.source),
                ("ref", self.ref),
                ("local_ref", self.local_ref),
            )
            if value
        }
        return _go_json_escape(json.dumps(data, indent=2, ensure_ascii=False))

    @classmethod
    def from_json(cls, text: str) -> "Registry":
        """Read registry metadata; raises ValueError on malformed input."""
        data = json.loads(text)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("registry metadata must be a JSON object")
        values = {}
        for key in ("name", "source", "ref", "local_ref"):
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"registry metadata field {key!r} must be a string")
            values[key] = value
        return cls(**values)


@dataclass
class PackConfig:
    """The registry, name, ref and path that identify a pack to use."""

    registry: str = ""
    name: str = ""
    ref: str = ""
    path: str = ""
    source_path: str = ""

    def init(self) -> None:
        """Fill in defaults, treating an existing directory as a local pack."""
        if not self.registry:
            self.registry = DEFAULT_REGISTRY_NAME
        if not self.ref:
            self.ref = DEFAULT_REF

        pack_path = os.path.abspath(self.name)
        if os.path.exists(pack_path):
            self._init_from_directory(pack_path)
        else:
            self._init_from_args()

    def _init_from_directory(self, pack_path: str) -> None:
        self.source_path = self.name
        if sys.platform == "win32":
            self.path = pack_path.replace("\\", "/")
        else:
            self.path = pack_path
        self.name = _path_base(self.path)
        self.registry = DEV_REGISTRY_NAME
        self.ref = DEV_REF

    def _init_from_args(self) -> None:
        self.path = _path_join(default_cache_path(), self.registry, self.ref, self.name)
        if self.ref:
            self.path = append_ref(self.path, self.ref)