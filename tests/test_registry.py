import json
import os
import sys

import pytest

from nomadpack.registry import (
    DEFAULT_REF,
    DEFAULT_REGISTRY_NAME,
    DEV_REF,
    DEV_REGISTRY_NAME,
    INVALID_PACK_VERSION,
    CachedPack,
    GetOpts,
    PackConfig,
    Registry,
    append_ref,
    default_cache_path,
    invalid_pack_definition,
    ref_from_pack_name,
)


def _make_pack(root, name, with_metadata=True):
    pack = root / name
    (pack / "templates").mkdir(parents=True)
    if with_metadata:
        (pack / "metadata.hcl").write_text('pack { name = "x" }\n')
    return pack


@pytest.mark.parametrize(
    "url, expected, ok",
    [
        ("", "", False),
        (
            "https://github.com/hashicorp/nomad-pack-community-registry/packs/simple_service",
            "github.com/hashicorp/nomad-pack-community-registry",
            True,
        ),
        (
            "/Users/voiselle/debugging/path-to-a-registry/packs/simple_service",
            "/Users/voiselle/debugging/path-to-a-registry",
            True,
        ),
        (
            "https://gitlab.com/a6281/nomad/my-pack-registry.git/packs/simple_service",
            "gitlab.com/a6281/nomad/my-pack-registry",
            True,
        ),
    ],
)
def test_parse_pack_url(url, expected, ok):
    reg = Registry()
    assert reg.parse_pack_url(url) is ok
    if ok:
        assert reg.source == expected
    else:
        assert "invalid url" in reg.source or reg.source == ""


def test_parse_pack_url_invalid_escape():
    reg = Registry()
    assert reg.parse_pack_url("https://example.com/%zz/packs/x") is False
    assert reg.source == "invalid url (https://example.com/%zz/packs/x)"


def test_parse_pack_url_strips_port():
    reg = Registry()
    assert reg.parse_pack_url("https://example.com:8080/team/reg/packs/p") is True
    assert reg.source == "example.com/team/reg"


def test_append_ref():
    assert append_ref("simple", "") == "simple"
    assert append_ref("simple", DEV_REF) == "simple"
    assert append_ref("simple", "latest") == "simple@latest"


@pytest.mark.parametrize(
    "name, ref",
    [("simple@latest", "latest"), ("simple", "unknown"), ("a@b@c", "unknown")],
)
def test_ref_from_pack_name(name, ref):
    assert ref_from_pack_name(name) == ref


def test_invalid_pack_definition():
    pack = invalid_pack_definition("broken@v1", "v1")
    assert pack == CachedPack(ref="v1", name="broken@v1", version=INVALID_PACK_VERSION)
    assert pack.is_valid is False


def test_get_opts_paths():
    opts = GetOpts(cache_path="/cache", registry_name="reg", pack_name="p", ref="v1")
    assert opts.registry_path() == "/cache/reg/v1"
    assert opts.pack_dir() == "p@v1"
    assert opts.pack_path() == "/cache/reg/p@v1"
    assert opts.is_latest() is False
    assert GetOpts(ref="latest").is_latest() is True
    assert GetOpts().is_latest() is True


def test_get_opts_is_target():
    all_packs = GetOpts(ref="latest")
    assert all_packs.is_target("simple@latest") is True
    assert all_packs.is_target("simple@v1") is False
    one_pack = GetOpts(pack_name="simple", ref="v1")
    assert one_pack.is_target("simple@v1") is True
    assert one_pack.is_target("other@v1") is False


def test_load_packs_valid_and_invalid(tmp_path):
    ref_dir = tmp_path / "reg" / "latest"
    ref_dir.mkdir(parents=True)
    _make_pack(ref_dir, "alpha@latest")
    _make_pack(ref_dir, "beta@latest", with_metadata=False)
    (ref_dir / "no_ref_dir").mkdir()

    opts = GetOpts(cache_path=str(tmp_path), registry_name="reg", ref="latest")
    registry = Registry(name="reg", ref="latest")
    registry.load_packs(opts)

    assert [p.name for p in registry.packs] == ["alpha", "beta@latest"]
    assert registry.packs[0].is_valid is True
    assert registry.packs[0].ref == "latest"
    assert registry.packs[0].path == f"{tmp_path}/reg/latest/alpha@latest"
    assert registry.packs[1].version == INVALID_PACK_VERSION


def test_load_packs_uses_loader_and_marks_failures(tmp_path):
    ref_dir = tmp_path / "reg" / "v1"
    ref_dir.mkdir(parents=True)
    _make_pack(ref_dir, "good@v1")
    _make_pack(ref_dir, "bad@v1")

    def loader(path):
        if path.endswith("bad@v1"):
            raise ValueError("cannot parse")
        return {"loaded": path}

    registry = Registry(loader=loader)
    registry.load_packs(GetOpts(cache_path=str(tmp_path), registry_name="reg", ref="v1"))

    by_name = {p.name: p for p in registry.packs}
    assert by_name["bad@v1"].version == INVALID_PACK_VERSION
    assert by_name["bad@v1"].ref == "v1"
    assert by_name["good"].pack == {"loaded": f"{tmp_path}/reg/v1/good@v1"}


def test_load_packs_single_target(tmp_path):
    ref_dir = tmp_path / "reg" / "latest"
    ref_dir.mkdir(parents=True)
    _make_pack(ref_dir, "alpha@latest")
    _make_pack(ref_dir, "beta@latest")
    registry = Registry()
    registry.load_packs(
        GetOpts(cache_path=str(tmp_path), registry_name="reg", pack_name="beta", ref="latest")
    )
    assert [p.name for p in registry.packs] == ["beta"]


def test_load_packs_reads_metadata_json(tmp_path):
    ref_dir = tmp_path / "reg" / "abc"
    ref_dir.mkdir(parents=True)
    stored = Registry(name="reg", source="/src/reg.git", ref="abc", local_ref="abc123")
    (ref_dir / "metadata.json").write_text(stored.to_json())

    registry = Registry(name="reg")
    registry.load_packs(GetOpts(cache_path=str(tmp_path), registry_name="reg", ref="abc"))
    assert registry.source == "/src/reg.git"
    assert registry.ref == "abc"
    assert registry.local_ref == "abc123"
    assert registry.packs == []


def test_load_packs_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        Registry().load_packs(GetOpts(cache_path=str(tmp_path), registry_name="nope", ref="x"))


def test_load_packs_bad_metadata_json(tmp_path):
    ref_dir = tmp_path / "reg" / "x"
    ref_dir.mkdir(parents=True)
    (ref_dir / "metadata.json").write_text("[1, 2]")
    with pytest.raises(ValueError):
        Registry().load_packs(GetOpts(cache_path=str(tmp_path), registry_name="reg", ref="x"))


def test_to_json_matches_expected_layout():
    registry = Registry(name="with-sha", source="/tmp/x", ref="abc", local_ref="abc")
    assert registry.to_json() == (
        '{\n  "name": "with-sha",\n  "source": "/tmp/x",\n'
        '  "ref": "abc",\n  "local_ref": "abc"\n}'
    )


def test_to_json_omits_empty_and_escapes_html():
    text = Registry(name=DEV_REGISTRY_NAME).to_json()
    assert text == '{\n  "name": "\\u003c\\u003clocal folder\\u003e\\u003e"\n}'
    assert json.loads(text) == {"name": DEV_REGISTRY_NAME}
    assert Registry().to_json() == "{}"


def test_json_round_trip():
    original = Registry(name="r", source="s", ref="latest", local_ref="deadbeef")
    restored = Registry.from_json(original.to_json())
    assert restored == original


def test_from_json_rejects_non_string_field():
    with pytest.raises(ValueError):
        Registry.from_json('{"name": 3}')


def test_default_cache_path_linux(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    assert default_cache_path() == f"{tmp_path}/nomad/packs"


def test_default_cache_path_falls_back_to_home(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
    monkeypatch.delenv("HOME", raising=False)
    assert default_cache_path() == "~/.nomad/packs"


def test_pack_config_init_from_directory(tmp_path):
    pack_dir = tmp_path / "mypack"
    pack_dir.mkdir()
    cfg = PackConfig(name=str(pack_dir))
    cfg.init()
    assert cfg.name == "mypack"
    assert cfg.registry == DEV_REGISTRY_NAME
    assert cfg.ref == DEV_REF
    assert cfg.source_path == str(pack_dir)
    assert cfg.path == os.path.abspath(str(pack_dir))


def test_pack_config_init_from_args(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    cfg = PackConfig(name="simple_raw_exec")
    cfg.init()
    assert cfg.registry == DEFAULT_REGISTRY_NAME
    assert cfg.ref == DEFAULT_REF
    assert cfg.path == (
        f"{tmp_path}/cache/nomad/packs/default/latest/simple_raw_exec@latest"
    )
    assert cfg.source_path == ""