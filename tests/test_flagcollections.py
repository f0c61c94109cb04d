import pytest

from nomadpack.flagcollections import StringMapValue, StringSliceValue, map_to_kv


def test_map_to_kv_sorted():
    assert map_to_kv({"b": "2", "a": "1"}) == "a=1,b=2"


def test_map_to_kv_empty():
    assert map_to_kv({}) == ""
    assert map_to_kv(None) == map_to_kv({})


def test_string_map_set_pairs():
    value = StringMapValue()
    value.set("region=global")
    value.set("dc=dc1")
    assert value.get() == {"region": "global", "dc": "dc1"}
    assert str(value) == map_to_kv(value.get())


def test_string_map_value_keeps_later_equals():
    value = StringMapValue()
    value.set("a=b=c")
    assert value.get() == {"a": "b=c"}


def test_string_map_overwrites_key_and_keeps_default():
    default = {"k": "old", "x": "y"}
    value = StringMapValue(default)
    value.set("k=new")
    assert value.get() == {"k": "new", "x": "y"}
    assert default == {"k": "old", "x": "y"}


def test_string_map_missing_equals():
    value = StringMapValue({"a": "b"})
    with pytest.raises(ValueError, match="missing = in KV pair"):
        value.set("novalue")
    assert value.get() == {"a": "b"}
    assert value.type_name == "StringMap"


def test_string_slice_first_set_replaces_default():
    value = StringSliceValue(["x"])
    assert value.get() == ["x"]
    value.set("a,b")
    assert value.get() == ["a", "b"]
    value.set("c")
    assert value.get() == ["a", "b", "c"]
    assert str(value) == ",".join(value.get())


def test_string_slice_trims_whole_value_only():
    value = StringSliceValue()
    value.set("  p,q  ")
    assert value.get() == ["p", "q"]


def test_string_slice_default_string():
    value = StringSliceValue(["m", "n"])
    assert str(value) == "m,n"
    assert StringSliceValue().get() == []
    assert value.type_name == "StringSlice"