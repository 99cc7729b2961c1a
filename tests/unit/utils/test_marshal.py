"""Tests for default JSON / XML marshal functions."""

import dataclasses
import xml.etree.ElementTree as ET
from typing import NamedTuple

import pytest

from http_builder.utils.marshal import (
    is_record,
    json_marshal,
    json_unmarshal,
    record_to_dict,
    xml_marshal,
    xml_to_dict,
)


@dataclasses.dataclass
class User:
    name: str
    age: int


class Point(NamedTuple):
    x: int
    y: int


class Plain:
    def __init__(self):
        self.title = "t"
        self._hidden = 1


class TestRecords:
    @pytest.mark.parametrize("value", [User("a", 1), Point(1, 2), Plain()])
    def test_is_record(self, value):
        assert is_record(value)

    @pytest.mark.parametrize("value", [User, {"a": 1}, [1], "s", 5, len])
    def test_not_record(self, value):
        assert not is_record(value)

    def test_record_to_dict(self):
        assert record_to_dict(User("a", 1)) == {"name": "a", "age": 1}
        assert record_to_dict(Point(1, 2)) == {"x": 1, "y": 2}
        assert record_to_dict(Plain()) == {"title": "t"}


class TestJson:
    def test_compact(self):
        assert json_marshal({"name": "John", "age": 30}) == b'{"age":30,"name":"John"}'

    def test_mapping_keys_sorted(self):
        assert json_marshal({"b": 1, "a": {"d": 2, "c": 3}}) == b'{"a":{"c":3,"d":2},"b":1}'
        assert json_marshal([{"z": 1, "y": 2}]) == b'[{"y":2,"z":1}]'
        assert json_marshal({"b": 1, "a": 2}) == json_marshal({"a": 2, "b": 1})

    def test_record_and_nested(self):
        assert json_marshal(User("Иван", 3)) == '{"name":"Иван","age":3}'.encode("utf-8")
        assert json_marshal({"u": User("a", 1), "a": 0}) == b'{"a":0,"u":{"name":"a","age":1}}'
        assert json_marshal(Point(1, 2)) == b'{"x":1,"y":2}'

    def test_unserializable(self):
        with pytest.raises(TypeError):
            json_marshal({"f": object()})

    def test_unmarshal(self):
        assert json_unmarshal(b'{"a": [1, 2]}') == {"a": [1, 2]}
        assert json_unmarshal('"x"') == "x"


class TestXml:
    def test_single_key_mapping_is_root(self):
        assert xml_marshal({"user": {"name": "John"}}) == b"<user><name>John</name></user>"

    def test_record_root_from_class_name(self):
        assert xml_marshal(User("a", 1)) == b"<User><name>a</name><age>1</age></User>"

    def test_lists_repeat_tag(self):
        out = xml_marshal({"tags": ["a", "b"], "ok": True}, root="post")
        assert out == b"<post><tags>a</tags><tags>b</tags><ok>true</ok></post>"

    def test_to_dict(self):
        data = b'<user id="7"><name>John</name><tag>a</tag><tag>b</tag><empty/></user>'
        assert xml_to_dict(data) == {
            "user": {"@id": "7", "name": "John", "tag": ["a", "b"], "empty": None}
        }

    def test_to_dict_strips_namespaces(self):
        data = b'<ns:root xmlns:ns="urn:x"><ns:item>1</ns:item></ns:root>'
        assert xml_to_dict(data) == {"root": {"item": "1"}}

    def test_malformed(self):
        with pytest.raises(ET.ParseError):
            xml_to_dict(b"<open>")
