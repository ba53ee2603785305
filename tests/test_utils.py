"""
Tests for casing helpers.
"""

from __future__ import annotations

import pytest

from sqlgraph.core.utils import (
    freeze,
    get_case_function,
    split_words,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
    to_upper_case,
)


class TestCasing:

    @pytest.mark.parametrize("name, words", [
        ("film_actor", ["film", "actor"]),
        ("FilmActor", ["Film", "Actor"]),
        ("HTTPResponse", ["HTTP", "Response"]),
        ("NC-17", ["NC", "17"]),
        ("__store__id", ["store", "id"]),
    ])
    def test_split_words(self, name, words):
        assert split_words(name) == words

    def test_pascal(self):
        assert to_pascal_case("film_actor") == "FilmActor"
        assert to_pascal_case("mpaa_rating") == "MpaaRating"

    def test_camel(self):
        assert to_camel_case("film_actor") == "filmActor"
        assert to_camel_case("FilmActor") == "filmActor"
        assert to_camel_case("self_ref_reverse") == "selfRefReverse"
        assert to_camel_case("") == ""

    def test_snake(self):
        assert to_snake_case("ownedProperties") == "owned_properties"
        assert to_snake_case("HTTPResponse") == "http_response"

    @pytest.mark.parametrize("raw, name", [
        ("PG-13", "PG13"),
        ("NC-17", "NC17"),
        ("G", "G"),
        ("in progress", "INPROGRESS"),
    ])
    def test_variant_names(self, raw, name):
        assert to_upper_case(raw) == name


class TestCaseFunctions:

    def test_lookup(self):
        assert get_case_function("snake") is to_snake_case
        assert get_case_function("pascal") is to_pascal_case

    def test_unknown_rule(self):
        with pytest.raises(ValueError, match="Unknown casing rule"):
            get_case_function("kebab")


def test_freeze_keeps_key_order():
    a = freeze({"x": 1, "y": [1, {"z": 2}]})
    b = freeze({"y": [1, {"z": 2}], "x": 1})
    assert hash(a) is not None
    assert a != b
    assert a == freeze({"x": 1, "y": [1, {"z": 2}]})
