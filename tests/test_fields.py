"""
Tests for turning field rows into submission key/value pairs.
"""

import logging

import pytest

from formaloo_flow.formaloo.catalog import CatalogClient
from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import AmbiguousMatchError, FieldOptionNotFoundError, NotFoundError
from formaloo_flow.formaloo.fields import FieldResolver
from formaloo_flow.formaloo.models import FieldReference


async def _resolve(fake_api, credential, reference, value):
    async with FormalooClient(credential, transport=fake_api.transport) as client:
        return await FieldResolver(CatalogClient(client)).resolve(reference, value)


class TestFieldReference:
    def test_plain_reference_has_no_type(self):
        assert FieldReference.parse("email1") == FieldReference("email1", None)

    def test_composite_reference_is_trimmed(self):
        assert FieldReference.parse("color1 -  dropdown ") == FieldReference("color1", "dropdown")

    def test_split_uses_last_separator(self):
        assert FieldReference.parse("odd - slug - choice") == FieldReference("odd - slug", "choice")

    def test_structured_pair(self):
        assert FieldReference.parse({"slug": "c1", "type": "city"}) == FieldReference("c1", "city")

    def test_value_round_trips_to_the_ui_string(self):
        assert FieldReference("color1", "dropdown").value == "color1 - dropdown"
        assert FieldReference("email1").value == "email1"


@pytest.mark.asyncio
async def test_reference_without_separator_passes_value_through(fake_api, pre_issued):
    assert await _resolve(fake_api, pre_issued, "email1", "a@b.co") == ("email1", "a@b.co")
    assert fake_api.requests == []


@pytest.mark.asyncio
async def test_plain_type_passes_value_through(fake_api, pre_issued):
    assert await _resolve(fake_api, pre_issued, "age1 - number", 42) == ("age1", 42)


@pytest.mark.asyncio
async def test_rows_without_field_or_value_contribute_nothing(fake_api, pre_issued):
    assert await _resolve(fake_api, pre_issued, "", "x") is None
    assert await _resolve(fake_api, pre_issued, "name1 - short_text", None) is None


@pytest.mark.asyncio
async def test_dropdown_matches_case_insensitively(fake_api, pre_issued, color_field):
    assert await _resolve(fake_api, pre_issued, "color1 - dropdown", "red") == ("color1", "r")


@pytest.mark.asyncio
async def test_choice_type_uses_same_lookup(fake_api, pre_issued, color_field):
    assert await _resolve(fake_api, pre_issued, {"slug": "color1", "type": "choice"}, "BLUE") == ("color1", "b")


@pytest.mark.asyncio
async def test_dropdown_without_match_fails(fake_api, pre_issued, color_field):
    with pytest.raises(FieldOptionNotFoundError) as exc_info:
        await _resolve(fake_api, pre_issued, "color1 - dropdown", "green")

    assert exc_info.value.value == "green"
    assert "green" in str(exc_info.value)


@pytest.mark.asyncio
async def test_multi_select_drops_unmatched_tokens(fake_api, pre_issued, color_field, caplog):
    with caplog.at_level(logging.WARNING, logger="formaloo_flow.formaloo.fields"):
        resolved = await _resolve(fake_api, pre_issued, "color1 - multiple_select", "Red, blue, Green")

    assert resolved == ("color1", ["r", "b"])
    assert "Green" in caplog.text


@pytest.mark.asyncio
async def test_multi_select_accepts_a_list_value(fake_api, pre_issued, color_field):
    resolved = await _resolve(fake_api, pre_issued, "color1 - multiple_select", ["Red", "Blue"])

    assert resolved == ("color1", ["r", "b"])


@pytest.mark.asyncio
async def test_multi_select_with_no_match_fails(fake_api, pre_issued, color_field):
    with pytest.raises(FieldOptionNotFoundError):
        await _resolve(fake_api, pre_issued, "color1 - multiple_select", "Green, Purple")


@pytest.mark.asyncio
async def test_city_resolves_to_matched_slug(fake_api, pre_issued):
    fake_api.add("GET", "/v4/fields/city1/choices/", {"data": {"objects": [
        {"title": "Tehran", "slug": "thr"},
        {"title": "Tehran Province", "slug": "thp"},
    ], "count": 2}})

    assert await _resolve(fake_api, pre_issued, "city1 - city", "tehran") == ("city1", "thr")


@pytest.mark.asyncio
async def test_country_errors_propagate(fake_api, pre_issued):
    fake_api.add("GET", "/v4/fields/ctry1/choices/", {"data": {"objects": [], "count": 0}})

    with pytest.raises(NotFoundError):
        await _resolve(fake_api, pre_issued, "ctry1 - country", "Narnia")


@pytest.mark.asyncio
async def test_ambiguous_country_propagates(fake_api, pre_issued):
    fake_api.add("GET", "/v4/fields/ctry1/choices/", {"data": {"objects": [
        {"title": "Congo", "slug": "cg"},
        {"title": "Congo", "slug": "cd"},
    ], "count": 2}})

    with pytest.raises(AmbiguousMatchError):
        await _resolve(fake_api, pre_issued, "ctry1 - country", "congo")
