"""Unit tests for the two-tier render cache."""

import asyncio
from pathlib import Path

import pytest

from mdmath.contexts.rendering import RenderCache, RenderedEquation, ToolingError
from mdmath.contexts.rendering.models import CacheKey, RenderRequest
from mdmath.contexts.typesetting import TypesetFailure, TypesetOk


def _key(**overrides):
    fields = dict(
        equation="x^2", cell_width=8, width=1, cell_height=16, height=1, flags=0, color="#fff"
    )
    fields.update(overrides)
    return CacheKey(**fields)


@pytest.mark.unit
def test_typeset_success_is_cached(typesetter):
    cache = RenderCache(typesetter)

    first = asyncio.run(cache.lookup_typeset("x^2"))
    second = asyncio.run(cache.lookup_typeset("x^2"))

    assert isinstance(first, TypesetOk)
    assert first is second
    assert typesetter.calls == ["x^2"]


@pytest.mark.unit
def test_typeset_failure_is_cached(typesetter):
    cache = RenderCache(typesetter)

    first = asyncio.run(cache.lookup_typeset("\\undefined"))
    second = asyncio.run(cache.lookup_typeset("\\undefined"))

    assert isinstance(first, TypesetFailure)
    assert first.message == second.message == "Undefined control sequence."
    assert typesetter.calls == ["\\undefined"]


@pytest.mark.unit
def test_tooling_failure_is_not_cached(typesetter):
    typesetter.broken.add("x^2")
    cache = RenderCache(typesetter)

    for _ in range(2):
        with pytest.raises(ToolingError, match="LaTeX compiler not found"):
            asyncio.run(cache.lookup_typeset("x^2"))

    assert typesetter.calls == ["x^2", "x^2"]
    assert cache.stats()["typeset"] == 0


@pytest.mark.unit
def test_typeset_cache_recovers_after_tooling_failure(typesetter):
    typesetter.broken.add("x^2")
    cache = RenderCache(typesetter)
    with pytest.raises(ToolingError):
        asyncio.run(cache.lookup_typeset("x^2"))

    typesetter.broken.clear()
    assert isinstance(asyncio.run(cache.lookup_typeset("x^2")), TypesetOk)


@pytest.mark.unit
def test_lookup_rendered_miss_returns_none(typesetter):
    assert RenderCache(typesetter).lookup_rendered(_key()) is None


@pytest.mark.unit
def test_put_last_writer_wins_and_tracks_every_image(typesetter):
    cache = RenderCache(typesetter)
    first = RenderedEquation("x^2", Path("/tmp/a.png"), 1, 1)
    second = RenderedEquation("x^2", Path("/tmp/b.png"), 1, 1)

    cache.put(_key(), first)
    cache.put(_key(), second)

    assert cache.lookup_rendered(_key()) is second
    assert cache.produced() == [first, second]
    assert cache.stats() == {"typeset": 0, "rendered": 1, "produced": 2}


@pytest.mark.unit
@pytest.mark.parametrize(
    "field,value",
    [
        ("equation", "y^2"),
        ("cell_width", 9),
        ("width", 2),
        ("cell_height", 17),
        ("height", 2),
        ("flags", 1),
        ("color", "#000"),
    ],
)
def test_every_key_field_separates_entries(typesetter, field, value):
    cache = RenderCache(typesetter)
    cache.put(_key(), RenderedEquation("x^2", Path("/tmp/a.png"), 1, 1))

    assert cache.lookup_rendered(_key(**{field: value})) is None


@pytest.mark.unit
def test_cache_key_from_request_and_string_form():
    request = RenderRequest(
        identifier="7",
        equation="x^2",
        cell_width=8,
        cell_height=16,
        width=3,
        height=2,
        flags=1,
        color="red",
    )

    key = CacheKey.from_request(request)

    assert key == _key(width=3, height=2, flags=1, color="red")
    assert str(key) == "x^2_8*3x16*2_1_red"
