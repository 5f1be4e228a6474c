from __future__ import annotations

import pytest

from skbatcher.filtering import FilterListType, PathFilter, compile_path_filter, glob_to_regex


def test_glob_escapes_dots_and_expands_stars() -> None:
    assert glob_to_regex("environment.*").pattern == r"^environment\..*$"


def test_include_glob_matches_nested_paths() -> None:
    path_filter = PathFilter(FilterListType.INCLUDE, ["environment.*"])
    assert path_filter("environment.wind.speedApparent")
    assert path_filter("environment.depth.belowKeel")
    assert not path_filter("navigation.speedOverGround")


def test_dot_is_literal() -> None:
    path_filter = PathFilter("include", ["environment.wind"])
    assert path_filter("environment.wind")
    assert not path_filter("environmentXwind")


def test_patterns_are_anchored() -> None:
    path_filter = PathFilter("include", ["wind.speed"])
    assert not path_filter("environment.wind.speedApparent")


def test_exclude_rejects_exact_path_only() -> None:
    path_filter = PathFilter("exclude", ["environment.wind.speedApparent"])
    assert not path_filter("environment.wind.speedApparent")
    assert path_filter("environment.wind.angleApparent")
    assert path_filter("environment.wind.speedApparentMax")


def test_empty_include_accepts_nothing() -> None:
    path_filter = PathFilter("include", [])
    assert not path_filter("environment.wind.speedApparent")


def test_empty_exclude_accepts_everything() -> None:
    path_filter = PathFilter("exclude", [])
    assert path_filter("environment.wind.speedApparent")
    assert path_filter("a")


@pytest.mark.parametrize("mode", ["include", "exclude"])
@pytest.mark.parametrize("path", ["design.length", "notifications.mob", "design.aisShipType.value"])
def test_reserved_namespaces_always_rejected(mode: str, path: str) -> None:
    path_filter = PathFilter(mode, ["*"] if mode == "include" else [])
    assert not path_filter(path)


def test_reserved_prefix_needs_the_dot() -> None:
    path_filter = PathFilter("exclude", [])
    assert path_filter("designation")


def test_filter_is_idempotent() -> None:
    path_filter = compile_path_filter("include", ["navigation.*", "environment.wind.*"])
    for path in ("navigation.position", "environment.wind.speedTrue", "electrical.batteries.1.voltage"):
        assert path_filter(path) == path_filter(path)


def test_unknown_mode_rejected() -> None:
    with pytest.raises(ValueError):
        PathFilter("only", [])
