"""
Tests for the go.mod parser.
"""

import pytest

from dep_analytics.position import NO_POSITION, Position
from dep_analytics.providers import GoModParser
from dep_analytics.providers.go_mod import GoModState, LineKind, transition


@pytest.fixture
def parser():
    return GoModParser()


def pairs(dependencies):
    return [(d.name.value, d.version.value) for d in dependencies]


class TestGoModParser:
    def test_sample_manifest(self, parser, sample_go_mod):
        dependencies = parser.collect(sample_go_mod.read_text())

        assert pairs(dependencies) == [
            ("github.com/gorilla/mux", "v1.8.0"),
            ("golang.org/x/text", "v0.3.8"),
        ]
        assert dependencies[0].name.position == NO_POSITION
        assert dependencies[0].version.position == Position(6, 25)
        # replaced modules point at the right-hand side of the directive
        assert dependencies[1].version.position == Position(10, 48)

    def test_single_line_require(self, parser):
        dependency = parser.collect("require github.com/a/b v1.2.3")[0]
        assert dependency.name.value == "github.com/a/b"
        assert dependency.version.value == "v1.2.3"
        assert dependency.version.position == Position(1, 24)

    def test_go_directive_is_not_a_module(self, parser):
        contents = "module example.com/m\n\ngo 1.13\n\ngo 1.21.0\ntoolchain go1.21.5\n"
        assert parser.collect(contents) == []

    def test_replace_after_require(self, parser):
        dependencies = parser.collect("require foo v0.1.0\nreplace foo => bar v1.0.0\n")
        assert pairs(dependencies) == [("bar", "v1.0.0")]
        assert dependencies[0].version.position == Position(2, 20)

    def test_replace_before_require(self, parser):
        dependencies = parser.collect("replace foo => bar v1.0.0\nrequire foo v0.1.0\n")
        assert pairs(dependencies) == [("bar", "v1.0.0")]

    def test_versioned_replace_only_matches_that_version(self, parser):
        contents = (
            "require (\n"
            "\tfoo v0.1.0\n"
            "\tbaz v0.2.0\n"
            ")\n"
            "replace foo v0.1.0 => bar v1.0.0\n"
            "replace baz v9.9.9 => bar v1.0.0\n"
        )
        assert pairs(parser.collect(contents)) == [("bar", "v1.0.0"), ("baz", "v0.2.0")]

    def test_modules_replaced_by_the_same_target(self, parser):
        contents = (
            "require (\n"
            "\tfoo v0.1.0\n"
            "\tbaz v0.2.0\n"
            ")\n"
            "replace (\n"
            "\tfoo => qux v1.0.0\n"
            "\tbaz => qux v1.0.0\n"
            ")\n"
        )
        assert pairs(parser.collect(contents)) == [("qux", "v1.0.0"), ("qux", "v1.0.0")]

    def test_local_replacement_is_ignored(self, parser):
        contents = "require foo v0.1.0\nreplace foo => ../foo\n"
        assert pairs(parser.collect(contents)) == [("foo", "v0.1.0")]

    def test_exclude_and_retract_are_ignored(self, parser):
        contents = (
            "require foo v0.1.0\n"
            "exclude foo v0.0.9\n"
            "exclude (\n"
            "\tbar v1.0.0\n"
            ")\n"
            "retract (\n"
            "\tv1.0.1\n"
            ")\n"
        )
        assert pairs(parser.collect(contents)) == [("foo", "v0.1.0")]

    def test_comments_are_stripped(self, parser):
        contents = "require (\n\t// foo v0.1.0\n\tbar v1.2.3 // indirect\n)\n"
        assert pairs(parser.collect(contents)) == [("bar", "v1.2.3")]

    def test_prerelease_and_build_metadata(self, parser):
        contents = (
            "require (\n"
            "\tfoo v1.0.0-rc.1\n"
            "\tbar v2.0.0+incompatible\n"
            "\tbaz v0.0.0-20210101000000-abcdef123456\n"
            ")\n"
        )
        assert pairs(parser.collect(contents)) == [
            ("foo", "v1.0.0-rc.1"),
            ("bar", "v2.0.0+incompatible"),
            ("baz", "v0.0.0-20210101000000-abcdef123456"),
        ]

    def test_imports_resolve_to_owning_module(self, parser, sample_go_mod):
        imports = [
            "fmt",
            "github.com/gorilla/mux",
            "golang.org/x/text/unicode/norm",
            "golang.org/x/text/language",
        ]
        dependencies = parser.collect(sample_go_mod.read_text(), imports)

        assert pairs(dependencies[2:]) == [
            ("golang.org/x/text/language@golang.org/x/text", "v0.3.8"),
            ("golang.org/x/text/unicode/norm@golang.org/x/text", "v0.3.8"),
        ]
        assert dependencies[2].version.position == Position(10, 48)

    def test_imports_do_not_shadow_module_lookup(self, parser, sample_go_mod):
        dependencies = parser.collect(
            sample_go_mod.read_text(), ["golang.org/x/text/language"]
        )
        dependency_map = parser.build_map(dependencies)

        module = dependency_map.lookup("golang.org/x/text@v0.3.8")
        assert module is dependencies[1]
        assert "golang.org/x/text/language@golang.org/x/text" in dependency_map

    def test_idempotent(self, parser, sample_go_mod):
        contents = sample_go_mod.read_text()
        assert parser.collect(contents) == parser.collect(contents)

    def test_resolve_reference(self, parser):
        ref = "pkg:golang/github.com/gorilla/mux@v1.8.0?type=module"
        assert parser.resolve_dependency_from_reference(ref) == "github.com/gorilla/mux@v1.8.0"


class TestTransition:
    def test_require_block(self):
        assert transition(GoModState.OUTSIDE, "require (") == (
            GoModState.REQUIRE_BLOCK,
            LineKind.MODULE,
        )
        assert transition(GoModState.REQUIRE_BLOCK, "\tfoo v1.0.0") == (
            GoModState.REQUIRE_BLOCK,
            LineKind.MODULE,
        )
        assert transition(GoModState.REQUIRE_BLOCK, ")") == (
            GoModState.OUTSIDE,
            LineKind.IGNORE,
        )

    def test_replace_block(self):
        assert transition(GoModState.OUTSIDE, "replace (") == (
            GoModState.REPLACE_BLOCK,
            LineKind.IGNORE,
        )
        assert transition(GoModState.REPLACE_BLOCK, "\ta => b v1.0.0") == (
            GoModState.REPLACE_BLOCK,
            LineKind.REPLACE,
        )

    def test_single_line_replace(self):
        assert transition(GoModState.OUTSIDE, "replace a => b v1.0.0") == (
            GoModState.OUTSIDE,
            LineKind.REPLACE,
        )
