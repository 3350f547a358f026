"""Tests for the iterative dependency graph resolver."""

import pytest

from conftest import StubTransport, dep
from jarfetch.classpath import ClasspathProjector
from jarfetch.errors import (
    ConflictUnresolvable,
    NonConvergence,
    NotFoundError,
    OfflineViolation,
    ResolutionCancelled,
)
from jarfetch.graph import ResolutionStatus
from jarfetch.resolver import Resolver, ResolveOptions
from jarfetch.versioning.models import Coordinate, Module
from jarfetch.versioning.parser import parse_coordinate, parse_dependency


def _m(token):
    org, name = token.split(":")
    return Module(org, name)


class TestEndToEnd:

    def test_range_resolves_to_highest_available_and_projects_root_first(self, context, maven):
        """a:lib:1.0 -> b:lib:[1.0,1.5] with 1.2 and 1.5 published."""
        maven.publish("a:lib:1.0", [dep("b:lib:[1.0,1.5]")])
        maven.publish("b:lib:1.2")
        maven.publish("b:lib:1.5")
        maven.listing("b:lib", ["1.2", "1.5"])

        resolution = Resolver(context).resolve(["a:lib:1.0"])

        assert resolution.status is ResolutionStatus.CONVERGED
        assert resolution.converged
        assert resolution.errors == {}
        assert resolution.graph.version_of(_m("b:lib")) == "1.5"

        paths, errors = ClasspathProjector(context).project(resolution.graph)
        assert errors == {}
        assert [(p.parts[-4], p.name) for p in paths] == [("a", "lib-1.0.jar"), ("b", "lib-1.5.jar")]

    def test_only_selected_version_descriptor_is_fetched(self, context, maven, transport):
        maven.publish("a:lib:1.0", [dep("b:lib:[1.0,1.5]")])
        maven.publish("b:lib:1.2")
        maven.publish("b:lib:1.5")
        maven.listing("b:lib", ["1.2", "1.5"])

        Resolver(context).resolve(["a:lib:1.0"])

        assert transport.calls[f"{maven.root}b/lib/1.2/lib-1.2.pom"] == 0
        assert transport.calls[f"{maven.root}b/lib/1.5/lib-1.5.pom"] == 1


class TestConflictResolution:

    def test_highest_requested_version_wins(self, context, maven, transport):
        maven.publish("x:app:1.0", [dep("p:one:1.0"), dep("p:two:1.0")])
        maven.publish("p:one:1.0", [dep("c:lib:1.1")])
        maven.publish("p:two:1.0", [dep("c:lib:1.3")])
        maven.publish("c:lib:1.1")
        maven.publish("c:lib:1.3")

        resolution = Resolver(context).resolve(["x:app:1.0"])

        assert resolution.converged
        assert resolution.graph.version_of(_m("c:lib")) == "1.3"
        assert transport.calls[f"{maven.root}c/lib/1.1/lib-1.1.pom"] == 0

    def test_force_version_overrides_requests(self, context, maven):
        maven.publish("a:lib:1.0", [dep("b:lib:1.0")])
        maven.publish("b:lib:1.0")
        maven.publish("b:lib:1.2")

        options = ResolveOptions(force_versions={_m("b:lib"): "1.2"})
        resolution = Resolver(context).resolve(["a:lib:1.0"], options)

        assert resolution.graph.version_of(_m("b:lib")) == "1.2"

    def test_edges_of_superseded_versions_are_dropped(self, context, maven):
        maven.publish("r:app:1.0", [dep("m:lib:1.0"), dep("n:lib:1.0")])
        maven.publish("m:lib:1.0", [dep("old:dep:1.0")])
        maven.publish("m:lib:2.0")
        maven.publish("n:lib:1.0", [dep("m:lib:2.0")])
        maven.publish("old:dep:1.0")

        resolution = Resolver(context).resolve(["r:app:1.0"])

        assert resolution.converged
        assert resolution.graph.version_of(_m("m:lib")) == "2.0"
        assert _m("old:dep") not in resolution.graph
        assert all(edge.parent != Coordinate(_m("m:lib"), "1.0") for edge in resolution.graph.edges)

    def test_malformed_version_is_reported_per_module(self, context, maven):
        maven.publish("a:lib:1.0", [dep("b:lib:${undefined}"), dep("c:lib:1.0")])
        maven.publish("c:lib:1.0")

        resolution = Resolver(context).resolve(["a:lib:1.0"])

        assert isinstance(resolution.errors["b:lib"], ConflictUnresolvable)
        assert resolution.graph.version_of(_m("c:lib")) == "1.0"
        assert resolution.status is ResolutionStatus.CONVERGED

    def test_range_without_match_is_not_found(self, context, maven):
        maven.publish("a:lib:1.0", [dep("b:lib:[3.0,)")])
        maven.listing("b:lib", ["1.0", "2.0"])

        resolution = Resolver(context).resolve(["a:lib:1.0"])

        assert isinstance(resolution.errors["b:lib"], NotFoundError)
        assert _m("b:lib") not in resolution.graph


class TestExclusions:

    def test_exclusion_applies_only_along_its_path(self, context, maven):
        maven.publish("x:a:1.0", [dep("z:lib:1.0")])
        maven.publish("x:b:1.0", [dep("z:lib:1.0")])
        maven.publish("z:lib:1.0")

        seeds = [parse_dependency("x:a:1.0", exclusions=[("z", "lib")]), "x:b:1.0"]
        resolution = Resolver(context).resolve(seeds)

        assert resolution.converged
        assert resolution.graph.version_of(_m("z:lib")) == "1.0"
        assert resolution.graph.dependents_of(_m("z:lib")) == [parse_coordinate("x:b:1.0")]

    def test_declared_exclusion_is_inherited_transitively(self, context, maven):
        maven.publish("x:a:1.0", [dep("y:mid:1.0", exclusions=[("z", "*")])])
        maven.publish("y:mid:1.0", [dep("z:lib:1.0"), dep("w:lib:1.0")])
        maven.publish("z:lib:1.0")
        maven.publish("w:lib:1.0")

        resolution = Resolver(context).resolve(["x:a:1.0"])

        assert _m("z:lib") not in resolution.graph
        assert _m("w:lib") in resolution.graph

    def test_edge_reached_under_two_exclusion_contexts_is_recorded_once(self, context, maven):
        maven.publish("x:a:1.0", [dep("y:mid:1.0")])
        maven.publish("x:b:1.0", [dep("y:mid:1.0")])
        maven.publish("y:mid:1.0", [dep("z:lib:1.0")])
        maven.publish("z:lib:1.0")

        seeds = [parse_dependency("x:a:1.0", exclusions=[("q", "q")]), "x:b:1.0"]
        graph = Resolver(context).resolve(seeds).graph

        assert len(graph.edges) == len(set(graph.edges))
        assert graph.dependents_of(_m("z:lib")) == [parse_coordinate("y:mid:1.0")]
        assert len(graph.dependents_of(_m("y:mid"))) == 2


class TestEdgeFilters:

    def test_optional_dependencies_need_keep_optional(self, context, maven):
        maven.publish("a:lib:1.0", [dep("o:opt:1.0", optional=True)])
        maven.publish("o:opt:1.0")

        assert _m("o:opt") not in Resolver(context).resolve(["a:lib:1.0"]).graph
        kept = Resolver(context).resolve(["a:lib:1.0"], ResolveOptions(keep_optional=True))
        assert kept.graph.version_of(_m("o:opt")) == "1.0"

    def test_test_and_provided_scopes_are_skipped(self, context, maven):
        maven.publish("a:lib:1.0", [
            dep("t:junit:4.12", scope="test"),
            dep("p:servlet:3.0", scope="provided"),
            dep("r:driver:1.0", scope="runtime"),
        ])
        maven.publish("r:driver:1.0")

        graph = Resolver(context).resolve(["a:lib:1.0"]).graph

        assert [str(m) for m in graph.order] == ["a:lib", "r:driver"]


class TestTermination:

    def test_iteration_budget_yields_partial_graph(self, context, maven):
        maven.publish("a:lib:1.0", [dep("b:lib:1.0")])
        maven.publish("b:lib:1.0", [dep("c:lib:1.0")])
        maven.publish("c:lib:1.0", [dep("d:lib:1.0")])
        maven.publish("d:lib:1.0")

        resolution = Resolver(context).resolve(["a:lib:1.0"], ResolveOptions(max_iterations=1))

        assert resolution.status is ResolutionStatus.NON_CONVERGED
        assert resolution.iterations == 1
        assert isinstance(resolution.errors["<resolution>"], NonConvergence)
        non_root = [e for e in resolution.graph.edges if not e.is_root]
        assert non_root
        assert all(e.parent == parse_coordinate("a:lib:1.0") for e in non_root)

    def test_oscillating_selection_fails_without_iteration_budget(self, context, maven):
        maven.publish("r:app:1.0", [dep("a:x:1"), dep("b:x:1")])
        maven.publish("a:x:1", [dep("b:x:2")])
        maven.publish("b:x:2", [dep("a:x:2")])
        maven.publish("a:x:2")
        maven.publish("b:x:1")

        resolution = Resolver(context).resolve(["r:app:1.0"], ResolveOptions(max_iterations=-1))

        assert resolution.status is ResolutionStatus.FAILED
        assert not resolution.converged
        assert isinstance(resolution.errors["<resolution>"], NonConvergence)

    def test_resolution_is_idempotent(self, context, maven, transport):
        maven.publish("a:lib:1.0", [dep("b:lib:[1.0,2.0)"), dep("c:lib:1.0")])
        maven.publish("b:lib:1.4")
        maven.publish("c:lib:1.0", [dep("b:lib:1.1")])
        maven.publish("b:lib:1.1")
        maven.listing("b:lib", ["1.1", "1.4"])

        first = Resolver(context).resolve(["a:lib:1.0"])
        calls = transport.total_calls
        second = Resolver(context).resolve(["a:lib:1.0"])

        assert first.graph.selected == second.graph.selected
        assert first.graph.edges == second.graph.edges
        assert first.graph.order == second.graph.order
        assert transport.total_calls == calls

    def test_cancel_stops_at_next_barrier(self, tmp_path, maven, transport):
        from jarfetch.context import EngineContext

        maven.publish("a:lib:1.0", [dep("b:lib:1.0")])
        maven.publish("b:lib:1.0")
        context = EngineContext(tmp_path, [maven.repository], transport)
        resolver = Resolver(context)
        original = transport.download

        def cancelling_download(url, out):
            resolver.cancel()
            return original(url, out)

        transport.download = cancelling_download
        with pytest.raises(ResolutionCancelled):
            resolver.resolve(["a:lib:1.0"])


class TestFailures:

    def test_offline_with_empty_cache_never_touches_network(self, context, maven, transport):
        maven.publish("a:lib:1.0")

        resolution = Resolver(context).resolve(["a:lib:1.0"], ResolveOptions(offline=True))

        assert resolution.status is ResolutionStatus.FAILED
        assert isinstance(resolution.errors["a:lib:1.0"], OfflineViolation)
        assert transport.total_calls == 0

    def test_offline_after_online_run_succeeds(self, context, maven, transport):
        maven.publish("a:lib:1.0", [dep("b:lib:1.0")])
        maven.publish("b:lib:1.0")
        Resolver(context).resolve(["a:lib:1.0"])
        calls = transport.total_calls

        resolution = Resolver(context).resolve(["a:lib:1.0"], ResolveOptions(offline=True))

        assert resolution.converged
        assert transport.total_calls == calls

    def test_missing_root_fails(self, context):
        resolution = Resolver(context).resolve(["nope:lib:1.0"])

        assert resolution.status is ResolutionStatus.FAILED
        assert isinstance(resolution.errors["nope:lib:1.0"], NotFoundError)

    def test_missing_transitive_dependency_is_recorded(self, context, maven):
        maven.publish("a:lib:1.0", [dep("gone:lib:1.0"), dep("b:lib:1.0")])
        maven.publish("b:lib:1.0")

        resolution = Resolver(context).resolve(["a:lib:1.0"])

        assert resolution.status is ResolutionStatus.CONVERGED
        assert isinstance(resolution.errors["gone:lib:1.0"], NotFoundError)
        assert resolution.graph.version_of(_m("b:lib")) == "1.0"

    def test_malformed_seed_raises(self, context):
        with pytest.raises(ValueError):
            Resolver(context).resolve(["not-a-coordinate"])


class TestSeeds:

    def test_duplicate_seeds_are_collapsed(self, context, maven):
        maven.publish("a:lib:1.0")

        resolution = Resolver(context).resolve(["a:lib:1.0", parse_coordinate("a:lib:1.0")])

        assert len(resolution.graph.roots) == 1
        assert resolution.graph.coordinates() == [parse_coordinate("a:lib:1.0")]

    def test_ivy_repository_in_chain(self, tmp_path):
        from jarfetch.context import EngineContext
        from jarfetch.repository import IvyRepository

        transport = StubTransport()
        ivy = IvyRepository("https://ivy.test/")
        transport.files[ivy.descriptor_url(parse_coordinate("org.i:tool:0.1"))] = (
            b'<ivy-module version="2.0"><info organisation="org.i" module="tool" revision="0.1"/>'
            b'<dependencies><dependency org="org.i" name="base" rev="0.2" conf="compile->default"/>'
            b"</dependencies></ivy-module>"
        )
        transport.files[ivy.descriptor_url(parse_coordinate("org.i:base:0.2"))] = (
            b'<ivy-module version="2.0"><info organisation="org.i" module="base" revision="0.2"/>'
            b"</ivy-module>"
        )
        context = EngineContext(tmp_path, [ivy], transport)

        resolution = Resolver(context).resolve(["org.i:tool:0.1"])

        assert resolution.converged
        urls = [a.url for a in ClasspathProjector(context).artifacts(resolution.graph)]
        assert urls == [
            "https://ivy.test/org.i/tool/0.1/jars/tool.jar",
            "https://ivy.test/org.i/base/0.2/jars/base.jar",
        ]
