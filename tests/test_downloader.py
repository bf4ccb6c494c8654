"""Tests for the resolve-and-fetch engine."""

from unittest.mock import MagicMock

import pytest

from common.errors import DownloadError, ParseError, RepositoryError
from registry.pom import parse_pom
from resolver.cache import ArtifactCache
from resolver.downloader import DependencyDownloader, merge_repositories
from resolver.session import ResolutionSession
from resolver.sink import ClasspathCollector
from registry.repository import Repository
from versioning.models import Dependency, DependencyScope

from conftest import CountingRepository, FailingRepository, dep, make_pom, sha1_hex


def _versions(resolved):
    return {str(d) for d in resolved}


class TestTransitiveResolution:
    """Walking the dependency graph."""

    def test_resolves_closure_and_injects_artifacts(self, mirror, cache_dir):
        mirror.publish("org.app", "a", "1.0", dependencies=[dep("org.lib", "b", "2.0")])
        mirror.publish("org.lib", "b", "2.0", dependencies=[dep("org.lib", "c", "3.0", scope="runtime")])
        mirror.publish("org.lib", "c", "3.0")
        sink = ClasspathCollector()
        downloader = DependencyDownloader(cache_dir, sink=sink)

        resolved = downloader.resolve_many([mirror.repository()], [Dependency.of("org.app", "a", "1.0")])

        assert _versions(resolved) == {"org.app:a:1.0", "org.lib:b:2.0", "org.lib:c:3.0"}
        cache = ArtifactCache(cache_dir)
        for d in resolved:
            paths = cache.paths(d)
            assert cache.is_valid(paths.descriptor, paths.descriptor_hash)
            assert cache.is_valid(paths.artifact, paths.artifact_hash)
        assert sorted(p.name for p in sink.paths) == ["a-1.0.jar", "b-2.0.jar", "c-3.0.jar"]

    def test_cycle_terminates(self, mirror, cache_dir):
        mirror.publish("g", "a", "1", dependencies=[dep("g", "b", "1")])
        mirror.publish("g", "b", "1", dependencies=[dep("g", "a", "1")])
        downloader = DependencyDownloader(cache_dir)

        resolved = downloader.resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")])

        assert _versions(resolved) == {"g:a:1", "g:b:1"}

    def test_diamond_fetched_once(self, mirror, cache_dir):
        mirror.publish("g", "top", "1", dependencies=[dep("g", "left", "1"), dep("g", "right", "1")])
        mirror.publish("g", "left", "1", dependencies=[dep("g", "bottom", "1")])
        mirror.publish("g", "right", "1", dependencies=[dep("g", "bottom", "1")])
        mirror.publish("g", "bottom", "1")
        repo = CountingRepository(mirror.url)

        resolved = DependencyDownloader(cache_dir).resolve_many([repo], [Dependency.of("g", "top", "1")])

        assert len(resolved) == 4
        assert repo.downloads.count("bottom-1.jar") == 1

    def test_scope_filtering(self, mirror, cache_dir):
        # the test-scoped dependency is never published: touching it would fail
        mirror.publish("g", "a", "1", dependencies=[
            dep("g", "runtime-dep", "1", scope="runtime"),
            dep("g", "test-dep", "1", scope="test"),
        ])
        mirror.publish("g", "runtime-dep", "1")
        downloader = DependencyDownloader(cache_dir)

        resolved = downloader.resolve_many(
            [mirror.repository()], [Dependency.of("g", "a", "1")], scopes={DependencyScope.RUNTIME}
        )

        assert _versions(resolved) == {"g:a:1", "g:runtime-dep:1"}

    def test_optional_dependencies_skipped_unless_enabled(self, mirror, cache_dir):
        mirror.publish("g", "a", "1", dependencies=[dep("g", "opt", "1", optional="true")])
        mirror.publish("g", "opt", "1")

        skipped = DependencyDownloader(cache_dir).resolve_many(
            [mirror.repository()], [Dependency.of("g", "a", "1")]
        )
        included = DependencyDownloader(cache_dir, ignore_optional=False).resolve_many(
            [mirror.repository()], [Dependency.of("g", "a", "1")]
        )

        assert _versions(skipped) == {"g:a:1"}
        assert _versions(included) == {"g:a:1", "g:opt:1"}

    def test_children_use_repositories_declared_in_descriptor(self, mirror, second_mirror, cache_dir):
        mirror.publish("g", "a", "1", dependencies=[dep("g", "b", "1")], repositories=[second_mirror.url])
        second_mirror.publish("g", "b", "1")

        resolved = DependencyDownloader(cache_dir).resolve_many(
            [mirror.repository()], [Dependency.of("g", "a", "1")]
        )

        assert _versions(resolved) == {"g:a:1", "g:b:1"}

    def test_classifier_artifact(self, mirror, cache_dir):
        mirror.publish("g", "native", "1", classifier="linux", jar=b"so")
        downloader = DependencyDownloader(cache_dir)
        target = Dependency.of("g", "native", "1", classifier="linux")

        downloader.resolve_many([mirror.repository()], [target])

        assert downloader.artifact_path(target).read_bytes() == b"so"


class TestSessions:
    """Resolved-identity registry behavior."""

    def test_already_resolved_returns_empty(self, mirror, cache_dir):
        mirror.publish("g", "a", "1")
        session = ResolutionSession()
        downloader = DependencyDownloader(cache_dir)

        first = downloader.resolve_one([mirror.repository()], Dependency.of("g", "a", "1"), session)
        second = downloader.resolve_one([mirror.repository()], Dependency.of("g", "a", "1"), session)

        assert len(first) == 1
        assert second == set()
        assert Dependency.of("g", "a") in session

    def test_shared_session_across_calls(self, mirror, cache_dir):
        mirror.publish("g", "a", "1")
        session = ResolutionSession()
        downloader = DependencyDownloader(cache_dir)

        downloader.resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")], session)
        again = downloader.resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")], session)

        assert again == set()
        assert len(session) == 1

    def test_reads_and_writes_take_the_lock(self):
        session = ResolutionSession()
        session._lock = MagicMock()
        target = Dependency.of("g", "a", "1")

        session.mark_resolved(target)
        assert session.is_resolved(target)
        assert session.resolved == frozenset({target.coordinate})

        assert session._lock.__enter__.call_count == 3

    def test_fresh_session_per_call_by_default(self, mirror, cache_dir):
        mirror.publish("g", "a", "1")
        downloader = DependencyDownloader(cache_dir)

        downloader.resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")])
        again = downloader.resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")])

        assert _versions(again) == {"g:a:1"}


class TestCaching:
    """Cache reuse and integrity gate."""

    def test_valid_cache_needs_no_network(self, mirror, cache_dir):
        mirror.publish("g", "a", "1", dependencies=[dep("g", "b", "1")])
        mirror.publish("g", "b", "1")
        first = DependencyDownloader(cache_dir).resolve_many(
            [mirror.repository()], [Dependency.of("g", "a", "1")]
        )
        repo = CountingRepository(mirror.url)

        second = DependencyDownloader(cache_dir).resolve_many([repo], [Dependency.of("g", "a", "1")])

        assert repo.calls == 0
        assert _versions(second) == _versions(first)

    def test_corrupted_artifact_is_refetched(self, mirror, cache_dir):
        mirror.publish("g", "a", "1", jar=b"original")
        downloader = DependencyDownloader(cache_dir)
        downloader.resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")])
        target = Dependency.of("g", "a", "1")
        artifact = downloader.artifact_path(target)
        artifact.write_bytes(b"corrupted")
        repo = CountingRepository(mirror.url)

        DependencyDownloader(cache_dir).resolve_many([repo], [target])

        assert "a-1.jar" in repo.downloads
        assert artifact.read_bytes() == b"original"
        paths = ArtifactCache(cache_dir).paths(target)
        assert ArtifactCache(cache_dir).is_valid(paths.artifact, paths.artifact_hash)

    def test_tampered_sidecar_is_refetched(self, mirror, cache_dir):
        mirror.publish("g", "a", "1")
        DependencyDownloader(cache_dir).resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")])
        paths = ArtifactCache(cache_dir).paths(Dependency.of("g", "a", "1"))
        paths.descriptor_hash.write_text("deadbeef")
        repo = CountingRepository(mirror.url)

        DependencyDownloader(cache_dir).resolve_many([repo], [Dependency.of("g", "a", "1")])

        assert "a-1.pom" in repo.downloads
        assert paths.descriptor_hash.read_text() == sha1_hex(paths.descriptor.read_bytes())

    def test_remote_sidecar_with_file_name_is_normalized(self, mirror, cache_dir):
        body = b"jar"
        mirror.publish("g", "a", "1", jar=body, jar_sidecar=f"{sha1_hex(body)}  a-1.jar\n")
        downloader = DependencyDownloader(cache_dir)

        downloader.resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")])

        paths = ArtifactCache(cache_dir).paths(Dependency.of("g", "a", "1"))
        assert paths.artifact_hash.read_text() == sha1_hex(body)

    def test_pom_packaging_without_artifact(self, mirror, cache_dir):
        mirror.publish("g", "bom", "1", packaging="pom", dependencies=[dep("g", "real", "1")])
        mirror.publish("g", "real", "1")
        sink = MagicMock()
        downloader = DependencyDownloader(cache_dir, sink=sink)

        resolved = downloader.resolve_many([mirror.repository()], [Dependency.of("g", "bom", "1")])

        assert _versions(resolved) == {"g:bom:1", "g:real:1"}
        assert not downloader.artifact_path(Dependency.of("g", "bom", "1")).exists()
        assert [call.args[0].name for call in sink.call_args_list] == ["real-1.jar"]

        repo = CountingRepository(mirror.url)
        DependencyDownloader(cache_dir).resolve_many([repo], [Dependency.of("g", "bom", "1")])
        assert repo.calls == 0


class TestFailures:
    """Repository fallback and aggregated errors."""

    def test_falls_back_to_next_repository(self, mirror, second_mirror, cache_dir):
        second_mirror.publish("g", "a", "1")

        resolved = DependencyDownloader(cache_dir).resolve_many(
            [mirror.repository(), second_mirror.repository()], [Dependency.of("g", "a", "1")]
        )

        assert _versions(resolved) == {"g:a:1"}

    def test_checksum_mismatch_tries_next_repository(self, mirror, second_mirror, cache_dir):
        mirror.publish("g", "a", "1", jar=b"evil", jar_sidecar=sha1_hex(b"good"))
        second_mirror.publish("g", "a", "1", jar=b"good")
        downloader = DependencyDownloader(cache_dir)

        downloader.resolve_many(
            [mirror.repository(), second_mirror.repository()], [Dependency.of("g", "a", "1")]
        )

        assert downloader.artifact_path(Dependency.of("g", "a", "1")).read_bytes() == b"good"

    def test_missing_jar_aggregates_every_repository(self, mirror, second_mirror, cache_dir):
        for m in (mirror, second_mirror):
            m.publish("g", "a", "1", packaging="jar", with_jar=False)

        with pytest.raises(DownloadError) as exc_info:
            DependencyDownloader(cache_dir).resolve_many(
                [mirror.repository(), second_mirror.repository()], [Dependency.of("g", "a", "1")]
            )

        failures = exc_info.value.failures
        assert [f.source for f in failures] == [mirror.url, second_mirror.url]
        assert all(isinstance(c, RepositoryError) for c in exc_info.value.causes)
        assert "g:a:1" in str(exc_info.value)

    def test_latest_version_from_repository(self, mirror, cache_dir):
        mirror.publish("g", "a", "1.0")
        mirror.publish("g", "a", "1.1")
        target = Dependency.of("g", "a")

        resolved = DependencyDownloader(cache_dir).resolve_many([mirror.repository()], [target])

        assert _versions(resolved) == {"g:a:1.1"}
        assert target.version == "1.1"

    def test_version_lookup_falls_back_to_best_cached_version(self, mirror, cache_dir):
        for version in ("1.0", "2.3.1", "2.2"):
            mirror.publish("g", "a", version)
            DependencyDownloader(cache_dir).resolve_many(
                [mirror.repository()], [Dependency.of("g", "a", version)]
            )
        offline = [FailingRepository("https://one.invalid"), FailingRepository("https://two.invalid")]

        resolved = DependencyDownloader(cache_dir).resolve_many(offline, [Dependency.of("g", "a")])

        assert _versions(resolved) == {"g:a:2.3.1"}

    def test_failed_fetch_leaves_no_record_for_version_fallback(self, mirror, cache_dir):
        mirror.publish("g", "a", "2.3.1")
        DependencyDownloader(cache_dir).resolve_many(
            [mirror.repository()], [Dependency.of("g", "a", "2.3.1")]
        )
        mirror.publish("g", "a", "3.0", with_jar=False)
        with pytest.raises(DownloadError):
            DependencyDownloader(cache_dir).resolve_many(
                [mirror.repository()], [Dependency.of("g", "a", "3.0")]
            )
        failed = ArtifactCache(cache_dir).paths(Dependency.of("g", "a", "3.0"))
        assert not failed.descriptor.exists()
        assert not failed.descriptor_hash.exists()

        resolved = DependencyDownloader(cache_dir).resolve_many(
            [FailingRepository("https://one.invalid")], [Dependency.of("g", "a")]
        )

        assert _versions(resolved) == {"g:a:2.3.1"}

    def test_version_lookup_without_cache_aggregates(self, cache_dir):
        offline = [FailingRepository("https://one.invalid"), FailingRepository("https://two.invalid")]

        with pytest.raises(DownloadError) as exc_info:
            DependencyDownloader(cache_dir).resolve_many(offline, [Dependency.of("g", "a")])

        assert len(exc_info.value.causes) == 2
        assert "latest version" in str(exc_info.value)

    def test_fetch_failure_for_known_version_does_not_use_cache(self, mirror, cache_dir):
        mirror.publish("g", "a", "1.0")
        DependencyDownloader(cache_dir).resolve_many([mirror.repository()], [Dependency.of("g", "a", "1.0")])

        with pytest.raises(DownloadError):
            DependencyDownloader(cache_dir).resolve_many(
                [FailingRepository("https://one.invalid")], [Dependency.of("g", "a", "2.0")]
            )

    def test_failure_in_child_discards_partial_results(self, mirror, cache_dir):
        mirror.publish("g", "a", "1", dependencies=[dep("g", "missing", "1")])
        sink = MagicMock()

        with pytest.raises(DownloadError):
            DependencyDownloader(cache_dir, sink=sink).resolve_many(
                [mirror.repository()], [Dependency.of("g", "a", "1")]
            )
        sink.assert_not_called()

    def test_malformed_descriptor_is_a_parse_error(self, mirror, cache_dir):
        mirror.publish("g", "a", "1", pom="<project><dependencies>")

        with pytest.raises(ParseError):
            DependencyDownloader(cache_dir).resolve_many([mirror.repository()], [Dependency.of("g", "a", "1")])

    def test_sink_failure_is_not_fatal(self, mirror, cache_dir):
        mirror.publish("g", "a", "1")
        sink = MagicMock(side_effect=RuntimeError("host refused"))

        resolved = DependencyDownloader(cache_dir, sink=sink).resolve_many(
            [mirror.repository()], [Dependency.of("g", "a", "1")]
        )

        assert len(resolved) == 1
        sink.assert_called_once()


class TestResolveFromDescriptor:
    """Entry points that start from a POM."""

    def test_uses_own_and_declared_repositories(self, mirror, second_mirror, cache_dir, tmp_path):
        mirror.publish("g", "a", "1")
        second_mirror.publish("g", "b", "1")
        project = tmp_path / "pom.xml"
        project.write_text(make_pom("me", "app", "0.1", repositories=[second_mirror.url], dependencies=[
            dep("g", "a", "1"),
            dep("g", "b", "1", scope="runtime"),
            dep("g", "t", "1", scope="test"),
        ]))
        downloader = DependencyDownloader(cache_dir, repositories=[mirror.repository()])

        from_file = downloader.resolve_from_file(project)
        from_descriptor = downloader.resolve_from_descriptor(parse_pom(project))

        assert _versions(from_file) == {"g:a:1", "g:b:1"}
        assert _versions(from_descriptor) == _versions(from_file)

    def test_explicit_scopes(self, mirror, cache_dir):
        mirror.publish("g", "t", "1")
        pom = make_pom("me", "app", "0.1", dependencies=[dep("g", "t", "1", scope="test")])
        downloader = DependencyDownloader(cache_dir, repositories=[mirror.repository()])

        resolved = downloader.resolve_from_file(pom, scopes=[DependencyScope.TEST])

        assert _versions(resolved) == {"g:t:1"}


class TestHelpers:
    """Small helpers and configuration."""

    def test_merge_repositories_keeps_order_and_dedupes(self):
        merged = merge_repositories([Repository("a"), Repository("b")], [Repository("b/"), Repository("c")])
        assert [r.url for r in merged] == ["a", "b", "c"]

    def test_defaults(self):
        downloader = DependencyDownloader()
        assert str(downloader.base_dir) == "libs"
        assert downloader.scopes == {DependencyScope.RUNTIME, DependencyScope.COMPILE}
        assert downloader.ignore_optional is True
        assert downloader.verbose is True

    def test_add_repository_ignores_duplicates(self):
        downloader = DependencyDownloader()
        downloader.add_repository(Repository("https://x.example"))
        downloader.add_repository(Repository("https://x.example/"))
        assert len(downloader.repositories) == 1
