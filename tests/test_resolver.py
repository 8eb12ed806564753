"""Tests for dialect/container resolution and pre-flight checks."""

import logging
import textwrap
from pathlib import Path

import pytest

from helpers import FakeRunner

from wp_backup.config.models import ToolSettings
from wp_backup.environment.models import Dialect, EnvironmentDescriptor
from wp_backup.environment.probes import (
    ClientBinaryProbe,
    PackageManifestProbe,
    ProcessTableProbe,
    VersionReportProbe,
)
from wp_backup.environment.resolver import (
    check_dependencies,
    detect_compose_dialect,
    ensure_container_running,
    find_container_name,
    resolve_container,
    resolve_environment,
    resolve_native_dialect,
)
from wp_backup.errors import (
    ContainerNotRunning,
    ContainerResolutionError,
    DependencyMissing,
    EnvironmentDetectionFailed,
)

MIXED_COMPOSE = textwrap.dedent(
    """\
    services:
      legacy:
        image: mysql:5.7
        container_name: legacy-mysql
      db:
        image: mariadb:10.11
        container_name: blog-mariadb
      wordpress:
        image: wordpress:latest
        environment:
          WORDPRESS_DB_HOST: db
    """
)


def _containerized(compose_dir: Path | None) -> EnvironmentDescriptor:
    return EnvironmentDescriptor(is_containerized=True, compose_directory=compose_dir)


# ------------------------------------------------------------------
# Compose text analysis
# ------------------------------------------------------------------


class TestDetectComposeDialect:
    def test_mariadb_wins_when_both_present(self) -> None:
        assert detect_compose_dialect(MIXED_COMPOSE) is Dialect.MARIADB

    def test_mysql_only(self) -> None:
        assert detect_compose_dialect("services:\n  db:\n    image: MySQL:8\n") is Dialect.MYSQL

    def test_neither(self) -> None:
        assert detect_compose_dialect("services:\n  db:\n    image: postgres\n") is None


class TestFindContainerName:
    """container_name lookup around the dialect keyword."""

    def test_after_image_line(self) -> None:
        assert find_container_name(MIXED_COMPOSE, Dialect.MARIADB) == "blog-mariadb"

    def test_picks_the_requested_dialect(self) -> None:
        assert find_container_name(MIXED_COMPOSE, Dialect.MYSQL) == "legacy-mysql"

    def test_before_image_line_and_quoted(self) -> None:
        text = textwrap.dedent(
            """\
            services:
              database:
                container_name: "shop-db"
                restart: always
                image: mysql:8.0
            """
        )
        assert find_container_name(text, Dialect.MYSQL) == "shop-db"

    def test_neighbouring_service_name_not_used(self) -> None:
        text = textwrap.dedent(
            """\
            services:
              wordpress:
                image: wordpress
                container_name: blog-web
                environment:
                  WORDPRESS_DB_HOST: db
              db:
                image: mysql:8
            """
        )
        assert find_container_name(text, Dialect.MYSQL) == "db"

    def test_database_service_named_after_dialect(self) -> None:
        text = textwrap.dedent(
            """\
            services:
              wordpress:
                image: wordpress:latest
                container_name: wp-web
                environment:
                  WORDPRESS_DB_HOST: mariadb
              mariadb:
                image: mariadb:11
            """
        )
        assert find_container_name(text, Dialect.MARIADB) == "mariadb"

    def test_without_image_line_uses_nearby_name(self) -> None:
        text = textwrap.dedent(
            """\
            services:
              database:
                build: ./mariadb
                container_name: custom-db
            """
        )
        assert find_container_name(text, Dialect.MARIADB) == "custom-db"

    def test_outside_window_falls_back_to_service_key(self) -> None:
        env_lines = "".join(f"      VAR_{i}: value\n" for i in range(12))
        text = (
            "services:\n"
            "  database:\n"
            "    image: mariadb:11\n"
            "    environment:\n"
            f"{env_lines}"
            "    container_name: far-away\n"
        )
        assert find_container_name(text, Dialect.MARIADB) == "database"
        assert find_container_name(text, Dialect.MARIADB, window_after=20) == "far-away"

    def test_keyword_absent(self) -> None:
        assert find_container_name("services:\n  web:\n    image: nginx\n", Dialect.MARIADB) is None


class TestResolveContainer:
    """Compose-file based resolution and its failure modes."""

    def test_resolves_dialect_and_name(self, tmp_path: Path) -> None:
        (tmp_path / "docker-compose.yml").write_text(MIXED_COMPOSE)
        env = resolve_container(_containerized(tmp_path), ToolSettings())
        assert env.dialect is Dialect.MARIADB
        assert env.container_name == "blog-mariadb"
        assert env.compose_directory == tmp_path

    def test_dialect_override_must_be_in_compose(self, tmp_path: Path) -> None:
        (tmp_path / "compose.yaml").write_text("services:\n  db:\n    image: mariadb\n")
        with pytest.raises(EnvironmentDetectionFailed, match="MySQL"):
            resolve_container(_containerized(tmp_path), ToolSettings(), Dialect.MYSQL)

    def test_dialect_override_selects_container(self, tmp_path: Path) -> None:
        (tmp_path / "docker-compose.yml").write_text(MIXED_COMPOSE)
        env = resolve_container(_containerized(tmp_path), ToolSettings(), Dialect.MYSQL)
        assert env.container_name == "legacy-mysql"

    def test_degraded_detection_requires_compose_dir(self) -> None:
        with pytest.raises(ContainerResolutionError, match="compose"):
            resolve_container(_containerized(None), ToolSettings())

    def test_missing_compose_file(self, tmp_path: Path) -> None:
        with pytest.raises(ContainerResolutionError):
            resolve_container(_containerized(tmp_path), ToolSettings())

    def test_no_dialect_in_compose(self, tmp_path: Path) -> None:
        (tmp_path / "docker-compose.yml").write_text("services:\n  db:\n    image: postgres\n")
        with pytest.raises(EnvironmentDetectionFailed):
            resolve_container(_containerized(tmp_path), ToolSettings())

    def test_no_container_name_derivable(self, tmp_path: Path) -> None:
        (tmp_path / "docker-compose.yml").write_text("image: mariadb\n")
        with pytest.raises(ContainerResolutionError, match="container name"):
            resolve_container(_containerized(tmp_path), ToolSettings())


# ------------------------------------------------------------------
# Native probes
# ------------------------------------------------------------------


class TestNativeProbes:
    def test_process_table_mariadb(self) -> None:
        runner = FakeRunner(binaries={"pgrep"}).on(["pgrep", "-f", "mariadb|mysqld.*mariadb"])
        assert ProcessTableProbe().detect(runner) is Dialect.MARIADB

    def test_process_table_mysql(self) -> None:
        runner = FakeRunner(binaries={"pgrep"}).on(["pgrep", "-f", "mysqld"])
        assert ProcessTableProbe().detect(runner) is Dialect.MYSQL

    def test_process_table_without_pgrep(self) -> None:
        runner = FakeRunner()
        assert ProcessTableProbe().detect(runner) is None
        assert runner.calls == []

    def test_package_manifest(self) -> None:
        runner = FakeRunner(binaries={"dpkg"}).on(
            ["dpkg", "-l"], stdout="ii  mariadb-server  1:10.11.6  amd64  MariaDB database server\n"
        )
        assert PackageManifestProbe().detect(runner) is Dialect.MARIADB

    def test_package_manifest_mysql_client(self) -> None:
        runner = FakeRunner(binaries={"dpkg"}).on(
            ["dpkg", "-l"], stdout="ii  mysql-client-8.0  8.0.36  amd64  MySQL client\n"
        )
        assert PackageManifestProbe().detect(runner) is Dialect.MYSQL

    def test_client_binary(self) -> None:
        assert ClientBinaryProbe().detect(FakeRunner(binaries={"mariadb-dump"})) is Dialect.MARIADB
        assert ClientBinaryProbe().detect(FakeRunner(binaries={"mysql"})) is None

    @pytest.mark.parametrize(
        "output, expected",
        [
            ("mysql  Ver 15.1 Distrib 10.6.12-MariaDB, for debian-linux-gnu", Dialect.MARIADB),
            ("mysql  Ver 8.0.36 for Linux on x86_64 (MySQL Community Server - GPL)", Dialect.MYSQL),
            ("Ver 14.14 Distrib 5.7.44, for Linux (x86_64)", Dialect.MYSQL),
        ],
    )
    def test_version_report(self, output: str, expected: Dialect) -> None:
        runner = FakeRunner(binaries={"mysql"}).on(["mysql", "--version"], stdout=output)
        assert VersionReportProbe().detect(runner) is expected

    def test_version_report_command_fails(self) -> None:
        runner = FakeRunner(binaries={"mysql"}).on(["mysql", "--version"], returncode=1)
        assert VersionReportProbe().detect(runner) is None


class TestResolveNativeDialect:
    def test_first_conclusive_probe_wins(self) -> None:
        runner = (
            FakeRunner(binaries={"pgrep", "dpkg"})
            .on(["pgrep", "-f", "mysqld"])
            .on(["dpkg", "-l"], stdout="ii  mariadb-server\n")
        )
        assert resolve_native_dialect(runner) == (Dialect.MYSQL, True)
        assert not runner.ran("dpkg")

    def test_falls_through_to_later_probes(self) -> None:
        runner = FakeRunner(binaries={"pgrep", "dpkg"}).on(
            ["dpkg", "-l"], stdout="ii  mariadb-client\n"
        )
        assert resolve_native_dialect(runner) == (Dialect.MARIADB, True)

    def test_fallback_is_low_confidence_mysql(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="wp_backup"):
            dialect, confident = resolve_native_dialect(FakeRunner())
        assert dialect is Dialect.MYSQL
        assert confident is False
        assert "low confidence" in caplog.text


class TestResolveEnvironment:
    def test_native_override_skips_probes(self) -> None:
        runner = FakeRunner(binaries={"pgrep"})
        env = resolve_environment(
            EnvironmentDescriptor(is_containerized=False),
            runner,
            ToolSettings(),
            dialect_override=Dialect.MARIADB,
        )
        assert env.dialect is Dialect.MARIADB
        assert env.dialect_confident
        assert runner.calls == []

    def test_native_fallback_marks_low_confidence(self) -> None:
        env = resolve_environment(
            EnvironmentDescriptor(is_containerized=False), FakeRunner(), ToolSettings()
        )
        assert env.dialect is Dialect.MYSQL
        assert not env.dialect_confident

    def test_containerized_uses_compose(self, tmp_path: Path) -> None:
        (tmp_path / "docker-compose.yml").write_text(MIXED_COMPOSE)
        runner = FakeRunner()
        env = resolve_environment(_containerized(tmp_path), runner, ToolSettings())
        assert env.container_name == "blog-mariadb"
        assert runner.calls == []


# ------------------------------------------------------------------
# Pre-flight
# ------------------------------------------------------------------


class TestEnsureContainerRunning:
    def test_running(self) -> None:
        runner = FakeRunner().on(["docker", "ps"], stdout="blog-web\nblog-mariadb\n")
        ensure_container_running("blog-mariadb", runner, ToolSettings())

    def test_name_must_match_exactly(self) -> None:
        runner = FakeRunner().on(["docker", "ps"], stdout="blog-mariadb-old\n")
        with pytest.raises(ContainerNotRunning, match="blog-mariadb"):
            ensure_container_running("blog-mariadb", runner, ToolSettings())

    def test_docker_unavailable(self) -> None:
        runner = FakeRunner().on(["docker", "ps"], returncode=1)
        with pytest.raises(ContainerNotRunning):
            ensure_container_running("blog-mariadb", runner, ToolSettings())


class TestCheckDependencies:
    """Required tools per path and operation."""

    def test_containerized_with_compose_plugin(self) -> None:
        runner = FakeRunner(binaries={"docker"}).on(["docker", "compose", "version"])
        check_dependencies(_containerized(Path("/srv")), "backup", runner, ToolSettings())

    def test_containerized_with_standalone_compose(self) -> None:
        runner = FakeRunner(binaries={"docker", "docker-compose"})
        check_dependencies(_containerized(Path("/srv")), "restore", runner, ToolSettings())

    def test_containerized_without_compose(self) -> None:
        runner = FakeRunner(binaries={"docker"})
        with pytest.raises(DependencyMissing) as exc_info:
            check_dependencies(_containerized(Path("/srv")), "backup", runner, ToolSettings())
        assert exc_info.value.tools == ["docker-compose"]

    def test_containerized_without_docker(self) -> None:
        with pytest.raises(DependencyMissing, match="docker"):
            check_dependencies(_containerized(Path("/srv")), "backup", FakeRunner(), ToolSettings())

    def test_native_backup_needs_dump_tool(self) -> None:
        env = EnvironmentDescriptor(is_containerized=False, dialect=Dialect.MARIADB)
        runner = FakeRunner(binaries={"mariadb"})
        with pytest.raises(DependencyMissing, match="mariadb-dump"):
            check_dependencies(env, "backup", runner, ToolSettings())
        check_dependencies(env, "restore", runner, ToolSettings())

    def test_native_restore_needs_client(self) -> None:
        env = EnvironmentDescriptor(is_containerized=False, dialect=Dialect.MYSQL)
        runner = FakeRunner(binaries={"mysqldump"})
        check_dependencies(env, "backup", runner, ToolSettings())
        with pytest.raises(DependencyMissing, match="mysql"):
            check_dependencies(env, "restore", runner, ToolSettings())
