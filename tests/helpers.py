"""Test helpers: a scripted command runner and synthetic WordPress sites."""

from pathlib import Path

from wp_backup.shell import CommandResult

WP_CONFIG = """<?php
/** The name of the database for WordPress */
define( 'DB_NAME', 'wpdb' );

/** Database username */
define( 'DB_USER', 'wpuser' );

/** Database password */
define( "DB_PASSWORD", "s3cret" );

/** Database hostname */
define( 'DB_HOST', 'localhost' );

$table_prefix = 'wp_';
"""

DUMP_SQL = b"-- MariaDB dump\nCREATE TABLE wp_posts (ID bigint);\nINSERT INTO wp_posts VALUES (1);\n"


class FakeRunner:
    """Scriptable stand-in for ``CommandRunner``.

    ``binaries`` controls ``which``.  Rules registered with ``on`` match by
    argument-vector prefix; the most recently added match wins.  Unmatched
    commands "fail" with return code 1, which every probe treats as
    inconclusive.  A rule given ``raises`` raises that exception instead of
    returning.
    """

    def __init__(self, binaries=()):
        self.binaries = set(binaries)
        self.calls: list[list[str]] = []
        self.stdin_data: list[bytes] = []
        self._rules: list[tuple[list[str], dict]] = []

    def which(self, name):
        return f"/usr/bin/{name}" if name in self.binaries else None

    def on(self, prefix, returncode=0, stdout="", stderr="", write=b"", raises=None):
        rule = {"returncode": returncode, "stdout": stdout, "stderr": stderr, "write": write}
        self._rules.append((list(prefix), {**rule, "raises": raises}))
        return self

    def run(self, args, stdin=None, stdout=None, timeout=None):
        self.calls.append(list(args))
        if stdin is not None:
            self.stdin_data.append(stdin.read())
        for prefix, rule in reversed(self._rules):
            if args[: len(prefix)] == prefix:
                if rule["raises"] is not None:
                    raise rule["raises"]
                if stdout is not None and rule["write"]:
                    stdout.write(rule["write"])
                return CommandResult(
                    returncode=rule["returncode"],
                    stdout=rule["stdout"] if stdout is None else "",
                    stderr=rule["stderr"],
                )
        return CommandResult(returncode=1, stderr=f"{args[0]}: unexpected call")

    def ran(self, program: str) -> bool:
        """True if any call invoked ``program`` (directly or via docker exec)."""
        return any(program in call for call in self.calls)


def make_site(root: Path, name: str = "wordpress", config: str = WP_CONFIG) -> Path:
    """Create a small WordPress tree under ``root``."""
    site = root / name
    (site / "wp-content" / "themes" / "twentytwenty").mkdir(parents=True)
    (site / "wp-content" / "uploads").mkdir()
    (site / "wp-config.php").write_text(config)
    (site / "index.php").write_text("<?php require __DIR__ . '/wp-blog-header.php';\n")
    (site / "wp-content" / "themes" / "twentytwenty" / "style.css").write_text("body { color: #000; }\n")
    (site / "wp-content" / "uploads" / "logo.png").write_bytes(bytes(range(256)) * 4)
    return site


def tree_snapshot(root: Path) -> dict[str, bytes | None]:
    """Relative path -> file bytes (``None`` for directories)."""
    snapshot: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        snapshot[rel] = None if path.is_dir() else path.read_bytes()
    return snapshot


