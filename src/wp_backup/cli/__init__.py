"""Command-line interface for WordPress backup and restore.

Usage:
    wp-backup backup -w /var/www/html/wordpress
    wp-backup backup -w /var/www/html/wordpress -o /backups
    wp-backup backup -w /srv/site/html -d /srv/site          # compose directory
    wp-backup backup -w /var/www/html/wordpress -d mariadb   # native dialect
    wp-backup restore -b /backups/20250530_143022_wordpress.zip -w /var/www/html/wordpress
    wp-backup validate /backups/20250530_143022_wordpress.zip

Commands:
    backup    - Back up site files and database into a zip archive
    restore   - Restore site files and database from an archive
    validate  - Check an archive's structure without restoring it

Exit status is 0 on success and 1 on any failure.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from wp_backup.backup.archive import validate_archive
from wp_backup.backup.backup_restore import backup_site, restore_site
from wp_backup.config.loader import load_settings
from wp_backup.config.models import ToolSettings
from wp_backup.environment.models import Dialect
from wp_backup.errors import WPBackupError
from wp_backup.logging_config import setup_logging

console = Console()
logger = logging.getLogger("wp_backup.cli")


# ============================================================================
# Argument helpers
# ============================================================================


def _parse_override(value: str | None) -> tuple[Path | None, Dialect | None]:
    """Interpret ``-d``: a dialect name or a compose directory.

    Returns:
        ``(compose_dir, dialect)``; at most one is set.

    Raises:
        ValueError: If the value is neither a dialect nor an existing
            directory.
    """
    if not value:
        return None, None
    try:
        return None, Dialect(value.strip().lower())
    except ValueError:
        pass
    compose_dir = Path(value).expanduser()
    if not compose_dir.is_dir():
        raise ValueError(
            f"-d must be 'mariadb', 'mysql' or an existing compose directory: {value}"
        )
    return compose_dir, None


def _load_settings(args: argparse.Namespace) -> ToolSettings:
    return load_settings(getattr(args, "config", None))


def _raise_on_sigterm(signum, frame):
    # Unwinds through the temporary-directory context managers
    raise SystemExit(1)


# ============================================================================
# Command implementations
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Back up a site.

    Args:
        args: Parsed arguments with wordpress_dir, output_dir, override.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        settings = _load_settings(args)
        compose_dir, dialect = _parse_override(args.override)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        result = backup_site(
            args.wordpress_dir,
            args.output_dir,
            compose_dir=compose_dir,
            dialect=dialect,
            settings=settings,
        )
    except WPBackupError as e:
        logger.error("%s", e)
        console.print("[bold red]x[/bold red] Backup failed")
        return 1

    console.print()
    console.print(
        f"[bold green]v[/bold green] Backup created: "
        f"[bold cyan]{result.archive_path}[/bold cyan]"
    )
    console.print(f"  Environment: {result.environment.describe()}")
    console.print(f"  Size: {result.archive_size} bytes")
    if not result.verified:
        console.print("  Integrity check: [yellow]FAILED (archive kept)[/yellow]")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore a site from an archive.

    Args:
        args: Parsed arguments with backup_file, wordpress_dir, override.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        settings = _load_settings(args)
        compose_dir, dialect = _parse_override(args.override)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        result = restore_site(
            args.backup_file,
            args.wordpress_dir,
            compose_dir=compose_dir,
            dialect=dialect,
            settings=settings,
        )
    except WPBackupError as e:
        logger.error("%s", e)
        console.print("[bold red]x[/bold red] Restore failed")
        return 1

    console.print()
    console.print(
        f"[bold green]v[/bold green] Restored to: "
        f"[bold cyan]{result.site_dir}[/bold cyan]"
    )
    console.print(f"  Database: {result.database_name}")
    console.print(f"  Environment: {result.environment.describe()}")
    if result.previous_copy:
        console.print(f"  Previous files kept at: [yellow]{result.previous_copy}[/yellow]")
    console.print(
        "\n[dim]Verify the installation and update file permissions if needed.[/dim]"
    )
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate an archive without restoring it.

    Args:
        args: Parsed arguments with backup_file.

    Returns:
        0 if the archive is valid, 1 otherwise.
    """
    report = validate_archive(args.backup_file)

    console.print(f"Validating: [bold]{args.backup_file}[/bold]")

    if report["errors"]:
        console.print(f"\n[bold red]x[/bold red] Found {len(report['errors'])} errors:")
        for error in report["errors"]:
            console.print(f"   - {error}")

    if report["warnings"]:
        console.print(f"\n[yellow]Found {len(report['warnings'])} warnings:[/yellow]")
        for warning in report["warnings"]:
            console.print(f"   - {warning}")

    if not report["valid"]:
        console.print("\n[bold red]x[/bold red] Backup is invalid")
        return 1

    table = Table(title="Archive", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("WordPress root", report["site_root"])
    table.add_row("Manifest", "present" if report["manifest"] else "absent")
    console.print(table)
    if report["manifest"]:
        console.print(Panel(report["manifest"].rstrip(), title="backup_info.txt"))

    console.print("\n[bold green]v[/bold green] Backup is valid")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with status 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="wp-backup",
        description=(
            "WordPress backup and restore. Auto-detects Docker (compose) or "
            "native MariaDB/MySQL database services."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  wp-backup backup -w /var/www/html/wordpress -o /backups
  wp-backup backup -w /home/user/website -d mysql
  wp-backup restore -b /backups/20250530_143022_wordpress.zip -w /var/www/html/wordpress
  wp-backup validate /backups/20250530_143022_wordpress.zip

Output format: [timestamp]_[wordpress-folder-name].zip
        """,
    )
    parser.add_argument(
        "--config",
        help="Path to a TOML settings file (default: $WP_BACKUP_CONFIG or ./wp-backup.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    override_help = (
        "Compose directory (forces Docker mode) or database type "
        "'mariadb'/'mysql' (skips auto-detection)"
    )

    # backup command
    p_backup = subparsers.add_parser("backup", help="Back up site files and database")
    p_backup.add_argument(
        "-w",
        dest="wordpress_dir",
        required=True,
        help="Path to the WordPress installation directory",
    )
    p_backup.add_argument(
        "-o",
        dest="output_dir",
        default=None,
        help="Backup output directory (default: current directory)",
    )
    p_backup.add_argument("-d", dest="override", default=None, help=override_help)
    p_backup.set_defaults(func=cmd_backup)

    # restore command
    p_restore = subparsers.add_parser(
        "restore",
        help="Restore site files and database from a backup",
        description=(
            "Restore both files and database. Existing files are moved to "
            "<dir>.backup.<timestamp>; database content is replaced."
        ),
    )
    p_restore.add_argument(
        "-b",
        dest="backup_file",
        required=True,
        help="Path to the backup ZIP file",
    )
    p_restore.add_argument(
        "-w",
        dest="wordpress_dir",
        required=True,
        help="Path to the WordPress installation directory",
    )
    p_restore.add_argument("-d", dest="override", default=None, help=override_help)
    p_restore.set_defaults(func=cmd_restore)

    # validate command
    p_validate = subparsers.add_parser("validate", help="Validate a backup archive")
    p_validate.add_argument("backup_file", help="Path to the backup ZIP file")
    p_validate.set_defaults(func=cmd_validate)

    return parser


def main() -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for any failure).
    """
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)
    previous_handler = signal.signal(signal.SIGTERM, _raise_on_sigterm)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 1
    finally:
        signal.signal(signal.SIGTERM, previous_handler)


if __name__ == "__main__":
    sys.exit(main())
