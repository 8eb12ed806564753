"""Build, verify, unpack and validate backup archives.

Archives are zip files written with ``zipfile`` (deflate).  Unix permission
bits are stored in each entry's ``external_attr`` and symlinks are stored as
link entries, so an unpacked tree matches the source tree as closely as the
platform allows.

Usage:
    from wp_backup.backup.archive import (
        package_archive,
        verify_archive,
        extract_archive,
        validate_archive,
    )

    size = package_archive(staging_dir, Path("20250530_143022_wordpress.zip"))
    if not verify_archive(Path("20250530_143022_wordpress.zip")):
        ...

    extracted = extract_archive(Path("backup.zip"), tmp_dir)
    print(extracted.site_dir)
"""

import logging
import os
import shutil
import stat
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path

from wp_backup.backup.models import (
    ARCHIVE_FILES_DIR,
    ARCHIVE_MANIFEST_FILE,
    ARCHIVE_SQL_FILE,
    ExtractedArchive,
)
from wp_backup.environment.models import EnvironmentDescriptor
from wp_backup.errors import InvalidArchive, PackagingError
from wp_backup.site_config import CONFIG_FILENAME, SiteConfiguration

logger = logging.getLogger(__name__)

# Bit 4 of the low byte marks a directory for DOS-era readers
_MSDOS_DIR_FLAG = 0x10


# ============================================================================
# Manifest
# ============================================================================


def write_manifest(
    path: Path,
    site_dir: Path,
    environment: EnvironmentDescriptor,
    site_config: SiteConfiguration,
    created_at: datetime,
) -> None:
    """Write the human-readable ``backup_info.txt``.

    Informational only: restore displays it but never parses it.  The
    database password is deliberately absent.
    """
    dialect = environment.dialect.label if environment.dialect else "unknown"
    lines = [
        "WordPress Backup Information",
        "============================",
        "",
        f"Backup Date: {created_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"WordPress Directory: {site_dir}",
        f"Environment: {'Docker' if environment.is_containerized else 'Native'}",
    ]
    if environment.is_containerized:
        lines.append(f"Docker-compose Directory: {environment.compose_directory or 'unknown'}")
        lines.append(f"Database Container: {environment.container_name}")
    lines += [
        f"Database Type: {dialect}"
        + ("" if environment.dialect_confident else " (auto-detection uncertain)"),
        f"Database Name: {site_config.db_name}",
        f"Database User: {site_config.db_user}",
        f"Database Host: {site_config.db_host}",
        "",
        "Backup Contents:",
        f"- {ARCHIVE_FILES_DIR}/: Complete WordPress file structure",
        f"- {ARCHIVE_SQL_FILE}: Database dump",
        f"- {ARCHIVE_MANIFEST_FILE}: This information file",
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


# ============================================================================
# Packaging
# ============================================================================


def _add_symlink(zf: zipfile.ZipFile, path: Path, arcname: str) -> None:
    info = zipfile.ZipInfo(arcname)
    info.create_system = 3  # Unix, so readers honour the mode bits
    info.external_attr = (stat.S_IFLNK | 0o777) << 16
    zf.writestr(info, os.readlink(path))


def _add_directory(zf: zipfile.ZipFile, path: Path, arcname: str) -> None:
    info = zipfile.ZipInfo(arcname.rstrip("/") + "/")
    info.create_system = 3
    mode = stat.S_IMODE(path.stat().st_mode)
    info.external_attr = ((stat.S_IFDIR | mode) << 16) | _MSDOS_DIR_FLAG
    zf.writestr(info, b"")


def package_archive(staging_dir: Path, archive_path: Path) -> int:
    """Zip the contents of ``staging_dir`` into ``archive_path``.

    Entries are stored relative to ``staging_dir``.  Symlinks are stored as
    links (never followed); sockets and other special files are skipped.

    Args:
        staging_dir: Directory holding ``files/``, ``database.sql`` and the
            optional manifest.
        archive_path: Destination zip file (overwritten if present).

    Returns:
        Size of the archive in bytes.

    Raises:
        PackagingError: If the archive cannot be written.  A partially
            written archive is removed.
    """
    logger.info("Creating final backup archive...")
    try:
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for dirpath, dirnames, filenames in os.walk(staging_dir):
                dirnames.sort()
                current = Path(dirpath)
                rel_dir = current.relative_to(staging_dir)
                if rel_dir != Path("."):
                    _add_directory(zf, current, rel_dir.as_posix())

                # os.walk lists symlinked directories but does not descend
                for name in list(dirnames):
                    path = current / name
                    if path.is_symlink():
                        _add_symlink(zf, path, (rel_dir / name).as_posix())
                        dirnames.remove(name)

                for name in sorted(filenames):
                    path = current / name
                    arcname = (rel_dir / name).as_posix()
                    if path.is_symlink():
                        _add_symlink(zf, path, arcname)
                    elif path.is_file():
                        zf.write(path, arcname)
                    else:
                        logger.debug("Skipping special file %s", path)
    except (OSError, zipfile.LargeZipFile) as e:
        archive_path.unlink(missing_ok=True)
        raise PackagingError(f"Failed to create backup archive: {e}") from e

    size = archive_path.stat().st_size
    logger.info("Total backup size: %d bytes", size)
    return size


def verify_archive(archive_path: Path) -> bool:
    """Re-read every entry and check its CRC.

    Returns:
        ``True`` if all entries are intact, ``False`` otherwise (including
        when the file cannot be opened as a zip).
    """
    try:
        with zipfile.ZipFile(archive_path) as zf:
            bad_entry = zf.testzip()
    except (zipfile.BadZipFile, OSError) as e:
        logger.debug("Integrity check could not open %s: %s", archive_path, e)
        return False
    if bad_entry is not None:
        logger.debug("Integrity check failed at entry %s", bad_entry)
        return False
    return True


# ============================================================================
# Extraction and validation
# ============================================================================


def _safe_target(dest: Path, member: str) -> Path:
    """Destination path for ``member``, rejecting absolute or escaping names."""
    if member.startswith("/") or os.path.isabs(member):
        raise InvalidArchive(f"Archive entry has an absolute path: {member}")
    target = os.path.normpath(os.path.join(dest, member))
    if os.path.commonpath([str(dest), target]) != str(dest):
        raise InvalidArchive(f"Archive entry escapes the extraction directory: {member}")
    return Path(target)


def _check_parent(dest: Path, target: Path) -> None:
    # A previously extracted symlink must not redirect writes outside dest
    parent = os.path.realpath(target.parent)
    if os.path.commonpath([str(dest), parent]) != str(dest):
        raise InvalidArchive(f"Archive entry escapes the extraction directory: {target}")


def _extract_members(zf: zipfile.ZipFile, dest: Path) -> None:
    dir_modes: list[tuple[Path, int]] = []

    for info in zf.infolist():
        target = _safe_target(dest, info.filename)
        _check_parent(dest, target)
        mode = info.external_attr >> 16

        if stat.S_ISLNK(mode):
            target.parent.mkdir(parents=True, exist_ok=True)
            link_target = zf.read(info).decode("utf-8")
            if target.is_symlink() or target.exists():
                target.unlink()
            os.symlink(link_target, target)
        elif info.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            if stat.S_IMODE(mode):
                dir_modes.append((target, stat.S_IMODE(mode)))
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            if stat.S_IMODE(mode):
                os.chmod(target, stat.S_IMODE(mode))

    # Deepest first, after all files are in place (a read-only dir blocks writes)
    for path, mode in reversed(dir_modes):
        os.chmod(path, mode)


def find_site_root(files_dir: Path) -> Path:
    """Locate the WordPress root inside an extracted ``files/`` tree.

    The shallowest ``wp-config.php`` wins, so a config file nested inside a
    plugin or a second install deeper in the tree is ignored.  Two or more
    at the same shallowest depth are ambiguous and rejected.

    Raises:
        InvalidArchive: If there is no candidate or the choice is ambiguous.
    """
    candidates = [p for p in files_dir.rglob(CONFIG_FILENAME) if p.is_file()]
    if not candidates:
        raise InvalidArchive(f"{CONFIG_FILENAME} not found in backup files")

    depth = min(len(p.relative_to(files_dir).parts) for p in candidates)
    shallowest = sorted(
        p for p in candidates if len(p.relative_to(files_dir).parts) == depth
    )
    if len(shallowest) > 1:
        roots = ", ".join(str(p.parent.relative_to(files_dir)) for p in shallowest)
        raise InvalidArchive(f"Backup contains several WordPress roots: {roots}")
    if len(candidates) > 1:
        logger.warning(
            "Backup contains nested %s files; using the top-level one",
            CONFIG_FILENAME,
        )
    return shallowest[0].parent


def extract_archive(archive_path: Path, dest: Path) -> ExtractedArchive:
    """Unpack and validate a backup archive.

    Validation order: the archive opens and extracts cleanly,
    ``database.sql`` exists and is non-empty, ``files/`` exists, and a
    WordPress root can be located under it.  Nothing outside ``dest`` is
    touched.

    Args:
        archive_path: Zip file produced by ``package_archive``.
        dest: Empty scratch directory to extract into.

    Returns:
        ``ExtractedArchive`` describing the unpacked tree.

    Raises:
        InvalidArchive: On any validation failure.
    """
    if not archive_path.is_file():
        raise InvalidArchive(f"Backup file does not exist: {archive_path}")
    if not zipfile.is_zipfile(archive_path):
        raise InvalidArchive(f"Invalid or corrupted backup file: {archive_path}")

    dest = Path(os.path.realpath(dest))
    logger.info("Extracting backup file...")
    try:
        with zipfile.ZipFile(archive_path) as zf:
            bad_entry = zf.testzip()
            if bad_entry is not None:
                raise InvalidArchive(f"Corrupted entry in backup: {bad_entry}")
            _extract_members(zf, dest)
    except (zipfile.BadZipFile, OSError, UnicodeDecodeError) as e:
        raise InvalidArchive(f"Failed to extract backup file: {e}") from e

    sql_path = dest / ARCHIVE_SQL_FILE
    if not sql_path.is_file():
        raise InvalidArchive(f"{ARCHIVE_SQL_FILE} not found in backup")
    if sql_path.stat().st_size == 0:
        raise InvalidArchive(f"{ARCHIVE_SQL_FILE} in backup is empty")

    files_dir = dest / ARCHIVE_FILES_DIR
    if not files_dir.is_dir():
        raise InvalidArchive(f"{ARCHIVE_FILES_DIR} directory not found in backup")

    site_dir = find_site_root(files_dir)
    logger.info("WordPress files found in: %s", site_dir.relative_to(dest))

    manifest_path = dest / ARCHIVE_MANIFEST_FILE
    manifest_text = None
    if manifest_path.is_file():
        manifest_text = manifest_path.read_text(encoding="utf-8", errors="replace")

    return ExtractedArchive(
        root=dest,
        sql_path=sql_path,
        files_dir=files_dir,
        site_dir=site_dir,
        manifest_text=manifest_text,
    )


def validate_archive(archive_path: str | Path) -> dict:
    """Check an archive's structure without touching any live site.

    Extracts into a private temporary directory that is always removed.

    Args:
        archive_path: Path to the backup zip.

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]), ``warnings``
        (list[str]), ``site_root`` (path of the WordPress root inside the
        archive, or ``None``) and ``manifest`` (text or ``None``).

    Example:
        report = validate_archive("backups/20250530_143022_wordpress.zip")
        if not report["valid"]:
            raise SystemExit(1)
    """
    errors: list[str] = []
    warnings: list[str] = []
    site_root: str | None = None
    manifest: str | None = None

    with tempfile.TemporaryDirectory(prefix="wp-backup-validate-") as tmp:
        try:
            extracted = extract_archive(Path(archive_path), Path(tmp))
        except InvalidArchive as e:
            errors.append(str(e))
        else:
            site_root = extracted.site_dir.relative_to(extracted.root).as_posix()
            manifest = extracted.manifest_text
            if manifest is None:
                warnings.append(
                    f"No {ARCHIVE_MANIFEST_FILE}; the environment will be "
                    "re-detected on restore"
                )

    return {
        "valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "site_root": site_root,
        "manifest": manifest,
    }
