"""Rewrite a locator literal in test source, with timestamped backups."""

from __future__ import annotations

import pathlib
import shutil
import time

import structlog

from healwright.models.domain import CodeModificationRequest, CodeModificationResult

logger = structlog.get_logger(__name__)

BACKUP_MARKER = ".self-healing-backup."
SEARCH_RADIUS = 3
_QUOTES = "\"'`"
_SWAP = str.maketrans({'"': "'", "'": '"'})


def backup_path_for(file_path: pathlib.Path, timestamp_ms: int) -> pathlib.Path:
    return file_path.with_name(f"{file_path.name}{BACKUP_MARKER}{timestamp_ms}")


def search_order(line_index: int, line_count: int, radius: int = SEARCH_RADIUS) -> list[int]:
    """Target line first, then alternately one above and one below, widening."""
    order = [line_index] if 0 <= line_index < line_count else []
    for distance in range(1, radius + 1):
        for candidate in (line_index - distance, line_index + distance):
            if 0 <= candidate < line_count:
                order.append(candidate)
    return order


def replace_in_line(line: str, original: str, healed: str) -> str | None:
    """Replace the first occurrence of ``original`` in ``line``, tolerating quote style.

    Tried in order: the locator as written, then with single and double
    quotes swapped. When the match sits inside a string literal whose
    delimiter also appears in the healed locator, the healed locator's
    quotes are swapped so the literal stays valid.
    """
    if not original:
        return None
    for variant in dict.fromkeys((original, original.translate(_SWAP))):
        pos = line.find(variant)
        if pos < 0:
            continue
        replacement = healed
        delimiter = line[pos - 1] if pos > 0 else ""
        if delimiter in _QUOTES and delimiter in healed and delimiter != "`":
            replacement = healed.translate(_SWAP)
        return line[:pos] + replacement + line[pos + len(variant) :]
    return None


class CodeModifier:
    """Applies healed locators to test source files.

    Only the single line holding the locator changes. The backup is written
    before the file is modified; a request that cannot be applied leaves
    the file system untouched.
    """

    def apply(self, request: CodeModificationRequest) -> CodeModificationResult:
        path = pathlib.Path(request.file_path)
        for label, locator in (
            ("Original", request.original_locator),
            ("Healed", request.healed_locator),
        ):
            if not locator.strip():
                return CodeModificationResult(
                    success=False,
                    modified_file_path=str(path),
                    error=f"{label} locator must not be empty",
                )
        if not path.is_file():
            return CodeModificationResult(
                success=False,
                modified_file_path=str(path),
                error=f"File not found: {path}",
            )
        try:
            with path.open(encoding="utf-8", newline="") as f:
                # Split on "\n" only; a trailing "\r" stays with its line
                lines = f.read().split("\n")
        except (OSError, UnicodeDecodeError) as e:
            return CodeModificationResult(
                success=False, modified_file_path=str(path), error=f"Cannot read {path}: {e}"
            )

        for index in search_order(request.line_number - 1, len(lines)):
            updated = replace_in_line(
                lines[index], request.original_locator, request.healed_locator
            )
            if updated is not None:
                lines[index] = updated
                return self._write(path, lines, index + 1, request.create_backup)

        logger.warning(
            "locator_not_in_source",
            file=str(path),
            line=request.line_number,
            locator=request.original_locator,
        )
        return CodeModificationResult(
            success=False,
            modified_file_path=str(path),
            error=(
                f"Locator {request.original_locator!r} not found within {SEARCH_RADIUS} "
                f"lines of line {request.line_number}"
            ),
        )

    def _write(
        self, path: pathlib.Path, lines: list[str], line_number: int, create_backup: bool
    ) -> CodeModificationResult:
        backup: pathlib.Path | None = None
        try:
            if create_backup:
                backup = self._create_backup(path)
            with path.open("w", encoding="utf-8", newline="") as f:
                f.write("\n".join(lines))
        except OSError as e:
            return CodeModificationResult(
                success=False,
                modified_file_path=str(path),
                backup_file_path=str(backup) if backup else None,
                error=f"Failed to modify code: {e}",
            )
        logger.info(
            "locator_rewritten",
            file=str(path),
            line=line_number,
            backup=str(backup) if backup else None,
        )
        return CodeModificationResult(
            success=True,
            modified_file_path=str(path),
            backup_file_path=str(backup) if backup else None,
            modified_line=line_number,
        )

    def _create_backup(self, path: pathlib.Path) -> pathlib.Path:
        stamp = int(time.time() * 1000)
        backup = backup_path_for(path, stamp)
        while backup.exists():
            stamp += 1
            backup = backup_path_for(path, stamp)
        shutil.copy2(path, backup)
        return backup

    def list_backups(self, file_path: str | pathlib.Path) -> list[pathlib.Path]:
        """Backups of ``file_path``, newest first."""
        path = pathlib.Path(file_path)
        prefix = f"{path.name}{BACKUP_MARKER}"
        stamped: list[tuple[int, pathlib.Path]] = []
        if not path.parent.is_dir():
            return []
        for entry in path.parent.iterdir():
            suffix = entry.name[len(prefix) :]
            if entry.name.startswith(prefix) and suffix.isdigit():
                stamped.append((int(suffix), entry))
        return [p for _, p in sorted(stamped, key=lambda item: item[0], reverse=True)]

    def restore_from_backup(
        self, backup_path: str | pathlib.Path, target_path: str | pathlib.Path
    ) -> bool:
        try:
            shutil.copy2(backup_path, target_path)
        except OSError as e:
            logger.warning("backup_restore_failed", backup=str(backup_path), error=str(e))
            return False
        logger.info("backup_restored", backup=str(backup_path), target=str(target_path))
        return True

    def cleanup_backups(self, file_path: str | pathlib.Path, keep: int = 5) -> list[pathlib.Path]:
        """Delete all but the ``keep`` newest backups; return what was deleted."""
        removed: list[pathlib.Path] = []
        for backup in self.list_backups(file_path)[max(keep, 0) :]:
            try:
                backup.unlink()
            except OSError as e:
                logger.warning("backup_cleanup_failed", backup=str(backup), error=str(e))
                continue
            removed.append(backup)
        return removed
