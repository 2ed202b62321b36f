"""
Unified diff parsing, application and undo.

A diff is split into per-file patches. A patch whose source is /dev/null creates a
file, one whose target is /dev/null deletes it. Everything else edits a file that
must already be in the session's working set.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from backend import Backend
from tools._common import ToolResult

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_NO_EOL_MARKER = "\\"


class DiffParseError(Exception):
    """Raised when diff text is not a well-formed unified diff"""
    pass


class HunkMismatchError(Exception):
    """Raised when a hunk's context does not match the file it is applied to"""
    pass


@dataclass
class Hunk:
    """One @@ block. Lines keep their ' ', '-' or '+' prefix."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: List[str] = field(default_factory=list)
    old_no_eol: bool = False
    new_no_eol: bool = False

    @property
    def old_lines(self) -> List[str]:
        return [l[1:] for l in self.lines if l[0] in " -"]

    @property
    def new_lines(self) -> List[str]:
        return [l[1:] for l in self.lines if l[0] in " +"]


@dataclass
class FilePatch:
    source: str
    target: str
    hunks: List[Hunk] = field(default_factory=list)

    @property
    def is_creation(self) -> bool:
        return self.source == DEV_NULL

    @property
    def is_deletion(self) -> bool:
        return self.target == DEV_NULL

    @property
    def path(self) -> str:
        """The project path this patch operates on."""
        return self.source if self.is_deletion else self.target


def _clean_header_path(raw: str) -> str:
    # "--- a/foo.py\t2024-01-01 ..." -> "foo.py"
    path = raw.split("\t", 1)[0].strip()
    if path.startswith('"') and path.endswith('"') and len(path) > 1:
        path = path[1:-1]
    if path == DEV_NULL:
        return path
    if path.startswith(("a/", "b/")):
        path = path[2:]
    return path


def parse_unified_diff(text: str) -> List[FilePatch]:
    """Parse unified diff text into file patches.

    Lines outside of file headers and hunks (``diff --git``, ``index``, mode lines,
    prose around the diff) are ignored.
    """
    if not text or not text.strip():
        raise DiffParseError("diff is empty")

    lines = text.replace("\r\n", "\n").split("\n")
    patches: List[FilePatch] = []
    current: Optional[FilePatch] = None
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("--- ") and i + 1 < len(lines) and lines[i + 1].startswith("+++ "):
            current = FilePatch(
                source=_clean_header_path(line[4:]),
                target=_clean_header_path(lines[i + 1][4:]),
            )
            if current.source == DEV_NULL and current.target == DEV_NULL:
                raise DiffParseError("both source and target are /dev/null")
            patches.append(current)
            i += 2
            continue

        m = _HUNK_HEADER_RE.match(line)
        if m:
            if current is None:
                raise DiffParseError(f"hunk header before any file header: {line!r}")
            hunk, i = _read_hunk(m, lines, i + 1)
            current.hunks.append(hunk)
            continue
        i += 1

    if not patches:
        raise DiffParseError("no file headers (---/+++) found")
    for patch in patches:
        if not patch.hunks and not patch.is_deletion:
            raise DiffParseError(f"no hunks for {patch.path}")
    return patches


def _read_hunk(m: "re.Match", lines: List[str], i: int) -> Tuple[Hunk, int]:
    old_count = int(m.group(2)) if m.group(2) is not None else 1
    new_count = int(m.group(4)) if m.group(4) is not None else 1
    hunk = Hunk(
        old_start=int(m.group(1)), old_count=old_count,
        new_start=int(m.group(3)), new_count=new_count,
    )
    old_seen = new_seen = 0
    while i < len(lines) and (old_seen < old_count or new_seen < new_count):
        line = lines[i]
        if line.startswith(_NO_EOL_MARKER):
            _mark_no_eol(hunk)
            i += 1
            continue
        if line == "":
            if i == len(lines) - 1:
                # end of text, not a blank context line
                break
            # editors and models often strip the space from blank context lines
            line = " "
        tag = line[0]
        if tag not in " -+":
            raise DiffParseError(
                f"unexpected line in hunk @@ -{hunk.old_start} +{hunk.new_start} @@: {line!r}"
            )
        if tag in " -":
            old_seen += 1
        if tag in " +":
            new_seen += 1
        hunk.lines.append(line)
        i += 1

    if old_seen != old_count or new_seen != new_count:
        raise DiffParseError(
            f"hunk @@ -{hunk.old_start},{old_count} +{hunk.new_start},{new_count} @@ "
            f"has {old_seen} old and {new_seen} new lines"
        )
    if i < len(lines) and lines[i].startswith(_NO_EOL_MARKER):
        _mark_no_eol(hunk)
        i += 1
    return hunk, i


def _mark_no_eol(hunk: Hunk) -> None:
    if not hunk.lines:
        return
    tag = hunk.lines[-1][0]
    if tag in " -":
        hunk.old_no_eol = True
    if tag in " +":
        hunk.new_no_eol = True


def _split_content(content: str) -> Tuple[List[str], str, bool]:
    """Split file content into (lines, newline, ends_with_newline)."""
    newline = "\r\n" if "\r\n" in content else "\n"
    trailing = content.endswith(newline)
    body = content[:-len(newline)] if trailing else content
    lines = body.split(newline) if (body or trailing) else []
    return lines, newline, trailing


def apply_hunks(content: str, hunks: List[Hunk]) -> str:
    """Apply hunks in order to content. Raises HunkMismatchError on context mismatch."""
    lines, newline, trailing = _split_content(content)
    offset = 0
    floor = 0
    for n, hunk in enumerate(hunks, 1):
        old = hunk.old_lines
        new = hunk.new_lines
        if hunk.old_count == 0:
            expected = hunk.old_start + offset
        else:
            expected = hunk.old_start - 1 + offset
        pos = _locate(lines, old, expected, floor)
        if pos is None:
            raise HunkMismatchError(
                f"hunk {n} (@@ -{hunk.old_start},{hunk.old_count} @@) does not match the file"
            )
        lines[pos:pos + len(old)] = new
        offset += len(new) - len(old) + (pos - expected)
        floor = pos + len(new)
        if floor == len(lines) and (hunk.new_no_eol or hunk.old_no_eol or new):
            trailing = not hunk.new_no_eol
    if not lines:
        return ""
    return newline.join(lines) + (newline if trailing else "")


def _locate(lines: List[str], old: List[str], expected: int, floor: int) -> Optional[int]:
    """Find where old appears, preferring the expected index, never before floor."""
    last_start = len(lines) - len(old)
    if last_start < floor:
        return None
    expected = min(max(expected, floor), last_start)
    for distance in range(0, max(expected - floor, last_start - expected) + 1):
        for pos in (expected - distance, expected + distance):
            if floor <= pos <= last_start and lines[pos:pos + len(old)] == old:
                return pos
    return None


class DiffEngine:
    """Applies and undoes diffs against a project, tracking the session's last applied diff."""

    def __init__(self, backend: Backend, context, git=None):
        self.backend = backend
        self.context = context
        self.git = git

    def apply(self, diff_text: str) -> ToolResult:
        """Apply every file patch in diff_text. Succeeds only if every patch applied.

        Files written before a failing patch stay written. The last applied diff
        is only recorded when every patch succeeds.
        """
        try:
            patches = parse_unified_diff(diff_text)
        except DiffParseError as e:
            self.context.last_applied_diff = None
            logger.warning(f"Rejected malformed diff: {e}")
            return ToolResult(success=False, output="", error=f"Error processing diff input: {e}")

        written: List[str] = []
        for patch in patches:
            error = self._apply_patch(patch)
            if error:
                self.context.last_applied_diff = None
                logger.warning(f"Diff application aborted at {patch.path}: {error}")
                if written:
                    error += f" (already written: {', '.join(written)})"
                return ToolResult(success=False, output="", error=error)
            written.append(patch.path)

        self.context.last_applied_diff = diff_text
        logger.info(f"Diff applied to {len(written)} file(s): {written}")
        return ToolResult(
            success=True,
            output=f"Diff applied successfully to {len(written)} file(s): {', '.join(written)}.",
        )

    def _apply_patch(self, patch: FilePatch) -> Optional[str]:
        """Apply one file patch. Returns an error string, or None on success."""
        try:
            full = self.backend.resolve_path(patch.path)
            self.backend._ensure_under_working(full)
        except ValueError:
            return f"Error: Path escapes project directory: {patch.path}"
        rel = self.backend.relative_path(patch.path)

        exists = self.backend.file_exists(rel)
        if patch.is_creation:
            if exists:
                return f"Error: Cannot create '{rel}': file already exists."
            original = ""
        else:
            if not self.context.in_working_set(rel):
                return f"Error: Cannot apply diff to an existing file not in context: {rel}"
            if not exists:
                return f"Error: File not found: {rel}"
            try:
                original = self.backend.read_file(rel)
            except OSError as e:
                return f"Error reading original file '{rel}' for diff application: {e}"

        if patch.is_deletion:
            try:
                if patch.hunks:
                    apply_hunks(original, patch.hunks)
                self.backend.remove_file(rel)
            except HunkMismatchError as e:
                return f"Error applying diff to file '{rel}': Patch application failed. Details: {e}"
            except OSError as e:
                return f"Error deleting file '{rel}': {e}"
            self.context.remove_from_working_set(rel)
            return None

        try:
            patched = apply_hunks(original, patch.hunks)
        except HunkMismatchError as e:
            return f"Error applying diff to file '{rel}': Patch application failed. Details: {e}"
        try:
            self.backend.write_file(rel, patched)
        except OSError as e:
            return f"Error writing patched file '{rel}': {e}"
        self.context.add_to_working_set(rel)
        return None

    def undo(self) -> List[str]:
        """Revert the last applied diff. Always clears it, even after a partial failure."""
        diff_text = self.context.last_applied_diff
        if not diff_text:
            return ["No change to undo."]

        messages: List[str] = []
        try:
            for patch in parse_unified_diff(diff_text):
                rel = self.backend.relative_path(patch.path)
                if patch.is_creation:
                    messages.append(self._undo_creation(rel))
                else:
                    messages.append(self._undo_edit(rel, restore_to_working_set=patch.is_deletion))
        except DiffParseError as e:
            logger.error(f"Stored diff could not be parsed for undo: {e}")
            messages.append(f"Error: Failed to process undo operation: {e}")
        finally:
            self.context.last_applied_diff = None
        return messages

    def _undo_creation(self, rel: str) -> str:
        self.context.remove_from_working_set(rel)
        try:
            if self.backend.file_exists(rel):
                self.backend.remove_file(rel)
                return f"Reverted (deleted) newly created file: {rel}"
            return f"Newly created file was already gone: {rel}"
        except OSError as e:
            logger.error(f"Failed to delete {rel} during undo: {e}")
            return f"Error: Failed to delete newly created file {rel}: {e}"

    def _undo_edit(self, rel: str, restore_to_working_set: bool) -> str:
        if self.git is None:
            return f"Error: No version control available to revert {rel}"
        if self.git.checkout_file(rel):
            if restore_to_working_set:
                self.context.add_to_working_set(rel)
            return f"Reverted {rel} to its last committed state."
        return f"Error: Failed to revert {rel} to its last committed state."
