"""
Content Collector

Gathers what the model reviews: every eligible file of the working tree
(repo scope) or the pull request diff (diff scope). Output is a single byte
blob cut to a fixed budget.

Repo scope segment layout::

    --- FILE_START: ./path --- (Size: N bytes)
    <file bytes>
    --- FILE_END: ./path ---
    <blank line>

The budget cut is a raw byte slice. It ignores segment boundaries and may
split a file, or a multi-byte character, in the middle.
"""

import io
import os
import re
from typing import Iterable, List, Optional, Tuple

from kimi_review.exceptions.review_exceptions import DiffFetchException
from kimi_review.models.schemas import ContentBlob, ContentSegment, ReviewScope, RunContext
from kimi_review.services.github.pr_api_client import PRApiClient
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)

BACKTICK = b"`"
# Two RIGHT SINGLE QUOTATION MARKs keep embedded fences from breaking the comment
BACKTICK_REPLACEMENT = "‘‘".encode("utf-8")

DIFF_SOURCE = "diff"
ALWAYS_EXCLUDED_DIFF_DIRS = ("vendor",)


def escape_backticks(data: bytes) -> bytes:
    return data.replace(BACKTICK, BACKTICK_REPLACEMENT)


def build_path_exclusion(patterns: Iterable[str]) -> Optional[re.Pattern]:
    """``(p1|p2|...)/`` searched anywhere in a ``./relative/path``."""
    patterns = list(patterns)
    if not patterns:
        return None
    return re.compile(f"({'|'.join(patterns)})/")


def build_diff_exclusion(patterns: Iterable[str]) -> re.Pattern:
    """Header lines whose path starts with an excluded fragment or vendor/."""
    fragments = "|".join(patterns)
    directories = "|".join(ALWAYS_EXCLUDED_DIFF_DIRS)
    alternatives = f"({fragments})|{directories}" if fragments else directories
    return re.compile(
        rf"^(diff --git a/|--- a/|\+\+\+ b/)({alternatives})/".encode("utf-8")
    )


def filter_diff(diff: bytes, patterns: Iterable[str]) -> bytes:
    """
    Drop ``diff --git a/``, ``--- a/`` and ``+++ b/`` lines for excluded paths.

    Only the header lines go; hunk bodies of excluded files are kept.
    """
    exclusion = build_diff_exclusion(patterns)
    kept: List[bytes] = []
    for line in io.BytesIO(diff):
        if exclusion.search(line):
            continue
        if not line.endswith(b"\n"):
            line += b"\n"
        kept.append(line)
    return b"".join(kept)


def render_file_segment(display_path: str, size: int, content: bytes) -> bytes:
    path = os.fsencode(display_path)
    return (
        b"--- FILE_START: " + path + b" --- (Size: " + str(size).encode() + b" bytes)\n"
        + content
        + b"\n"
        + b"--- FILE_END: " + path + b" ---\n"
        + b"\n"
    )


class ContentCollector:
    """
    Builds the ContentBlob for a run.

    Usage:
        collector = ContentCollector(
            exclude_patterns=settings.exclude_patterns,
            max_file_bytes=settings.max_single_file_bytes,
            max_total_bytes=settings.max_code_blob_bytes,
            pr_client=PRApiClient(token=settings.github_token),
        )
        blob = collector.collect(ReviewScope.REPO)
    """

    def __init__(
        self,
        exclude_patterns: Iterable[str],
        max_file_bytes: int,
        max_total_bytes: int,
        pr_client: Optional[PRApiClient] = None,
        root: str = ".",
    ):
        self.exclude_patterns = list(exclude_patterns)
        self.max_file_bytes = max_file_bytes
        self.max_total_bytes = max_total_bytes
        self.pr_client = pr_client
        self.root = root
        self._path_exclusion = build_path_exclusion(self.exclude_patterns)

    def collect(self, scope: ReviewScope, run_context: Optional[RunContext] = None) -> ContentBlob:
        """
        Collect content for ``scope``.

        Args:
            scope: Repository or diff scope
            run_context: Required for diff scope (repository, PR number, diff URL)

        Returns:
            Finalized ContentBlob; ``is_empty`` signals there is nothing to review

        Raises:
            DiffFetchException: If the diff cannot be downloaded
        """
        logger.info(f"Excluding files matching patterns: {'|'.join(self.exclude_patterns)}")
        logger.info(f"Max total code for review: {self.max_total_bytes // 1024}KB.")
        logger.info(f"Max single file size: {self.max_file_bytes // 1024}KB.")

        if scope == ReviewScope.REPO:
            blob = self.collect_repo()
        else:
            blob = self.collect_diff(run_context)

        if blob.is_empty:
            logger.warning(
                "Collected content is EMPTY. There are no relevant changes to review, "
                "or all changes were in excluded folders/files."
            )
        else:
            logger.info(f"Content collected ({blob.size} bytes from {len(blob.segments)} segment(s)).")
        return blob

    # ------------------------------------------------------------------
    # Repo scope
    # ------------------------------------------------------------------

    def collect_repo(self) -> ContentBlob:
        logger.info("Gathering full repository content (excluding specified folders/files)...")

        segments: List[ContentSegment] = []
        skipped: List[str] = []
        collected = 0

        for display_path, fs_path in self.iter_repo_files():
            if collected >= self.max_total_bytes:
                # Anything appended now would be cut off anyway
                logger.debug(f"Byte budget reached before {display_path}; stopping collection")
                break

            try:
                size = os.stat(fs_path).st_size
                if size >= self.max_file_bytes:
                    logger.info(
                        f"Skipping large file: '{display_path}' (Size: {size} bytes, "
                        f"max {self.max_file_bytes // 1024}KB allowed)."
                    )
                    skipped.append(display_path)
                    continue

                with open(fs_path, "rb") as f:
                    content = f.read()
            except OSError as e:
                logger.warning(f"Skipping unreadable file '{display_path}': {e}")
                skipped.append(display_path)
                continue

            data = escape_backticks(render_file_segment(display_path, size, content))
            segments.append(ContentSegment(source=display_path, data=data))
            collected += len(data)

        blob = self._finalize(ReviewScope.REPO, segments, collected, skipped)
        if blob.truncated:
            logger.info(
                f"The collected code blob was capped at approximately "
                f"{self.max_total_bytes // 1024}KB to fit model token limits.",
                extra={"annotation": "notice"},
            )
        return blob

    def iter_repo_files(self) -> Iterable[Tuple[str, str]]:
        """
        Yield ``(display_path, filesystem_path)`` for every regular, non-excluded file.

        Display paths look like ``./src/app.py``. Order is lexicographic by
        display path so repeated runs over the same tree produce the same blob.
        """
        found: List[Tuple[str, str]] = []

        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = os.path.relpath(dirpath, self.root)
            display_dir = "." if rel_dir == "." else f"./{rel_dir.replace(os.sep, '/')}"

            # A directory whose own path already matches excludes everything below it
            dirnames[:] = [
                name for name in dirnames
                if not self.is_excluded(f"{display_dir}/{name}/")
            ]

            for name in filenames:
                fs_path = os.path.join(dirpath, name)
                if os.path.islink(fs_path) or not os.path.isfile(fs_path):
                    continue
                display_path = f"{display_dir}/{name}"
                if self.is_excluded(display_path):
                    continue
                found.append((display_path, fs_path))

        found.sort(key=lambda item: item[0])
        return found

    def is_excluded(self, display_path: str) -> bool:
        if self._path_exclusion is None:
            return False
        return self._path_exclusion.search(display_path) is not None

    # ------------------------------------------------------------------
    # Diff scope
    # ------------------------------------------------------------------

    def collect_diff(self, run_context: Optional[RunContext]) -> ContentBlob:
        logger.info("Collecting code differences (diff) for review (excluding specified folders/files)...")

        if run_context is None or self.pr_client is None:
            raise DiffFetchException("pull request", "diff scope needs a run context and a GitHub client")

        diff = self.pr_client.get_pr_diff(
            run_context.repository,
            run_context.pr_number,
            diff_url=run_context.diff_url,
        )
        data = escape_backticks(filter_diff(diff, self.exclude_patterns))
        segments = [ContentSegment(source=DIFF_SOURCE, data=data)] if data else []

        blob = self._finalize(ReviewScope.DIFF, segments, len(data), [])
        if blob.truncated:
            logger.info(
                f"The collected diff blob was capped at approximately "
                f"{self.max_total_bytes // 1024}KB to fit model token limits.",
                extra={"annotation": "notice"},
            )
        return blob

    # ------------------------------------------------------------------

    def _finalize(
        self,
        scope: ReviewScope,
        segments: List[ContentSegment],
        collected: int,
        skipped: List[str],
    ) -> ContentBlob:
        data = b"".join(segment.data for segment in segments)[: self.max_total_bytes]
        return ContentBlob(
            scope=scope,
            segments=tuple(segments),
            data=data,
            max_total_bytes=self.max_total_bytes,
            collected_size=collected,
            skipped_files=tuple(skipped),
        )
