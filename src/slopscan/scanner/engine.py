"""Scan engine — orchestrates walking and matching across a source tree."""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from slopscan.config import SlopScanConfig
from slopscan.errors import MatchError, WalkError
from slopscan.report.models import Finding, IssueKind, ScanIssue, ScanReport
from slopscan.report.reporter import aggregate
from slopscan.rules.catalog import RuleCatalog
from slopscan.scanner.matcher import match_all
from slopscan.scanner.walker import FileWalker

logger = logging.getLogger(__name__)


@dataclass
class _FileResult:
    findings: list[Finding] = field(default_factory=list)
    issues: list[ScanIssue] = field(default_factory=list)
    scanned: bool = True


def default_workers() -> int:
    return os.cpu_count() or 4


class ScanEngine:
    """Runs a catalog against every file under a root.

    Files are matched in parallel on a bounded thread pool; each file's text
    is read once into a buffer owned by the task that processes it. The
    reporter imposes the canonical order afterwards, so completion order
    does not matter.
    """

    def __init__(
        self,
        catalog: RuleCatalog,
        config: SlopScanConfig | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._catalog = catalog
        self._config = config or SlopScanConfig()
        self._max_workers = max(1, max_workers or default_workers())
        self._limits = self._config.overrides.model_dump()
        self._walker = FileWalker(
            ignore_globs=self._config.ignore,
            max_file_size=self._config.max_file_size,
        )

    @property
    def catalog(self) -> RuleCatalog:
        return self._catalog

    @property
    def limits(self) -> dict[str, int]:
        return dict(self._limits)

    def scan(
        self,
        root: str | Path,
        cancel: threading.Event | None = None,
    ) -> ScanReport:
        """Scan a directory (or a single file) and return the report."""
        root = Path(root).resolve()
        base = root if root.is_dir() else root.parent
        start = time.time()

        findings: list[Finding] = []
        issues: list[ScanIssue] = []
        skipped: list[Path] = []
        scanned = 0
        cancelled = False

        def _on_walk_error(err: WalkError) -> None:
            issues.append(
                ScanIssue(
                    kind=IssueKind.WALK,
                    path=err.context.get("path", ""),
                    message=str(err),
                )
            )

        files = self._walker.walk(root, on_error=_on_walk_error, on_skip=skipped.append)

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="slopscan"
        ) as pool:
            pending: set[Future[_FileResult]] = set()
            for path in files:
                if cancel is not None and cancel.is_set():
                    cancelled = True
                    break
                rel = _relative(path, base)
                pending.add(pool.submit(self._scan_file, path, rel, cancel))
                # Bound the queue so a huge tree is not read ahead of the workers
                if len(pending) >= self._max_workers * 4:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    scanned += self._collect(done, findings, issues)

            if cancelled:
                for fut in pending:
                    fut.cancel()
            done, _ = wait(pending)
            scanned += self._collect(
                (f for f in done if not f.cancelled()), findings, issues
            )

        if cancel is not None and cancel.is_set():
            cancelled = True
            logger.info("Scan cancelled after %d files", scanned)

        return aggregate(
            findings,
            self._catalog,
            issues=issues,
            threshold=self._config.min_severity,
            root=str(base),
            files_scanned=scanned,
            files_skipped=len(skipped),
            duration=time.time() - start,
            cancelled=cancelled,
        )

    def scan_content(self, content: str, rel_path: str) -> list[Finding]:
        """Match every rule against in-memory content. MatchErrors propagate."""
        return match_all(self._catalog, content, rel_path, self._limits)

    def _scan_file(
        self,
        path: Path,
        rel: str,
        cancel: threading.Event | None,
    ) -> _FileResult:
        result = _FileResult()
        if cancel is not None and cancel.is_set():
            result.scanned = False
            return result
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping %s: %s", path, e)
            result.scanned = False
            result.issues.append(
                ScanIssue(kind=IssueKind.READ, path=rel, message=str(e))
            )
            return result

        def _on_match_error(err: MatchError) -> None:
            logger.warning("%s", err)
            result.issues.append(
                ScanIssue(
                    kind=IssueKind.MATCH,
                    path=rel,
                    message=str(err),
                    rule_id=err.context.get("rule_id", ""),
                )
            )

        result.findings = match_all(
            self._catalog, content, rel, self._limits, on_error=_on_match_error
        )
        return result

    @staticmethod
    def _collect(done, findings: list[Finding], issues: list[ScanIssue]) -> int:
        scanned = 0
        for fut in done:
            res = fut.result()
            findings.extend(res.findings)
            issues.extend(res.issues)
            if res.scanned:
                scanned += 1
        return scanned


def _relative(path: Path, base: Path) -> str:
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return path.as_posix()
