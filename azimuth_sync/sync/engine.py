"""Core sync engine for executing sync operations."""

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Union

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..exceptions import AzimuthIOError
from ..hashing import content_hash
from ..models import SyncConflict, SyncOutcome
from ..output import OutputFormatter
from ..utils import format_size, resolve_within_root
from .comparator import FileComparator, SyncAction, SyncDecision
from .conflicts import ConflictStore
from .lock import SyncLock, sync_lock
from .scanner import DirectoryScanner, LocalFile, RemoteFile, is_untracked_key

if TYPE_CHECKING:
    from ..providers.base import RemoteProvider

logger = logging.getLogger(__name__)


class SyncEngine:
    """Core sync engine that reconciles a sync root with one provider."""

    def __init__(
        self,
        provider: "RemoteProvider",
        output: Optional[OutputFormatter] = None,
        conflict_store: Optional[ConflictStore] = None,
        lock: Optional[SyncLock] = None,
    ):
        """Initialize sync engine.

        Args:
            provider: Remote provider to sync with
            output: Output formatter for displaying progress/status
            conflict_store: Where conflict sidecars are written
            lock: Run gate (defaults to the process-wide gate)
        """
        self.provider = provider
        self.output = output or OutputFormatter(quiet=True)
        self.conflict_store = conflict_store or ConflictStore()
        self.lock = lock or sync_lock

    @property
    def display_name(self) -> str:
        return self.provider.display_name or self.provider.name

    def sync_root(
        self,
        root: Union[str, Path],
        last_sync: Optional[datetime] = None,
        max_workers: int = 1,
        dry_run: bool = False,
        ignore_patterns: Optional[list[str]] = None,
    ) -> SyncOutcome:
        """Run a full sync of a root directory.

        The local scan and the remote listing run concurrently. Only one run
        per root and provider may be active at a time.

        Args:
            root: Sync root directory (created if missing)
            last_sync: Time of the last completed sync, if any
            max_workers: Number of parallel transfers (default: 1)
            dry_run: If True, only report what would be done
            ignore_patterns: Extra glob patterns left out of the scan

        Returns:
            Outcome of the run

        Raises:
            AzimuthSyncInProgressError: If a run on the same root is active
            AzimuthIOError: On local filesystem failure
            AzimuthRemoteError: On provider failure

        Examples:
            >>> engine = SyncEngine(DropboxProvider(token))
            >>> outcome = engine.sync_root(Path("~/Azimuth").expanduser())
            >>> print(outcome.message)
        """
        root_path = Path(root)
        with self.lock.hold(root_path, self.provider.name):
            if not self.output.quiet:
                self.output.info(f"Syncing: {root_path} <-> {self.display_name}")
                if dry_run:
                    self.output.info("Dry run: No changes will be made")
                self.output.print("")

            local_files, remote_files = self._scan(root_path, ignore_patterns)

            if dry_run:
                decisions = self._decide(local_files, remote_files, last_sync)
                stats = self._categorize_decisions(decisions)
                self._display_sync_plan(stats, decisions)
                return SyncOutcome(
                    success=True,
                    message=(
                        f"Dry run: {stats['uploads']} to upload, "
                        f"{stats['downloads']} to download, "
                        f"{stats['conflicts']} conflict(s)"
                    ),
                )

            return self.reconcile(
                root_path,
                local_files,
                remote_files,
                last_sync=last_sync,
                max_workers=max_workers,
            )

    def _scan(
        self, root: Path, ignore_patterns: Optional[list[str]]
    ) -> tuple[list[LocalFile], list[RemoteFile]]:
        """Scan the root and list the provider in parallel."""
        scanner = DirectoryScanner(ignore_patterns=ignore_patterns)
        start = time.time()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=self.output.console,
            disable=self.output.quiet,
        ) as progress:
            task = progress.add_task("Scanning local and remote files...", total=None)
            with ThreadPoolExecutor(max_workers=2) as executor:
                local_future = executor.submit(scanner.scan_local, root)
                remote_future = executor.submit(self.provider.list)
                local_files = local_future.result()
                remote_files = remote_future.result()
            progress.update(
                task,
                description=(
                    f"Found {len(local_files)} local and "
                    f"{len(remote_files)} remote file(s)"
                ),
            )

        logger.debug(
            f"Scanned {len(local_files)} local and {len(remote_files)} remote "
            f"file(s) in {time.time() - start:.2f}s"
        )
        return local_files, remote_files

    def _local_tag(self, local_file: LocalFile) -> str:
        try:
            return self.provider.tag_for(local_file)
        except OSError as e:
            raise AzimuthIOError(f"Cannot read {local_file.path}: {e}") from e

    def _decide(
        self,
        local_files: list[LocalFile],
        remote_files: list[RemoteFile],
        last_sync: Optional[datetime],
    ) -> list[SyncDecision]:
        local_file_map = {f.relative_path: f for f in local_files}
        remote_file_map: dict[str, RemoteFile] = {}
        for remote_file in remote_files:
            if is_untracked_key(remote_file.key):
                logger.debug(f"Ignoring remote metadata: {remote_file.key}")
                continue
            remote_file_map[remote_file.relative_path] = remote_file

        comparator = FileComparator(last_sync=last_sync, tag_for=self._local_tag)
        decisions = comparator.compare_files(local_file_map, remote_file_map)
        for decision in decisions:
            logger.debug(
                f"{decision.relative_path}: {decision.action.value} ({decision.reason})"
            )
        return decisions

    def reconcile(
        self,
        root: Union[str, Path],
        local_files: list[LocalFile],
        remote_files: list[RemoteFile],
        last_sync: Optional[datetime] = None,
        max_workers: int = 1,
    ) -> SyncOutcome:
        """Bring a root and the provider into agreement.

        Local-only files are uploaded, remote-only files downloaded, and
        divergent files either uploaded or set aside as conflicts. The first
        failed transfer aborts the run; files already transferred stay so.

        Args:
            root: Sync root directory
            local_files: Local manifest
            remote_files: Remote listing
            last_sync: Time of the last completed sync, if any
            max_workers: Number of parallel transfers (default: 1)

        Returns:
            Outcome with transfer counts and the conflicts found
        """
        root_path = Path(root)
        decisions = self._decide(local_files, remote_files, last_sync)
        stats = self._categorize_decisions(decisions)
        self._display_sync_plan(stats, decisions)

        actionable = [d for d in decisions if d.action != SyncAction.SKIP]
        results = self._execute_decisions(root_path, actionable, max_workers)

        uploaded = 0
        downloaded = 0
        conflicts: list[SyncConflict] = []
        for decision, result in zip(actionable, results):
            if decision.action == SyncAction.UPLOAD:
                uploaded += 1
            elif decision.action == SyncAction.DOWNLOAD and result:
                downloaded += 1
            elif isinstance(result, SyncConflict):
                conflicts.append(result)

        message = (
            f"{self.display_name} sync complete: "
            f"{uploaded} uploaded, {downloaded} downloaded"
        )
        if conflicts:
            message += f", {len(conflicts)} conflict(s)"

        outcome = SyncOutcome(
            success=True,
            message=message,
            files_uploaded=uploaded,
            files_downloaded=downloaded,
            conflicts=conflicts,
        )
        if not self.output.quiet:
            self._display_summary(outcome)
        return outcome

    def _execute_decisions(
        self, root: Path, decisions: list[SyncDecision], max_workers: int
    ) -> list[object]:
        """Execute sync decisions, returning one result per decision in order."""
        if not decisions:
            return []

        with Progress(
            console=self.output.console, disable=self.output.quiet
        ) as progress:
            task = progress.add_task("Syncing files...", total=len(decisions))

            if max_workers <= 1 or len(decisions) == 1:
                results: list[object] = []
                for decision in decisions:
                    results.append(self._execute_single_decision(root, decision))
                    progress.update(task, advance=1)
                return results

            return self._execute_decisions_parallel(
                root, decisions, max_workers, lambda: progress.update(task, advance=1)
            )

    def _execute_decisions_parallel(
        self,
        root: Path,
        decisions: list[SyncDecision],
        max_workers: int,
        on_done: Callable[[], None],
    ) -> list[object]:
        """Execute sync decisions in parallel using ThreadPoolExecutor.

        The first failure cancels every transfer that has not started yet and
        is re-raised once the running ones finish.
        """
        logger.debug(f"Executing {len(decisions)} actions with {max_workers} workers")

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self._execute_single_decision, root, decision)
                for decision in decisions
            ]
            for future in futures:
                future.add_done_callback(lambda _: on_done())

            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()

        for future in futures:
            if future.cancelled():
                continue
            error = future.exception()
            if error is not None:
                raise error
        return [future.result() for future in futures]

    def _execute_single_decision(self, root: Path, decision: SyncDecision) -> object:
        """Execute a single sync decision.

        Returns:
            True for a completed transfer, False for a skipped download, or
            the SyncConflict recorded for a conflict
        """
        start = time.time()
        path = decision.relative_path
        local_file = decision.local_file
        remote_file = decision.remote_file

        if decision.action == SyncAction.UPLOAD and local_file is not None:
            try:
                data = local_file.path.read_bytes()
            except OSError as e:
                raise AzimuthIOError(f"Cannot read {local_file.path}: {e}") from e
            self.provider.upload(path, data)
            logger.debug(
                f"Uploaded {path} ({format_size(len(data))}) "
                f"in {time.time() - start:.2f}s"
            )
            return True

        if decision.action == SyncAction.DOWNLOAD and remote_file is not None:
            local_path = resolve_within_root(root, remote_file.key)
            if local_path is None:
                logger.warning(f"Skipping remote key outside the sync root: {path!r}")
                return False
            data = self.provider.download(remote_file.key)
            try:
                local_path.parent.mkdir(parents=True, exist_ok=True)
                local_path.write_bytes(data)
            except OSError as e:
                raise AzimuthIOError(f"Cannot write {local_path}: {e}") from e
            logger.debug(
                f"Downloaded {path} ({format_size(len(data))}) "
                f"in {time.time() - start:.2f}s"
            )
            return True

        if (
            decision.action == SyncAction.CONFLICT
            and local_file is not None
            and remote_file is not None
        ):
            data = self.provider.download(remote_file.key)
            self.conflict_store.write_sidecar(root, path, data)
            logger.info(f"Conflict on {path}: {decision.reason}")
            return SyncConflict(
                file_path=path,
                local_modified=local_file.modified_at,
                remote_modified=remote_file.modified_at,
                local_hash=local_file.content_hash,
                remote_hash=content_hash(data),
            )

        return False

    def _categorize_decisions(self, decisions: list[SyncDecision]) -> dict:
        """Count decisions per action."""
        stats = {"uploads": 0, "downloads": 0, "skips": 0, "conflicts": 0}

        for decision in decisions:
            if decision.action == SyncAction.UPLOAD:
                stats["uploads"] += 1
            elif decision.action == SyncAction.DOWNLOAD:
                stats["downloads"] += 1
            elif decision.action == SyncAction.CONFLICT:
                stats["conflicts"] += 1
            elif decision.action == SyncAction.SKIP:
                stats["skips"] += 1

        return stats

    def _display_sync_plan(self, stats: dict, decisions: list[SyncDecision]) -> None:
        if self.output.quiet:
            return

        self.output.info("Sync plan:")
        if stats["uploads"] > 0:
            self.output.info(f"  ↑ Upload: {stats['uploads']} file(s)")
        if stats["downloads"] > 0:
            self.output.info(f"  ↓ Download: {stats['downloads']} file(s)")
        if stats["skips"] > 0:
            self.output.info(f"  = Skip: {stats['skips']} file(s)")
        if stats["conflicts"] > 0:
            self.output.warning(f"  ⚠ Conflicts: {stats['conflicts']} file(s)")
            self.output.print("")
            self.output.warning("Conflict details:")
            for decision in decisions:
                if decision.action == SyncAction.CONFLICT:
                    self.output.warning(
                        f"  {decision.relative_path}: {decision.reason}"
                    )

        self.output.print("")

    def _display_summary(self, outcome: SyncOutcome) -> None:
        self.output.print("")
        self.output.success(outcome.message)

        if outcome.files_uploaded or outcome.files_downloaded or outcome.conflicts:
            if outcome.files_uploaded:
                self.output.info(f"  Uploaded: {outcome.files_uploaded}")
            if outcome.files_downloaded:
                self.output.info(f"  Downloaded: {outcome.files_downloaded}")
            if outcome.conflicts:
                self.output.warning(
                    f"  Conflicts: {len(outcome.conflicts)} "
                    "(resolve with 'azimuth-sync resolve')"
                )
        else:
            self.output.info("No changes needed - everything is in sync!")
