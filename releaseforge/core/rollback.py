"""Compensating sweep for a failed promotion attempt.

The artifact store has no multi-step transaction, so a failed attempt is
undone by deleting everything it created.  Release files go first, in
creation order, followed by the folders they leave empty and the release
build record.  The sweep is best effort: a failed deletion is logged and
reported, and the sweep moves on to the next item.
"""

from __future__ import annotations

import logging

from releaseforge.core.contracts import ArtifactStore, BuildRegistry
from releaseforge.core.result import is_err
from releaseforge.models.promotion import PromotionContext, RollbackReport
from releaseforge.models.repo import RepoPath

logger = logging.getLogger(__name__)


class RollbackCoordinator:
    """Deletes the side effects recorded in a ``PromotionContext``."""

    def __init__(self, store: ArtifactStore, registry: BuildRegistry) -> None:
        self._store = store
        self._registry = registry

    def execute(self, ctx: PromotionContext) -> RollbackReport:
        deleted: list[RepoPath] = []
        pruned: list[RepoPath] = []
        failures: list[str] = []

        for item in ctx.released_paths:
            if self._delete(item, failures):
                deleted.append(item)
                logger.info("%s deleted", item)
            self._prune_empty_parents(item, pruned, failures)

        build_deleted = self._delete_release_build(ctx, failures)

        if failures:
            logger.error(
                "Rollback of %s/%s left %d item(s) behind",
                ctx.request.build_name,
                ctx.release_number,
                len(failures),
            )
        return RollbackReport(
            deleted=deleted,
            pruned_folders=pruned,
            failures=failures,
            build_deleted=build_deleted,
        )

    def _delete(self, path: RepoPath, failures: list[str]) -> bool:
        try:
            status = self._store.delete(path)
        except Exception as exc:  # noqa: BLE001
            logger.error("Rollback failed! Failed to delete %s", path, exc_info=exc)
            failures.append(f"{path}: {exc}")
            return False
        if is_err(status):
            logger.error(
                "Rollback failed! Failed to delete %s, error is %s",
                path,
                status.error.message,
                exc_info=status.error.cause,
            )
            failures.append(f"{path}: {status.error.message}")
            return False
        return True

    def _prune_empty_parents(
        self, item: RepoPath, pruned: list[RepoPath], failures: list[str]
    ) -> None:
        """Walk upward deleting folders until the root or a non-empty folder."""
        parent = item.parent
        while parent is not None and not parent.is_root:
            try:
                if self._store.list_children(parent):
                    return
            except Exception as exc:  # noqa: BLE001
                logger.error("Rollback failed! Cannot list %s", parent, exc_info=exc)
                failures.append(f"{parent}: {exc}")
                return
            if not self._delete(parent, failures):
                return
            pruned.append(parent)
            parent = parent.parent

    def _delete_release_build(self, ctx: PromotionContext, failures: list[str]) -> bool:
        release_build = ctx.release_build
        if release_build is None or not ctx.release_build_saved:
            return False
        run = release_build.run
        try:
            if not self._registry.find(run.name, run.number, run.started):
                logger.debug("Release build %s was never saved", run)
                return False
            status = self._registry.delete(run)
        except Exception as exc:  # noqa: BLE001
            logger.error("Rollback failed! Failed to delete %s", run, exc_info=exc)
            failures.append(f"build {run}: {exc}")
            return False
        if is_err(status):
            logger.error(
                "Rollback failed! Failed to delete %s, error is %s",
                run,
                status.error.message,
            )
            failures.append(f"build {run}: {status.error.message}")
            return False
        logger.info("Release build %s deleted", run)
        return True
