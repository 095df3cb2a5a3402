"""Pull reconciliation runs and their conflicts."""

from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from app.config import SYNC_MAX_ATTEMPTS
from app.core import (
    ConflictResolution,
    ConflictType,
    NotFoundError,
    ProviderTransportError,
    SyncStatus,
    SyncType,
    log_error,
    log_section,
    log_success,
    log_warning,
    utcnow,
)
from app.data import Conflict, ProviderAccount, SyncRun, UnifiedItem

from .pagination import Page, paginate
from .playlists import PlaylistService, SyncCounts


class ConflictResolutionHandler:
    """Applies the side effect of a resolved conflict.

    Resolving only records the user's decision; subclasses may act on it
    (e.g. drop the affected unified item for REMOVE). The default does
    nothing.
    """

    def apply(self, session: Session, conflict: Conflict) -> None:
        return None


@dataclass
class SyncStatusView:
    active_syncs: List[SyncRun] = field(default_factory=list)
    last_sync: Optional[SyncRun] = None


class SyncService:
    def __init__(
        self,
        session: Session,
        playlists: PlaylistService,
        max_attempts: int = SYNC_MAX_ATTEMPTS,
        wait=None,
        resolution_handler: Optional[ConflictResolutionHandler] = None,
    ) -> None:
        self.session = session
        self.playlists = playlists
        self.max_attempts = max(1, max_attempts)
        self.wait = wait or wait_random_exponential(multiplier=0.5, max=5)
        self.resolution_handler = resolution_handler or ConflictResolutionHandler()

    def _retrying(self) -> Retrying:
        # Only transport failures are worth another attempt; a 4xx will not heal.
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            retry=retry_if_exception_type(ProviderTransportError),
            reraise=True,
        )

    def _pull_account(self, user_id: str, account: ProviderAccount) -> SyncCounts:
        try:
            counts = self.playlists.sync_all_playlists(user_id, account.provider)
            self.session.commit()
            return counts
        except Exception:
            self.session.rollback()
            raise

    def pull_from_providers(self, user_id: str) -> SyncRun:
        """
        Refresh the playlist mirrors of every linked account.

        A failing account is recorded as one SYNC_FAILED conflict and does
        not stop the others. Only an unexpected error outside the
        per-account step marks the run FAILED; it is then re-raised.
        """
        run = SyncRun(
            user_id=user_id,
            sync_type=SyncType.PULL,
            status=SyncStatus.RUNNING,
            started_at=utcnow(),
        )
        self.session.add(run)
        self.session.commit()
        log_section(f"Sync run {run.id}")

        totals = SyncCounts()
        try:
            accounts = list(
                self.session.scalars(
                    select(ProviderAccount).where(ProviderAccount.user_id == user_id)
                )
            )
            targets = [(a.id, a.provider) for a in accounts]

            for account_id, provider in targets:
                account = self.session.get(ProviderAccount, account_id)
                try:
                    counts = self._retrying()(self._pull_account, user_id, account)
                except Exception as exc:
                    log_error(f"Sync of {provider.value} account {account_id} failed: {exc}")
                    self.session.add(
                        Conflict(
                            sync_run_id=run.id,
                            conflict_type=ConflictType.SYNC_FAILED,
                            details={"provider": provider.value, "error": str(exc)},
                        )
                    )
                    self.session.commit()
                    continue

                totals += counts
                run.items_processed = totals.processed
                run.items_added = totals.added
                run.items_updated = totals.updated
                run.items_removed = totals.removed
                self.session.commit()

            run.status = SyncStatus.COMPLETED
            run.completed_at = utcnow()
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            run.status = SyncStatus.FAILED
            run.completed_at = utcnow()
            run.error_message = str(exc) or exc.__class__.__name__
            self.session.commit()
            log_error(f"Sync run {run.id} failed: {run.error_message}")
            raise

        log_success(
            f"Sync run {run.id} completed: {totals.processed} processed, "
            f"{totals.added} added, {totals.updated} updated"
        )
        return run

    def get_sync_status(self, user_id: str) -> SyncStatusView:
        active = self.session.scalars(
            select(SyncRun)
            .where(SyncRun.user_id == user_id, SyncRun.status == SyncStatus.RUNNING)
            .order_by(SyncRun.started_at.desc())
        )
        last = self.session.scalars(
            select(SyncRun)
            .where(SyncRun.user_id == user_id, SyncRun.status == SyncStatus.COMPLETED)
            .order_by(SyncRun.completed_at.desc())
            .limit(1)
        ).first()
        return SyncStatusView(active_syncs=list(active), last_sync=last)

    def get_sync_history(self, user_id: str, page: int = 1, limit: int = 20) -> Page:
        stmt = (
            select(SyncRun)
            .where(SyncRun.user_id == user_id)
            .order_by(SyncRun.created_at.desc(), SyncRun.id)
        )
        return paginate(self.session, stmt, page, limit)

    def get_conflicts(self, user_id: str, resolved: bool = False) -> List[Conflict]:
        stmt = (
            select(Conflict)
            .join(Conflict.sync_run)
            .where(SyncRun.user_id == user_id, Conflict.resolved == resolved)
            .options(
                selectinload(Conflict.unified_item).selectinload(UnifiedItem.track),
                selectinload(Conflict.unified_item).selectinload(
                    UnifiedItem.unified_playlist
                ),
            )
            .order_by(Conflict.created_at.desc())
        )
        return list(self.session.scalars(stmt))

    def resolve_conflict(
        self, user_id: str, conflict_id: str, resolution: ConflictResolution
    ) -> Conflict:
        conflict = self.session.scalars(
            select(Conflict)
            .join(Conflict.sync_run)
            .where(Conflict.id == conflict_id, SyncRun.user_id == user_id)
        ).first()
        if conflict is None:
            raise NotFoundError("Conflict not found")

        if conflict.resolved:
            log_warning(f"Conflict {conflict.id} was already resolved; overwriting")

        conflict.resolved = True
        conflict.resolved_at = utcnow()
        conflict.resolution = ConflictResolution(resolution)
        self.resolution_handler.apply(self.session, conflict)
        self.session.flush()
        return conflict
