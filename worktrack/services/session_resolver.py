"""
services/session_resolver.py
----------------------------
Resolves credential → user → organization into a SessionSnapshot and
keeps it current across identity changes.

Ownership:
  SessionState holds the snapshot. SessionResolver is its only writer;
  everything else reads state.snapshot or registers a watcher.

Ordering:
  Bootstrap and identity-change notifications can interleave. Each
  resolution takes a generation number, and a write is applied only if
  its generation is still the latest one issued. A slow, superseded
  resolution therefore never overwrites a newer result.

Errors:
  A failed lookup is recorded as snapshot.error. The chain stops there
  and keeps whatever it had already resolved. Nothing is raised to the
  caller and nothing is retried.
"""

import itertools
from typing import Any, Callable, Optional

from worktrack.core.exceptions import WorkTrackError
from worktrack.core.logging import get_logger
from worktrack.schemas.auth import AuthChangeEvent, AuthSession
from worktrack.schemas.organization import OrganizationRead
from worktrack.schemas.session import SessionSnapshot, SessionStatus
from worktrack.schemas.user import UserRead
from worktrack.services.auth_service import AuthClient, Subscription
from worktrack.services.store import RecordStore

logger = get_logger(__name__)

SnapshotWatcher = Callable[[SessionSnapshot], None]


class SessionState:
    """Holder of the current snapshot, shared by reference with consumers."""

    def __init__(self) -> None:
        self._snapshot = SessionSnapshot()
        self._watchers: list[SnapshotWatcher] = []

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    def watch(self, watcher: SnapshotWatcher) -> Callable[[], None]:
        """Call watcher on every published snapshot. Returns an unwatch callable."""
        self._watchers.append(watcher)

        def unwatch() -> None:
            if watcher in self._watchers:
                self._watchers.remove(watcher)

        return unwatch

    def publish(self, snapshot: SessionSnapshot) -> None:
        """
        Replace the snapshot and notify watchers. Only SessionResolver
        calls this. A watcher that raises is logged and skipped; the
        snapshot is already stored and the remaining watchers still run.
        """
        self._snapshot = snapshot
        for watcher in list(self._watchers):
            try:
                watcher(snapshot)
            except Exception:
                logger.exception("Session watcher failed", watcher=repr(watcher))


class SessionResolver:

    def __init__(
        self,
        auth: AuthClient,
        store: RecordStore,
        state: Optional[SessionState] = None,
    ) -> None:
        self._auth = auth
        self._store = store
        self.state = state or SessionState()
        self._generations = itertools.count(1)
        self._latest = 0
        self._subscription: Optional[Subscription] = None

    async def __aenter__(self) -> "SessionResolver":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> SessionSnapshot:
        """Subscribe to identity changes, then bootstrap."""
        if self._subscription is None:
            self._subscription = self._auth.on_auth_state_change(self._on_auth_change)
        return await self.bootstrap()

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    # ── Resolution ────────────────────────────────────────────────────────────

    async def bootstrap(self) -> SessionSnapshot:
        generation = self._begin()
        self._apply(generation, status=SessionStatus.resolving)
        try:
            try:
                session = await self._auth.get_session()
            except WorkTrackError as exc:
                self._apply(generation, error=exc.message, status=self._settled_status())
                return self.state.snapshot

            if session is None:
                self._apply_anonymous(generation)
            else:
                await self._resolve_chain(generation, session)
        finally:
            self._finish_loading()
        return self.state.snapshot

    async def resolve(self, session: Optional[AuthSession]) -> SessionSnapshot:
        """Re-resolve for the given session without entering the loading state."""
        generation = self._begin()
        if session is None:
            self._apply_anonymous(generation)
        else:
            await self._resolve_chain(generation, session)
        return self.state.snapshot

    async def _on_auth_change(
        self, event: AuthChangeEvent, session: Optional[AuthSession]
    ) -> None:
        logger.debug("Auth state changed", auth_event=event.value)
        await self.resolve(session)

    async def _resolve_chain(self, generation: int, session: AuthSession) -> None:
        credential = session.user
        changes: dict[str, Any] = {
            "identity": credential,
            "error": None,
            "status": SessionStatus.resolving,
        }
        current = self.state.snapshot.identity
        if current is None or current.id != credential.id:
            changes.update(user=None, organization=None)
        if not self._apply(generation, **changes):
            return

        try:
            user_row = await self._store.select_one("users", auth_user_id=credential.id)
        except WorkTrackError as exc:
            self._apply(generation, error=exc.message, status=SessionStatus.identified)
            return

        if user_row is None:
            self._apply(
                generation, user=None, organization=None, status=SessionStatus.identified
            )
            return

        user = UserRead.model_validate(user_row)
        if not self._apply(generation, user=user):
            return

        try:
            org_row = await self._store.select_one("organizations", id=user.organization_id)
        except WorkTrackError as exc:
            self._apply(generation, error=exc.message, status=SessionStatus.identified)
            return

        self._apply(
            generation,
            organization=OrganizationRead.model_validate(org_row) if org_row else None,
            status=SessionStatus.identified,
        )

    # ── Snapshot writes ───────────────────────────────────────────────────────

    def _begin(self) -> int:
        self._latest = next(self._generations)
        return self._latest

    def _apply(self, generation: int, **changes: Any) -> bool:
        if generation != self._latest:
            logger.debug(
                "Discarding stale resolution", generation=generation, latest=self._latest
            )
            return False
        self.state.publish(self.state.snapshot.model_copy(update=changes))
        return True

    def _apply_anonymous(self, generation: int) -> None:
        self._apply(
            generation,
            identity=None,
            user=None,
            organization=None,
            error=None,
            status=SessionStatus.anonymous,
        )

    def _settled_status(self) -> SessionStatus:
        if self.state.snapshot.identity is None:
            return SessionStatus.anonymous
        return SessionStatus.identified

    def _finish_loading(self) -> None:
        if self.state.snapshot.loading:
            self.state.publish(self.state.snapshot.model_copy(update={"loading": False}))
