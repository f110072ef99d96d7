"""Tests for session bootstrap and identity-change resolution."""

import asyncio

import pytest

from worktrack.schemas.session import SessionSnapshot, SessionStatus
from worktrack.schemas.user import MemberCreate
from worktrack.services.auth_service import AuthClient
from worktrack.services.session_resolver import SessionResolver, SessionState


async def _signed_in_client(store, email="john@acme.com", password="correct-horse") -> AuthClient:
    session = await AuthClient(store).sign_in_with_password(email, password)
    return AuthClient(store, access_token=session.access_token)


async def _wait_for_call(store, call) -> None:
    while call not in store.calls:
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_snapshot_starts_uninitialized_and_loading():
    state = SessionState()
    assert state.snapshot.loading is True
    assert state.snapshot.status == SessionStatus.uninitialized


@pytest.mark.asyncio
async def test_no_session_settles_anonymous(store, auth):
    async with SessionResolver(auth, store) as resolver:
        snapshot = resolver.state.snapshot

    assert snapshot == SessionSnapshot(loading=False, status=SessionStatus.anonymous)
    assert snapshot.identity is None
    assert snapshot.user is None
    assert snapshot.organization is None
    assert snapshot.error is None


@pytest.mark.asyncio
async def test_identity_without_user_is_not_an_error(store, auth):
    credential = await auth.sign_up("solo@example.com", "password123")
    client = await _signed_in_client(store, "solo@example.com", "password123")

    async with SessionResolver(client, store) as resolver:
        snapshot = resolver.state.snapshot

    assert snapshot.identity.id == credential.id
    assert snapshot.user is None
    assert snapshot.organization is None
    assert snapshot.loading is False
    assert snapshot.error is None
    assert snapshot.status == SessionStatus.identified


@pytest.mark.asyncio
async def test_full_chain_exposes_store_records(store, memory_store, acme):
    client = await _signed_in_client(store)

    async with SessionResolver(client, store) as resolver:
        snapshot = resolver.state.snapshot

    assert snapshot.identity.id == acme.credential.id
    assert snapshot.user == acme.user
    assert snapshot.organization == acme.organization
    row = await memory_store.select_one("users", id=acme.user.id)
    assert snapshot.user.email == row["email"]
    assert snapshot.user.organization_id == row["organization_id"]
    assert snapshot.user.role.value == row["role"]
    assert snapshot.loading is False
    assert snapshot.error is None


@pytest.mark.asyncio
async def test_resolution_is_idempotent(store, acme):
    client = await _signed_in_client(store)
    resolver = SessionResolver(client, store)
    session = await client.get_session()

    first = await resolver.resolve(session)
    second = await resolver.resolve(session)

    assert first == second


@pytest.mark.asyncio
async def test_session_fetch_failure_is_captured(store):
    client = AuthClient(store, access_token="not-a-jwt")

    async with SessionResolver(client, store) as resolver:
        snapshot = resolver.state.snapshot

    assert snapshot.identity is None
    assert snapshot.loading is False
    assert snapshot.error.startswith("Invalid session token")


@pytest.mark.asyncio
async def test_user_lookup_failure_keeps_identity(store, acme):
    client = await _signed_in_client(store)
    store.fail("select_one", "users")

    async with SessionResolver(client, store) as resolver:
        snapshot = resolver.state.snapshot

    assert snapshot.identity.id == acme.credential.id
    assert snapshot.user is None
    assert snapshot.error == "remote unavailable"
    assert ("select_one", "organizations") not in store.calls
    assert snapshot.loading is False


@pytest.mark.asyncio
async def test_organization_lookup_failure_keeps_user(store, acme):
    client = await _signed_in_client(store)
    store.fail("select_one", "organizations")

    async with SessionResolver(client, store) as resolver:
        snapshot = resolver.state.snapshot

    assert snapshot.user == acme.user
    assert snapshot.organization is None
    assert snapshot.error == "remote unavailable"


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previously_resolved_fields(store, acme):
    client = await _signed_in_client(store)
    resolver = SessionResolver(client, store)
    await resolver.start()

    store.fail("select_one", "organizations")
    snapshot = await resolver.resolve(await client.get_session())

    assert snapshot.organization == acme.organization
    assert snapshot.error == "remote unavailable"

    store.heal("select_one", "organizations")
    snapshot = await resolver.resolve(await client.get_session())
    assert snapshot.error is None
    resolver.close()


@pytest.mark.asyncio
async def test_sign_in_event_resolves_without_loading(store, auth, acme):
    resolver = SessionResolver(auth, store)
    await resolver.start()
    seen: list[SessionSnapshot] = []
    resolver.state.watch(seen.append)

    await auth.sign_in_with_password("john@acme.com", "correct-horse")

    assert resolver.state.snapshot.user == acme.user
    assert resolver.state.snapshot.organization == acme.organization
    assert seen
    assert all(snapshot.loading is False for snapshot in seen)
    resolver.close()


@pytest.mark.asyncio
async def test_sign_out_event_discards_session_data(store, acme):
    client = await _signed_in_client(store)
    async with SessionResolver(client, store) as resolver:
        await client.sign_out()
        snapshot = resolver.state.snapshot

    assert snapshot.identity is None
    assert snapshot.user is None
    assert snapshot.organization is None
    assert snapshot.status == SessionStatus.anonymous


@pytest.mark.asyncio
async def test_identity_switch_drops_previous_user(store, signup_service, acme):
    member = await signup_service.add_member(
        acme.organization.id,
        acme.department.id,
        MemberCreate(email="mary@acme.com", first_name="Mary", last_name="Major"),
    )
    client = await _signed_in_client(store)

    async with SessionResolver(client, store) as resolver:
        assert resolver.state.snapshot.user.id == acme.user.id

        store.fail("select_one", "users")
        await client.sign_in_with_password("mary@acme.com", member.temporary_password)
        snapshot = resolver.state.snapshot

    assert snapshot.identity.id == member.credential.id
    assert snapshot.user is None
    assert snapshot.organization is None
    assert snapshot.error == "remote unavailable"


@pytest.mark.asyncio
async def test_stale_bootstrap_does_not_overwrite_newer_resolution(store, acme):
    client = await _signed_in_client(store)
    resolver = SessionResolver(client, store)
    gate = store.gate("select_one", "users")

    bootstrap = asyncio.create_task(resolver.start())
    await _wait_for_call(store, ("select_one", "users"))

    await client.sign_out()
    assert resolver.state.snapshot.status == SessionStatus.anonymous

    gate.set()
    await bootstrap

    snapshot = resolver.state.snapshot
    assert snapshot.identity is None
    assert snapshot.user is None
    assert snapshot.loading is False
    assert snapshot.status == SessionStatus.anonymous
    resolver.close()


@pytest.mark.asyncio
async def test_close_unsubscribes_listener(store, acme):
    client = await _signed_in_client(store)
    async with SessionResolver(client, store) as resolver:
        pass

    await client.sign_out()

    assert resolver.state.snapshot.user == acme.user


@pytest.mark.asyncio
async def test_shared_state_is_visible_to_readers(store, acme):
    state = SessionState()
    client = await _signed_in_client(store)
    updates: list[SessionSnapshot] = []
    unwatch = state.watch(updates.append)

    async with SessionResolver(client, store, state=state):
        pass
    unwatch()

    assert state.snapshot.organization == acme.organization
    assert updates[-1] is state.snapshot
    assert updates[0].status == SessionStatus.resolving


@pytest.mark.asyncio
async def test_failing_watcher_does_not_break_resolution(store, acme):
    state = SessionState()
    seen: list[SessionSnapshot] = []

    def broken(snapshot: SessionSnapshot) -> None:
        raise RuntimeError("watcher bug")

    state.watch(broken)
    state.watch(seen.append)
    client = await _signed_in_client(store)

    async with SessionResolver(client, store, state=state) as resolver:
        snapshot = resolver.state.snapshot

    assert snapshot.organization == acme.organization
    assert snapshot.loading is False
    assert seen[-1] is snapshot
