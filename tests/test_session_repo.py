from datetime import timedelta

import pytest
from pymongo.errors import DuplicateKeyError

from sessionguard.services.auth_service import build_session
from sessionguard.services.session_limiter import SESSION_LIMIT_REASON
from sessionguard.services.token_service import hash_token


@pytest.fixture
def new_session(sessions, user, device, clock):
    def _new(token: str, family: str = "fam-1", **overrides):
        now = clock()
        record = build_session(
            user_id=str(user["_id"]),
            refresh_token=token,
            token_family=family,
            device=device,
            now=now,
            expires_at=now + timedelta(days=7),
        )
        for key, value in overrides.items():
            setattr(record, key, value)
        record.id = sessions.create_session(record)
        return record

    return _new


def test_atomic_consume_returns_previous_state_once(sessions, new_session):
    created = new_session("tok-a")
    first = sessions.find_and_revoke_atomic(hash_token("tok-a"), "Token rotated")
    assert first is not None
    assert first.id == created.id
    assert first.is_revoked is False

    assert sessions.find_and_revoke_atomic(hash_token("tok-a"), "Token rotated") is None

    stored = sessions.find_revoked(hash_token("tok-a"))
    assert stored.is_revoked is True
    assert stored.revoked_reason == "Token rotated"
    assert stored.revoked_at is not None


def test_expired_session_is_not_consumable(sessions, new_session, clock):
    created = new_session("tok-a")
    assert created.is_active(clock())
    clock.advance(days=8)
    assert not created.is_active(clock())
    assert sessions.find_and_revoke_atomic(hash_token("tok-a"), "Token rotated") is None
    assert sessions.find_revoked(hash_token("tok-a")) is None


def test_duplicate_refresh_hash_is_rejected(new_session):
    new_session("tok-a")
    with pytest.raises(DuplicateKeyError):
        new_session("tok-a")


def test_revoke_family_keeps_earlier_reasons(sessions, new_session):
    new_session("tok-a", family="fam-x")
    new_session("tok-b", family="fam-x")
    new_session("tok-c", family="fam-y")
    sessions.find_and_revoke_atomic(hash_token("tok-a"), "Token rotated")

    assert sessions.revoke_family("fam-x", "theft") == 1
    assert sessions.find_revoked(hash_token("tok-a")).revoked_reason == "Token rotated"
    assert sessions.find_revoked(hash_token("tok-b")).revoked_reason == "theft"
    assert sessions.find_active_by_hash(hash_token("tok-c")) is not None


def test_list_active_ordering(sessions, new_session, user, clock):
    first = new_session("tok-a")
    clock.advance(minutes=1)
    second = new_session("tok-b")
    clock.advance(minutes=1)
    third = new_session("tok-c")
    sessions.revoke_many([second.id], "gone")

    uid = str(user["_id"])
    assert [s.id for s in sessions.list_active(uid)] == [first.id, third.id]
    assert [s.id for s in sessions.list_active(uid, ascending=False)] == [third.id, first.id]
    assert sessions.count_active(uid) == 2


def test_get_active_for_user_checks_owner(sessions, new_session, make_user, user):
    created = new_session("tok-a")
    other = make_user()
    assert sessions.get_active_for_user(created.id, str(user["_id"])).id == created.id
    assert sessions.get_active_for_user(created.id, str(other["_id"])) is None
    assert sessions.get_active_for_user("not-an-id", str(user["_id"])) is None


def test_revoke_others_keeps_current(sessions, new_session, user):
    new_session("tok-a")
    new_session("tok-b")
    new_session("tok-c")
    assert sessions.revoke_others(str(user["_id"]), hash_token("tok-b"), "others") == 2
    remaining = sessions.list_active(str(user["_id"]))
    assert [s.refresh_token_hash for s in remaining] == [hash_token("tok-b")]


def test_count_suspicious_only_counts_unverified(sessions, new_session, user):
    new_session("tok-a", is_suspicious=True, is_verified=False, verification_token="v")
    flagged = new_session("tok-b", is_suspicious=True, is_verified=False, verification_token="w")
    new_session("tok-c")
    uid = str(user["_id"])
    assert sessions.count_suspicious(uid) == 2

    verified = sessions.mark_verified(flagged.id)
    assert verified.is_verified is True
    assert verified.verification_token is None
    assert verified.verification_token_expires is None
    assert sessions.count_suspicious(uid) == 1


def test_touch_last_used_is_throttled(sessions, new_session, clock):
    created = new_session("tok-a")
    h = hash_token("tok-a")
    clock.advance(minutes=2)
    assert sessions.touch_last_used(h, clock() - timedelta(minutes=5)) is False

    clock.advance(minutes=4)
    assert sessions.touch_last_used(h, clock() - timedelta(minutes=5)) is True
    assert sessions.find_active_by_hash(h).last_used_at == clock()
    assert sessions.find_active_by_hash(h).last_used_at > created.last_used_at


def test_limiter_revokes_oldest_on_fourth_login(auth, sessions, user, device, clock, settings):
    uid = str(user["_id"])
    results = []
    for _ in range(4):
        results.append(auth.open_session(user, device))
        assert sessions.count_active(uid) <= settings.max_sessions_per_user
        clock.advance(minutes=1)

    active_ids = {s.id for s in sessions.list_active(uid)}
    assert active_ids == {r.session.id for r in results[1:]}

    oldest = sessions.find_revoked(hash_token(results[0].refresh_token))
    assert oldest.revoked_reason == SESSION_LIMIT_REASON
