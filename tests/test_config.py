import pytest
from pydantic import ValidationError

from sessionguard.core.config import Settings
from sessionguard.services.auth_service import AuthService
from sessionguard.services.session_service import SessionService


@pytest.mark.parametrize("value", [0, -1])
def test_session_cap_must_be_positive(value):
    with pytest.raises(ValidationError):
        Settings(max_sessions_per_user=value)


def test_single_session_cap_matches_stats(sessions, users, codec, clock, user, device):
    cfg = Settings(max_sessions_per_user=1)
    auth = AuthService(sessions, users, codec, cfg, clock)
    stats_service = SessionService(sessions, cfg, clock)
    uid = str(user["_id"])

    first = auth.open_session(user, device)
    second = auth.open_session(user, device)

    stats = stats_service.session_stats(uid)
    assert stats.max_sessions == 1
    assert stats.active_sessions == 1
    assert [s.id for s in sessions.list_active(uid)] == [second.session.id]
    assert sessions.find_active_by_hash(first.session.refresh_token_hash) is None


@pytest.mark.parametrize(
    "prefix,expected",
    [("/api", "/api"), ("api/", "/api"), ("", ""), ("/", "/")],
)
def test_api_prefix_normalized(prefix, expected):
    assert Settings(api_prefix=prefix).api_prefix_normalized == expected
