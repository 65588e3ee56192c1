import pytest

from blueidp.directory import DirectoryClient
from blueidp.errors import DirectoryError, UnexpectedShapeError
from blueidp.okta import OktaOperations
from conftest import FakeResponse, FakeSession


ORG = "https://example.okta.com"


def _ops(session, token_cache):
    return OktaOperations(DirectoryClient(token_cache, base_url=ORG, session=session, name="Okta"))


@pytest.mark.parametrize(
    "method,path",
    [
        ("list_users", "api/v1/users"),
        ("list_groups", "api/v1/groups"),
        ("list_apps", "api/v1/apps"),
    ],
)
def test_list_endpoints_pass_limit(token_cache, method, path):
    items = [{"id": "00u1"}, {"id": "00u2"}]
    session = FakeSession({("GET", f"{ORG}/{path}"): FakeResponse(200, items)})

    assert getattr(_ops(session, token_cache), method)() == items
    call = session.calls[0]
    assert call["params"] == {"limit": "5"}
    assert call["headers"]["Authorization"] == "Bearer tok-1"


def test_recent_logs_are_newest_first(token_cache):
    events = [{"uuid": "e2", "eventType": "user.session.start"}]
    session = FakeSession({("GET", f"{ORG}/api/v1/logs"): FakeResponse(200, events)})

    assert _ops(session, token_cache).recent_logs(limit=25) == events
    assert session.calls[0]["params"] == {"limit": "25", "sortOrder": "DESCENDING"}


def test_non_array_response_is_shape_error(token_cache):
    session = FakeSession({("GET", f"{ORG}/api/v1/users"): FakeResponse(200, {"errorCode": "E0000011"})})
    with pytest.raises(UnexpectedShapeError):
        _ops(session, token_cache).list_users(limit=1)


def test_okta_error_status_propagates(token_cache):
    body = '{"errorCode":"E0000006","errorSummary":"You do not have permission to perform the requested action"}'
    session = FakeSession({("GET", f"{ORG}/api/v1/groups"): FakeResponse(403, text=body)})
    with pytest.raises(DirectoryError) as exc_info:
        _ops(session, token_cache).list_groups()
    assert exc_info.value.status == 403
    assert "E0000006" in exc_info.value.body
