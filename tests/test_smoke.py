import pytest


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_index_links(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"USAMPAC Admin" in r.data
    assert b"/pending" in r.data


def test_login_and_admin_access(client, login):
    # Anonymous should be sent to login
    r = client.get("/dashboard")
    assert r.status_code == 302
    assert "/login" in r.headers["Location"]

    r = login()
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")

    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Admin Dashboard" in r.data


def test_every_admin_page_requires_login(client):
    for path in ("/dashboard", "/pending", "/approved", "/rejected", "/notifications", "/polls", "/quiz"):
        r = client.get(path)
        assert r.status_code == 302, path
        assert "/login?next=" in r.headers["Location"], path


def test_post_without_csrf_is_rejected(client, login, backend):
    login()
    r = client.post("/pending/approve", data={"user_id": "c1"})
    assert r.status_code == 400
    assert backend.calls_for(op="rpc") == []


@pytest.mark.parametrize(
    "path,table,empty",
    [
        ("/pending", "candidate_profiles_pending", b"No pending candidates."),
        ("/approved", "candidate_profiles_admin", b"No approved candidates."),
        ("/rejected", "candidate_profiles_admin", b"No rejected candidates."),
        ("/notifications", "notifications", b"No notifications yet."),
        ("/polls", "polls", b"No polls yet."),
        ("/quiz", "quiz_questions", b"No questions yet."),
        ("/dashboard", "candidate_profiles_admin", b"No items"),
    ],
)
def test_unreachable_backend_is_shown_inline(client, login, backend, path, table, empty):
    login()
    backend.unreachable(table)
    r = client.get(path)
    assert r.status_code == 200
    assert b"connection refused" in r.data
    assert empty not in r.data
