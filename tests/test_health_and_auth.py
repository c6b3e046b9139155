from datetime import timedelta

from orderdesk.utils.token import create_access_token, decode_access_token


def test_health_check(client):
    res = client.get("/health/check")
    assert res.status_code == 200
    body = res.json()
    assert body["database"] == "ok"
    assert body["status"] == "ok"


def test_expired_token_is_rejected(client, user):
    token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(minutes=-1))
    assert decode_access_token(token) is None
    res = client.get("/orders", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_token_without_subject_is_rejected(client):
    token = create_access_token({"role": "operator"})
    assert client.get("/orders", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_token_for_unknown_user_is_rejected(client, user):
    token = create_access_token({"sub": str(user.id + 100)})
    assert client.get("/orders", headers={"Authorization": f"Bearer {token}"}).status_code == 401
