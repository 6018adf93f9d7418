from conftest import make_token


def test_bearer_token_authenticates(client, owner_id):
    response = client.get("/api/users/me/quota", headers={"Authorization": f"Bearer {make_token(owner_id)}"})
    assert response.status_code == 200


def test_session_cookie_authenticates(client, owner_id):
    response = client.get("/api/users/me/quota", headers={"Cookie": f"sb-access-token={make_token(owner_id)}"})
    assert response.status_code == 200


def test_expired_or_foreign_tokens_are_rejected(client, owner_id):
    for token in (make_token(owner_id, expires_in=-60), make_token(owner_id, audience="anon"), "garbage"):
        response = client.get("/api/users/me/quota", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": {"code": "UNAUTHORIZED", "message": "User not authenticated"}}
