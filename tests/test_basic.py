import pytest


def test_healthcheck(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_healthz_is_plain_text(client):
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.content == b"ok"


@pytest.mark.django_db
def test_home_for_anonymous_users(client):
    res = client.get("/home")
    assert res.status_code == 200
    assert b"Form Builder" in res.content


@pytest.mark.django_db
def test_dashboard_requires_login(client):
    res = client.get("/forms/")
    assert res.status_code == 302
    assert "/accounts/login/" in res["Location"]


@pytest.mark.django_db
def test_signup_creates_account_and_logs_in(client):
    res = client.post(
        "/signup/",
        {
            "username": "newbie",
            "email": "newbie@example.com",
            "password1": "a-long-enough-passphrase",
            "password2": "a-long-enough-passphrase",
        },
    )
    assert res.status_code == 302
    res = client.get("/forms/")
    assert res.status_code == 200
