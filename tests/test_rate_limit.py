"""Per-email throttling of the OTP endpoints."""
import pytest
from fastapi import HTTPException

from app.platform.config import settings
from app.platform.utils import rate_limit as rate_limit_module
from app.platform.utils.rate_limit import rate_limit, reset_rate_limits
from conftest import API, make_user


def test_forgot_rate_limited(client, monkeypatch):
    monkeypatch.setattr(settings, "OTP_RATE_LIMIT", 2)
    make_user("smith@inst.edu")

    for _ in range(2):
        assert client.post(f"{API}/forgot", json={"email": "smith@inst.edu"}).status_code == 200

    response = client.post(f"{API}/forgot", json={"email": "smith@inst.edu"})
    assert response.status_code == 429
    assert response.json()["message"] == "Too many requests. Please slow down."
    assert int(response.headers["Retry-After"]) >= 1


def test_limit_is_per_email(client, monkeypatch):
    monkeypatch.setattr(settings, "OTP_RATE_LIMIT", 1)
    make_user("smith@inst.edu")
    make_user("jones@inst.edu")

    assert client.post(f"{API}/forgot", json={"email": "smith@inst.edu"}).status_code == 200
    assert client.post(f"{API}/forgot", json={"email": "jones@inst.edu"}).status_code == 200
    assert client.post(f"{API}/forgot", json={"email": "smith@inst.edu"}).status_code == 429


def test_limit_disabled(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
    for _ in range(5):
        rate_limit("login:smith@inst.edu", max_requests=1)


def test_reset_clears_window():
    rate_limit("verify:smith@inst.edu", max_requests=1, window_seconds=60)
    with pytest.raises(HTTPException) as exc:
        rate_limit("verify:smith@inst.edu", max_requests=1, window_seconds=60)
    assert exc.value.status_code == 429

    reset_rate_limits()
    rate_limit("verify:smith@inst.edu", max_requests=1, window_seconds=60)


def test_zero_allowance_blocks_immediately():
    with pytest.raises(HTTPException) as exc:
        rate_limit("register:smith@inst.edu", max_requests=0, window_seconds=30)
    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "31"


def test_idle_keys_are_forgotten(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit_module, "time", lambda: clock[0])

    rate_limit("forgot:smith@inst.edu", window_seconds=10)
    rate_limit("forgot:jones@inst.edu", window_seconds=10)
    assert "forgot:smith@inst.edu" in rate_limit_module._requests

    clock[0] += rate_limit_module.SWEEP_INTERVAL_SECONDS + 10
    rate_limit("login:brown@inst.edu", window_seconds=10)

    assert set(rate_limit_module._requests) == {"login:brown@inst.edu"}
    assert set(rate_limit_module._windows) == {"login:brown@inst.edu"}


def test_key_dropped_when_its_window_empties(monkeypatch):
    clock = [5000.0]
    monkeypatch.setattr(rate_limit_module, "time", lambda: clock[0])

    rate_limit("verify:smith@inst.edu", max_requests=1, window_seconds=10)
    clock[0] += 11
    # Same key again: its stale entry is pruned and the request is allowed
    rate_limit("verify:smith@inst.edu", max_requests=1, window_seconds=10)
    assert rate_limit_module._requests["verify:smith@inst.edu"] == [5011.0]
