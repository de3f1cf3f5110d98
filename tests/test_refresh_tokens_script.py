"""Tests for the command-line refresh sweep."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from edm_sync.clients.edm_oauth import EDMOAuthClient
from edm_sync.services.token_refresher import TokenRefresher
from scripts import refresh_tokens


@pytest.fixture
def wired_script(monkeypatch: pytest.MonkeyPatch, store, cipher, clock, edm_settings):
    responses: dict[str, httpx.Response] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.get("next", httpx.Response(200, json={"access_token": "A"}))

    oauth = EDMOAuthClient(edm_settings, transport=httpx.MockTransport(handler))
    refresher = TokenRefresher(store, oauth, cipher, clock=clock)
    monkeypatch.setattr(refresh_tokens, "get_credential_store", lambda: store)
    monkeypatch.setattr(refresh_tokens, "get_token_refresher", lambda: refresher)
    return responses


def test_sweep_prints_outcomes_and_succeeds(wired_script, seed_entry, capsys) -> None:
    entry = seed_entry()

    exit_code = refresh_tokens.main([])

    assert exit_code == refresh_tokens.EXIT_OK
    report = json.loads(capsys.readouterr().out)
    assert report["processed"] == 1
    assert report["results"][0]["id"] == entry.id


def test_due_only_sweep_skips_fresh_entries(
    wired_script, seed_entry, clock, capsys
) -> None:
    # The script sweeps against the wall clock.
    clock.now = datetime.now(timezone.utc)
    seed_entry()

    exit_code = refresh_tokens.main(["--due-only", "--batch-size", "5"])

    assert exit_code == refresh_tokens.EXIT_OK
    assert json.loads(capsys.readouterr().out)["processed"] == 0


def test_sweep_exit_code_reflects_failures(wired_script, seed_entry, capsys) -> None:
    wired_script["next"] = httpx.Response(503, text="maintenance")
    seed_entry()

    exit_code = refresh_tokens.main([])

    assert exit_code == refresh_tokens.EXIT_REFRESH_FAILED
    report = json.loads(capsys.readouterr().out)
    assert report["results"][0]["error"] == "UpstreamRejected"


@pytest.mark.parametrize("value", ["0", "-5", "ten"])
def test_batch_size_must_be_a_positive_integer(wired_script, value, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        refresh_tokens.main(["--batch-size", value])

    assert excinfo.value.code == 2
    assert "--batch-size" in capsys.readouterr().err
