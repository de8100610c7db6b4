from __future__ import annotations

import pytest

from content_admin import cli

HOTEL = "%ED%98%B8%ED%85%94"


@pytest.fixture
def cli_repository(make_repository, monkeypatch: pytest.MonkeyPatch):
    repository = make_repository(
        [
            {"id": "1", "slug": HOTEL},
            {"id": "2", "slug": "seoul"},
        ]
    )
    monkeypatch.setattr(cli, "get_repository", lambda: repository)
    return repository


def test_cli_convert_dry_run_lists_changes(cli_repository, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["convert", "--dry-run"])

    output = capsys.readouterr().out
    assert exit_code == cli.EXIT_OK
    assert "dry run: 1 slug(s) would be converted" in output
    assert f"[1] {HOTEL} -> 호텔" in output
    assert cli_repository.slug_writes == []


def test_cli_convert_reports_blocked_batch(cli_repository, capsys: pytest.CaptureFixture[str]) -> None:
    cli_repository.posts["3"] = {**cli_repository.posts["2"], "id": "3", "slug": "%73%65%6F%75%6C"}

    exit_code = cli.main(["convert"])

    output = capsys.readouterr().out
    assert exit_code == cli.EXIT_FAILED
    assert "conversion blocked" in output
    assert "[3] decoded slug 'seoul' already used by 2" in output
    assert cli_repository.slug_writes == []


def test_cli_convert_applies_selected_posts(cli_repository, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["convert", "--post-id", "1"])

    assert exit_code == cli.EXIT_OK
    assert "done (selected): 1 of 1 converted" in capsys.readouterr().out
    assert cli_repository.slug_writes == [("1", "호텔")]


def test_cli_convert_rejects_unknown_post(cli_repository, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["convert", "--post-id", "missing"])

    assert exit_code == cli.EXIT_INPUT_ERROR
    assert "none of the selected posts exist" in capsys.readouterr().err


def test_cli_canonical_uses_base_url_override(cli_repository, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["canonical", "--post-id", "1", "--base-url", "https://example.com"])

    assert exit_code == cli.EXIT_OK
    assert "1 of 1 canonical URL(s) generated" in capsys.readouterr().out
    assert cli_repository.canonical_writes == [("1", "https://example.com/alltrip/post/호텔")]


def test_cli_canonical_requires_post_id() -> None:
    with pytest.raises(SystemExit):
        cli.main(["canonical"])
