from __future__ import annotations

import json

import pytest

from gitlytics import cli
from gitlytics.domain.errors import UserNotFoundError


@pytest.mark.unit
class TestCommandLine:

    def test_parse_insights(self):
        args = cli._parse_args(["insights", "octo", "--refresh"])
        assert (args.command, args.username, args.refresh) == ("insights", "octo", True)

    def test_parse_trending_rejects_unknown_since(self):
        with pytest.raises(SystemExit):
            cli._parse_args(["trending", "--since", "yearly"])

    def test_prints_result_as_json(self, monkeypatch, capsys):
        async def fake_run(args, token, db_url):
            return {"data": {"Python": 10}, "last_updated": "2025-01-15T12:00:00Z"}

        monkeypatch.setattr(cli, "build_and_run", fake_run)
        monkeypatch.delenv("DATABASE_URL", raising=False)

        assert cli.main(["languages", "octo", "hello"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out == {"data": {"Python": 10}, "last_updated": "2025-01-15T12:00:00Z"}

    def test_insights_error_exits_non_zero(self, monkeypatch):
        async def fake_run(args, token, db_url):
            raise UserNotFoundError("ghost")

        monkeypatch.setattr(cli, "build_and_run", fake_run)

        assert cli.main(["insights", "ghost"]) == 1

    def test_source_checkout_wrapper_runs_the_packaged_cli(self):
        import main as entry

        assert entry.main is cli.main
