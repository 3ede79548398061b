"""Tests for the gh and jira CLI adapters, with the CLI calls stubbed out."""

import subprocess
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts" / "lib"))

import github_prs
import jira_tickets
import utils
from utils import CommandError


PR_LIST = [
    {"number": 41, "title": "[FSW-12] Add telemetry", "url": "https://github.com/org/repo/pull/41",
     "state": "OPEN", "headRefName": "fsw-12-telemetry"},
    {"number": 42, "title": "Bump deps", "url": "https://github.com/org/repo/pull/42",
     "state": "OPEN", "headRefName": "deps"},
]


class TestPRHelpers:
    @pytest.mark.parametrize("title, project_key, expected", [
        ("[FSW-12] Add telemetry", None, "FSW-12"),
        ("fsw-12: add telemetry", "FSW", "FSW-12"),
        ("fsw-12: add telemetry", None, None),
        ("Add telemetry (FSW-12)", "FSW", "FSW-12"),
        ("[ABC-3] Other project", "FSW", None),
        ("Bump deps", None, None),
        ("Bump node-18 and fix utf-8 decoding", None, None),
        ("Use sha-256 digests [OPS-4]", None, "OPS-4"),
    ])
    def test_extract_jira_id(self, title, project_key, expected):
        assert github_prs.extract_jira_id(title, project_key) == expected

    def test_hil_checks_status(self):
        assert github_prs.hil_checks_status([
            {"name": "lint", "status": "COMPLETED", "conclusion": "FAILURE"},
            {"name": "HIL tests", "status": "COMPLETED", "conclusion": "SUCCESS"},
        ]) is True
        assert github_prs.hil_checks_status([
            {"name": "hil", "status": "COMPLETED", "conclusion": "FAILURE"},
        ]) is False
        assert github_prs.hil_checks_status([{"name": "hil", "status": "IN_PROGRESS"}]) is None
        assert github_prs.hil_checks_status([]) is None
        assert github_prs.hil_checks_status(None) is None

    def test_approval_and_review_state(self):
        assert github_prs.has_approval({"reviewDecision": "APPROVED"})
        assert github_prs.has_approval({"reviews": [{"state": "COMMENTED"}, {"state": "APPROVED"}]})
        assert not github_prs.has_approval({"reviews": []})
        assert github_prs.review_state({"reviewDecision": "CHANGES_REQUESTED"}) == "CHANGES_REQUESTED"
        assert github_prs.review_state({"reviews": [{"state": "COMMENTED"}]}) == "COMMENTED"
        assert github_prs.review_state({}) == "PENDING"


class TestFetchOpenPRs:
    def test_builds_pull_requests(self, monkeypatch):
        calls = []

        def fake_json(cli_path, args, timeout=30):
            calls.append(args)
            if args[:2] == ["pr", "list"]:
                return PR_LIST
            if args[2] == "41":
                return {
                    "statusCheckRollup": [{"name": "HIL", "status": "COMPLETED", "conclusion": "SUCCESS"}],
                    "reviews": [{"state": "APPROVED"}],
                    "reviewDecision": "APPROVED",
                }
            return {"statusCheckRollup": [], "reviews": [], "reviewDecision": ""}

        monkeypatch.setattr(github_prs, "run_cli_json", fake_json)
        prs = github_prs.fetch_open_prs("org/repo")

        assert [pr.number for pr in prs] == [41, 42]
        assert prs[0].jira_id == "FSW-12"
        assert prs[0].hil_checks_passing is True
        assert prs[0].has_approval is True
        assert prs[0].branch == "fsw-12-telemetry"
        assert prs[1].jira_id is None
        assert prs[1].hil_checks_passing is None
        assert prs[1].review_state == "PENDING"
        assert "@me" in calls[0]
        assert calls[1][:3] == ["pr", "view", "41"]

    def test_detail_failure_keeps_pr(self, monkeypatch):
        def fake_json(cli_path, args, timeout=30):
            if args[:2] == ["pr", "list"]:
                return PR_LIST[:1]
            raise CommandError("boom")

        monkeypatch.setattr(github_prs, "run_cli_json", fake_json)
        prs = github_prs.fetch_open_prs("org/repo")

        assert len(prs) == 1
        assert prs[0].review_state == "UNKNOWN"
        assert prs[0].has_approval is False
        assert prs[0].hil_checks_passing is None

    @pytest.mark.parametrize("listed", [
        [{"title": "no number"}],
        ["not an object"],
        {"number": 1},
    ])
    def test_malformed_list_raises_command_error(self, monkeypatch, listed):
        monkeypatch.setattr(github_prs, "run_cli_json", lambda *a, **k: listed)
        with pytest.raises(CommandError):
            github_prs.fetch_open_prs("org/repo")

    @pytest.mark.parametrize("details", [
        ["not", "an", "object"],
        "text",
        {"statusCheckRollup": ["not a check"]},
    ])
    def test_malformed_details_keep_pr(self, monkeypatch, details):
        def fake_json(cli_path, args, timeout=30):
            if args[:2] == ["pr", "list"]:
                return PR_LIST[:1]
            return details

        monkeypatch.setattr(github_prs, "run_cli_json", fake_json)
        prs = github_prs.fetch_open_prs("org/repo")
        assert [pr.number for pr in prs] == [41]
        assert prs[0].review_state == "UNKNOWN"

    def test_list_failure_propagates(self, monkeypatch):
        def fake_json(cli_path, args, timeout=30):
            raise CommandError("gh not authenticated")

        monkeypatch.setattr(github_prs, "run_cli_json", fake_json)
        with pytest.raises(CommandError):
            github_prs.fetch_open_prs("org/repo")

    def test_check_auth(self, monkeypatch):
        monkeypatch.setattr(github_prs, "run_cli", lambda *a, **k: "")
        assert github_prs.check_auth()

        def fail(*a, **k):
            raise CommandError("no")

        monkeypatch.setattr(github_prs, "run_cli", fail)
        assert not github_prs.check_auth()


class TestJiraHelpers:
    def test_build_jql(self):
        jql = jira_tickets.build_jql("FSW")
        assert jql == (
            'project = FSW AND assignee = currentUser() AND status IN ("In Progress", "In Review")'
            " ORDER BY updated DESC"
        )
        assert "ORDER BY" not in jira_tickets.build_jql("FSW", order=False)

    def test_build_ticket_url(self):
        assert jira_tickets.build_ticket_url("https://jira.example.com/", "FSW-1") == (
            "https://jira.example.com/browse/FSW-1"
        )

    def test_parse_plain_output_skips_short_lines(self):
        output = "FSW-1\tBuild thing\tIn Progress\nFSW-2\tno status\n\nFSW-3\tReview me\tIn Review\n"
        tickets = jira_tickets.parse_plain_output(output, "https://jira.example.com")
        assert [(t.key, t.status) for t in tickets] == [("FSW-1", "In Progress"), ("FSW-3", "In Review")]
        assert tickets[0].url == "https://jira.example.com/browse/FSW-1"

    def test_parse_json_issues(self):
        issues = [{"key": "FSW-4", "fields": {"summary": "Do it", "status": {"name": "In Review"}}}]
        tickets = jira_tickets.parse_json_issues(issues, "https://jira.example.com")
        assert tickets[0].summary == "Do it"
        assert tickets[0].status == "In Review"


class TestFetchActiveTickets:
    def test_plain_output(self, monkeypatch):
        monkeypatch.setattr(jira_tickets, "run_cli", lambda *a, **k: "FSW-1\tBuild thing\tIn Progress\n")
        tickets = jira_tickets.fetch_active_tickets("FSW", "https://jira.example.com")
        assert [t.key for t in tickets] == ["FSW-1"]

    def test_falls_back_to_json(self, monkeypatch):
        def fail(*a, **k):
            raise CommandError("unknown flag --plain")

        monkeypatch.setattr(jira_tickets, "run_cli", fail)
        monkeypatch.setattr(
            jira_tickets,
            "run_cli_json",
            lambda *a, **k: [{"key": "FSW-2", "fields": {"summary": "S", "status": {"name": "In Review"}}}],
        )
        tickets = jira_tickets.fetch_active_tickets("FSW", "https://jira.example.com")
        assert [(t.key, t.status) for t in tickets] == [("FSW-2", "In Review")]

    def test_all_formats_fail_gives_empty(self, monkeypatch):
        def fail(*a, **k):
            raise CommandError("jira missing")

        monkeypatch.setattr(jira_tickets, "run_cli", fail)
        monkeypatch.setattr(jira_tickets, "run_cli_json", fail)
        assert jira_tickets.fetch_active_tickets("FSW", "https://jira.example.com") == []

    def test_check_auth_tries_both_commands(self, monkeypatch):
        seen = []

        def fake(cli_path, args, timeout=30):
            seen.append(args)
            if args == ["me"]:
                raise CommandError("unknown command")
            return "me@example.com"

        monkeypatch.setattr(jira_tickets, "run_cli", fake)
        assert jira_tickets.check_auth()
        assert seen == [["me"], ["myself"]]


class TestRunCli:
    def test_success_returns_stdout(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            assert kwargs["check"] is True
            return subprocess.CompletedProcess(cmd, 0, stdout='{"ok": true}', stderr="")

        monkeypatch.setattr(utils.subprocess, "run", fake_run)
        assert utils.run_cli_json("/bin/gh", ["api"]) == {"ok": True}

    @pytest.mark.parametrize("error", [
        subprocess.TimeoutExpired(["gh"], 30),
        subprocess.CalledProcessError(1, ["gh"]),
        FileNotFoundError("gh"),
    ])
    def test_failures_become_command_error(self, monkeypatch, error):
        def fake_run(cmd, **kwargs):
            raise error

        monkeypatch.setattr(utils.subprocess, "run", fake_run)
        with pytest.raises(CommandError):
            utils.run_cli("/bin/gh", ["pr", "list"])

    def test_invalid_json(self, monkeypatch):
        monkeypatch.setattr(
            utils.subprocess, "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, stdout="not json", stderr=""),
        )
        with pytest.raises(CommandError):
            utils.run_cli_json("/bin/gh", ["api"])

    def test_resolve_cli_path_prefers_absolute(self):
        assert utils.resolve_cli_path("/opt/bin/jira") == "/opt/bin/jira"
