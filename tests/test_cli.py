import json
from datetime import date

import pytest

import cli


@pytest.fixture(autouse=True)
def local_env(tmp_path, monkeypatch):
    monkeypatch.delenv("OPS_DATASET", raising=False)
    monkeypatch.setenv("OPS_ACTIVITY_FORCE_FILE", "1")
    monkeypatch.setenv("OPS_ACTIVITY_LOG", str(tmp_path / "activity.jsonl"))


@pytest.fixture
def dataset(tmp_path):
    path = tmp_path / "dataset.json"
    path.write_text(
        json.dumps(
            {
                "tasks": [
                    {
                        "id": "t1",
                        "title": "Quarterly report",
                        "deadline": "2024-03-15T14:00:00",
                        "assignedTo": ["emp-1"],
                        "delegatedBy": "mgr-1",
                    }
                ],
                "followUps": [
                    {
                        "id": "f1",
                        "leadId": "lead-1",
                        "salesRepId": "sales-1",
                        "scheduledAt": "2024-03-15T11:30:00Z",
                        "type": "Call",
                    }
                ],
                "leads": [{"id": "lead-1", "name": "Acme Corp"}],
                "teams": {"mgr-1": ["emp-1", "sales-1"]},
            }
        ),
        encoding="utf-8",
    )
    return path


def _run(tmp_path, dataset, *args):
    return cli.main(["--dataset", str(dataset), "--store-dir", str(tmp_path / "store"), *args])


def test_add_then_show_day(tmp_path, dataset, capsys):
    code = _run(
        tmp_path, dataset, "add", "Standup", "--date", "2024-03-15", "--time", "08:30",
        "--actor", "mgr-1", "--role", "manager",
    )
    assert code == 0
    assert "Standup" in capsys.readouterr().out

    code = _run(tmp_path, dataset, "day", "2024-03-15", "--actor", "mgr-1", "--role", "manager")
    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert "Standup" in lines[1]
    assert "Call with Acme Corp" in lines[2]
    assert "Quarterly report" in lines[3]


def test_month_shows_overflow(tmp_path, dataset, capsys):
    code = _run(
        tmp_path, dataset, "month", "--anchor", "2024-03-01", "--max-visible", "1",
        "--actor", "mgr-1", "--role", "manager",
    )

    assert code == 0
    out = capsys.readouterr().out
    assert out.startswith("March 2024")
    assert "(+ 1 more)" in out


def test_delete_task_is_refused(tmp_path, dataset, capsys):
    code = _run(tmp_path, dataset, "delete", "task", "t1", "--actor", "mgr-1", "--role", "manager")

    assert code == 1
    assert "Go to Tasks" in capsys.readouterr().err


def test_add_without_title_reports_problems(tmp_path, dataset, capsys):
    code = _run(tmp_path, dataset, "add", "", "--date", "2024-03-15", "--actor", "mgr-1")

    assert code == 1
    assert "Title is required." in capsys.readouterr().err


def test_member_outside_team(tmp_path, dataset, capsys):
    code = _run(
        tmp_path, dataset, "day", "2024-03-15", "--member", "emp-9",
        "--actor", "mgr-1", "--role", "manager",
    )

    assert code == 1
    assert "emp-9" in capsys.readouterr().err


def test_missing_dataset(tmp_path, capsys):
    code = _run(tmp_path, tmp_path / "missing.json", "upcoming", "--actor", "mgr-1")

    assert code == 1
    assert "Unable to load dataset" in capsys.readouterr().err


@pytest.fixture
def unnamed_lead_dataset(tmp_path):
    path = tmp_path / "unnamed.json"
    path.write_text(
        json.dumps(
            {
                "tasks": [
                    {
                        "id": "t1",
                        "title": "Quarterly report",
                        "deadline": f"{date.today().isoformat()}T14:00:00",
                        "assignedTo": ["sales-1"],
                        "delegatedBy": "mgr-1",
                    }
                ],
                "followUps": [
                    {
                        "id": "f1",
                        "leadId": "lead-404",
                        "salesRepId": "sales-1",
                        "scheduledAt": f"{date.today().isoformat()}T11:30:00",
                    }
                ],
                "teams": {"mgr-1": ["sales-1"]},
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.mark.parametrize("command", [["day", date.today().isoformat()], ["upcoming"]])
def test_day_and_upcoming_print_source_warnings(
    tmp_path, unnamed_lead_dataset, capsys, monkeypatch, command
):
    monkeypatch.setenv("OPS_STRICT_LEAD_NAMES", "1")

    code = _run(
        tmp_path, unnamed_lead_dataset, *command, "--actor", "mgr-1", "--role", "manager"
    )

    assert code == 0
    captured = capsys.readouterr()
    assert "Quarterly report" in captured.out
    assert "Warning: crm source unavailable: lead lead-404 could not be resolved" in captured.err
