from datetime import timedelta

from click.testing import CliRunner

from phone_registry import cli as cli_module
from phone_registry.core.security import decode_access_token


class _NonClosingSession:
    def __init__(self, db):
        self._db = db

    def __getattr__(self, name):
        return getattr(self._db, name)

    def close(self):
        pass


def test_issue_token(db, make_employee, monkeypatch):
    operator = make_employee()
    monkeypatch.setattr(cli_module, "SessionLocal", lambda: _NonClosingSession(db))

    result = CliRunner().invoke(cli_module.cli, ["issue-token", "--employee-id", operator.employee_id])

    assert result.exit_code == 0
    payload = decode_access_token(result.output.strip())
    assert payload["sub"] == operator.employee_id


def test_issue_token_unknown_employee(db, monkeypatch):
    monkeypatch.setattr(cli_module, "SessionLocal", lambda: _NonClosingSession(db))

    result = CliRunner().invoke(cli_module.cli, ["issue-token", "--employee-id", "EMP9999999"])

    assert result.exit_code != 0
    assert "not found" in result.output


def test_expire_tokens(db, make_employee, make_token, monkeypatch):
    make_token(make_employee(), expires_in=timedelta(days=-2))
    monkeypatch.setattr(cli_module, "SessionLocal", lambda: _NonClosingSession(db))

    result = CliRunner().invoke(cli_module.cli, ["expire-tokens"])

    assert result.exit_code == 0
    assert "Expired 1 verification tokens" in result.output
