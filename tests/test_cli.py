"""Tests for manage.py -- create-user and verify-token commands."""

import pytest

import manage
from auth.models import Role
from auth.tokens import TokenIssuer
from core.config import Settings
from tests.conftest import TEST_SECRET


@pytest.fixture
def cli_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        _env_file=None,
        secret_key=TEST_SECRET,
        bcrypt_rounds=4,
        database_url=f"sqlite:///{tmp_path / 'cli.db'}",
    )
    monkeypatch.setattr(manage, "get_settings", lambda: settings)
    return settings


class TestCreateUser:
    def test_creates_user(self, cli_settings: Settings, capsys) -> None:
        code = manage.main(
            ["create-user", "--email", "boss@x.com", "--name", "Boss", "--role", "ceo", "--password", "Secret123!"]
        )
        assert code == 0
        assert "Created ceo boss@x.com" in capsys.readouterr().out

    def test_duplicate_reports_error(self, cli_settings: Settings, capsys) -> None:
        args = ["create-user", "--email", "dup@x.com", "--name", "D", "--role", "supplier", "--password", "pw"]
        assert manage.main(args) == 0
        assert manage.main(args) == 1
        assert "user_exists" in capsys.readouterr().out

    def test_prompts_for_password(self, cli_settings: Settings, monkeypatch, capsys) -> None:
        monkeypatch.setattr(manage.getpass, "getpass", lambda prompt="": "Prompted123!")
        code = manage.main(["create-user", "--email", "p@x.com", "--name", "P", "--role", "administrator"])
        assert code == 0

    def test_unknown_role_rejected_by_parser(self, cli_settings: Settings) -> None:
        with pytest.raises(SystemExit):
            manage.main(["create-user", "--email", "r@x.com", "--name", "R", "--role", "janitor"])


class TestVerifyToken:
    def test_valid_token(self, cli_settings: Settings, capsys) -> None:
        token = TokenIssuer(TEST_SECRET).mint("user-42", Role.supplier)
        assert manage.main(["verify-token", token]) == 0
        out = capsys.readouterr().out
        assert "user-42" in out
        assert "supplier" in out

    def test_garbage_token(self, cli_settings: Settings, capsys) -> None:
        assert manage.main(["verify-token", "garbage"]) == 1
        assert "malformed_token" in capsys.readouterr().out
