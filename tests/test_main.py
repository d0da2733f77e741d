import json

import pytest

from incontrol import main as cli
from incontrol.ic_client import InControlClient
from incontrol.models import ErrorKind

TOKEN = {"access_token": "tok_abc", "refresh_token": "ref", "expires_in": 3600}


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path, restore_root_logger):
    monkeypatch.delenv("APP_CONFIG_FILE", raising=False)
    monkeypatch.delenv("LOG_DIR", raising=False)
    monkeypatch.setenv("IC_CLIENT_ID", "cid")
    monkeypatch.setenv("IC_CLIENT_SECRET", "secret")
    monkeypatch.setenv("IC_OUTPUT_DIR", str(tmp_path / "exports"))
    monkeypatch.setattr(InControlClient, "request_token", lambda self, cid, secret: dict(TOKEN))
    return tmp_path


def test_orgs_prints_json(monkeypatch, capsys):
    seen = {}

    def list_organizations(self, token):
        seen["token"] = token
        return [{"id": "org123"}]

    monkeypatch.setattr(InControlClient, "list_organizations", list_organizations)

    assert cli.main(["orgs"]) == 0

    assert seen["token"] == "tok_abc"
    assert json.loads(capsys.readouterr().out) == [{"id": "org123"}]


def test_token_command_prints_response(capsys):
    assert cli.main(["token"]) == 0
    assert json.loads(capsys.readouterr().out) == TOKEN


def test_devices_csv_printed_verbatim(monkeypatch, capsys):
    calls = []

    def list_devices(self, token, org_id, mode):
        calls.append((token, org_id, mode))
        return "Name,Serial\nrouter-1,1111\n"

    monkeypatch.setattr(InControlClient, "list_devices", list_devices)

    assert cli.main(["devices", "org123", "--mode", "csv"]) == 0

    assert calls == [("tok_abc", "org123", "csv")]
    assert capsys.readouterr().out == "Name,Serial\nrouter-1,1111\n"


def test_device_saved_to_output_dir(monkeypatch, cli_env):
    monkeypatch.setattr(
        InControlClient, "get_device", lambda self, token, org_id, device_id: {"id": device_id}
    )

    assert cli.main(["device", "org123", "42", "--save"]) == 0

    saved = cli_env / "exports" / "org123_device_42.json"
    assert json.loads(saved.read_text(encoding="utf-8")) == {"id": "42"}


def test_devices_saved_with_mode_suffix(monkeypatch, cli_env):
    monkeypatch.setattr(
        InControlClient, "list_devices", lambda self, token, org_id, mode: [{"id": 1}]
    )

    assert cli.main(["devices", "org123", "--mode", "full", "--save"]) == 0

    assert (cli_env / "exports" / "org123_devices_full.json").is_file()


def test_api_error_gives_exit_code_1(monkeypatch, capsys):
    def list_organizations(self, token):
        raise self._error(ErrorKind.HTTP_STATUS, "GET https://x/o returned HTTP 503", status_code=503)

    monkeypatch.setattr(InControlClient, "list_organizations", list_organizations)

    assert cli.main(["orgs"]) == 1
    err = capsys.readouterr().err
    assert err.count("Error: GET https://x/o returned HTTP 503") == 1


def test_token_without_access_token(monkeypatch, capsys):
    monkeypatch.setattr(InControlClient, "request_token", lambda self, cid, secret: {"error": "invalid_client"})

    assert cli.main(["orgs"]) == 1
    assert "access_token" in capsys.readouterr().err


def test_missing_configuration(monkeypatch, capsys):
    monkeypatch.delenv("IC_CLIENT_ID")

    assert cli.main(["orgs"]) == 1
    assert "Error: client_id is required" in capsys.readouterr().err


def test_unknown_mode_is_rejected_by_parser():
    with pytest.raises(SystemExit):
        cli.main(["devices", "org123", "--mode", "xml"])


def test_token_response_cannot_be_saved():
    with pytest.raises(SystemExit):
        cli.main(["token", "--save"])


def test_invalid_log_level_gives_exit_code_1(monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    assert cli.main(["orgs"]) == 1
    assert "Invalid log_level 'verbose'" in capsys.readouterr().err
