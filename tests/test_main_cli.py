from main import _check_service, _list_users, _parse_args, _resolve_settings

from userhub.proxy import DataServiceProxy
from userhub.transport import TransportSpawnError


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "9090"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 9090


def test_check_subcommand_still_available() -> None:
    args = _parse_args(["check", "--service-url", "http://data:3001"])
    assert args.command == "check"
    assert args.service_url == "http://data:3001"


def test_cli_options_override_settings(monkeypatch) -> None:
    monkeypatch.delenv("USERHUB_CONFIG", raising=False)
    monkeypatch.setenv("USERHUB_PORT", "8181")

    settings = _resolve_settings(_parse_args(["--port", "9090", "--service-url", "http://data:3001/"]))

    assert settings.port == 9090
    assert settings.service_url == "http://data:3001"


def test_list_users_prints_table(capsys, proxy, data_service) -> None:
    data_service.add_user("a@b.com", "Alice")

    assert _list_users(proxy) == 0

    output = capsys.readouterr().out
    assert "1 user(s) found" in output
    assert "Alice" in output


def test_list_users_reports_outage(capsys) -> None:
    class Unreachable:
        def execute(self, request):
            raise TransportSpawnError("refused")

    proxy = DataServiceProxy("http://data:3001", transport=Unreachable())

    assert _list_users(proxy) == 1
    assert "Failed to contact data service" in capsys.readouterr().out


def test_check_reports_connection(capsys, proxy, data_service) -> None:
    assert _check_service(proxy) == 0
    assert "Connected to data service." in capsys.readouterr().out

    data_service.reachable = False
    assert _check_service(proxy) == 1
