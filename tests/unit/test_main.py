"""
エントリーポイントのテスト。

コマンドライン引数の解釈と設定への反映を検証する。
"""

import logging
from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """環境変数と.envの影響を受けないようにする。"""
    monkeypatch.chdir(tmp_path)
    for name in ("IRC_URL", "SYNC_SERVER_URL", "NICK", "VERBOSE", "SSL_VERIFY_HOSTNAME"):
        monkeypatch.delenv(name, raising=False)
    yield
    logging.disable(logging.NOTSET)


class TestLoadSettings:
    """parse_args/load_settings のテスト。"""

    def test_positional_urls(self) -> None:
        """2つのURLが設定に反映され、未指定のオプションは既定値のままになる。"""
        from src.main import load_settings, parse_args

        settings = load_settings(parse_args(["irc://irc.example.org/room", "https://s.example"]))

        assert settings.irc_url == "irc://irc.example.org/room"
        assert settings.sync_server_url == "https://s.example"
        assert settings.nick == "syslibot"
        assert settings.ssl_verify_hostname is True
        assert settings.verbose is False

    def test_options(self) -> None:
        """各オプションが設定に反映される。"""
        from src.main import load_settings, parse_args

        args = parse_args(
            [
                "-n", "slides",
                "-N", "Slide bot",
                "-r", "rejoin.txt",
                "-C", "latin-1",
                "-k",
                "-v",
                "ircs://irc.example.org",
                "https://s.example",
            ]
        )
        settings = load_settings(args)

        assert settings.nick == "slides"
        assert settings.real_name == "Slide bot"
        assert settings.rejoin_file == "rejoin.txt"
        assert settings.charset == "latin-1"
        assert settings.ssl_verify_hostname is False
        assert settings.verbose is True

    def test_invalid_irc_url_exits(self) -> None:
        """不正なIRC-URLの場合は終了する。"""
        from src.main import run

        with pytest.raises(SystemExit) as excinfo:
            run(["https://irc.example.org", "https://s.example"])

        assert excinfo.value.code != 0

    def test_missing_rejoin_directory_exits(self, tmp_path) -> None:
        """永続化ファイルを作成できない場合は起動せずに終了する。"""
        from src.main import run

        with pytest.raises(SystemExit) as excinfo:
            run(["-r", str(tmp_path / "no" / "file"), "irc://irc.example.org", "https://s.example"])

        assert "file" in str(excinfo.value.code)
