"""
IRCクライアントの単体テスト。

ネットワークには接続せず、受信行の変換と送信行の形式を検証する。
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from src.config.settings import IrcServer
from src.irc.client import (
    MAX_LINE_BYTES,
    IrcClientImpl,
    nick_from_prefix,
    parse_line,
    split_address,
    split_to_fit,
)
from src.sync.models import ConnectedEvent, InvitedEvent, JoinedEvent, MessageEvent


class TestParseLine:
    """parse_lineのテスト。"""

    def test_privmsg_with_prefix(self) -> None:
        """プレフィックスと末尾パラメータを含む行をパースできることを検証。"""
        message = parse_line(":alice!a@host PRIVMSG #room :slideset: https://x.example/")

        assert message.prefix == "alice!a@host"
        assert message.command == "PRIVMSG"
        assert message.params == ["#room", "slideset: https://x.example/"]

    def test_ping_without_prefix(self) -> None:
        """プレフィックスのない行をパースできることを検証。"""
        message = parse_line("PING :irc.example.org")

        assert message.prefix is None
        assert message.command == "PING"
        assert message.params == ["irc.example.org"]

    def test_empty_line_is_rejected(self) -> None:
        """コマンドのない行はValueErrorになることを検証。"""
        with pytest.raises(ValueError):
            parse_line(":server")

    def test_nick_from_prefix(self) -> None:
        """プレフィックスからニックネームを取り出せることを検証。"""
        assert nick_from_prefix("alice!a@host") == "alice"
        assert nick_from_prefix("irc.example.org") == "irc.example.org"
        assert nick_from_prefix(None) == ""


class TestSplitAddress:
    """split_addressのテスト。"""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("syslibot, status", (True, "status")),
            ("SyslIbot: use https://s.example", (True, "use https://s.example")),
            ("syslibot status", (False, "syslibot status")),
            ("hello syslibot, hi", (False, "hello syslibot, hi")),
        ],
    )
    def test_addressing(self, text: str, expected: tuple[bool, str]) -> None:
        """"nick:" または "nick," で始まる発言だけがボット宛になることを検証。"""
        assert split_address(text, "syslibot") == expected


@pytest.fixture
def post_event() -> AsyncMock:
    """モックされたイベント投入先を返す。"""
    return AsyncMock()


@pytest.fixture
def client(post_event: AsyncMock) -> IrcClientImpl:
    """送信ストリームをモックに置き換えたIrcClientImplを返す。"""
    server = IrcServer(ssl=False, host="irc.example.org", port=6667)
    impl = IrcClientImpl(server, nick="syslibot", real_name="SlideSyncBot", post_event=post_event)
    writer = MagicMock()
    writer.drain = AsyncMock()
    impl._writer = writer
    return impl


def sent_lines(client: IrcClientImpl) -> list[str]:
    """送信された行の一覧を返す。"""
    writer = client._writer
    assert writer is not None
    return [call.args[0].decode().rstrip("\r\n") for call in writer.write.call_args_list]


class TestHandleLine:
    """handle_lineのテスト。"""

    @pytest.mark.asyncio
    async def test_ping_is_answered(self, client: IrcClientImpl, post_event: AsyncMock) -> None:
        """PINGにPONGで応答し、イベントは投入しないことを検証。"""
        await client.handle_line("PING :token")

        assert sent_lines(client) == ["PONG :token"]
        post_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_welcome_posts_connected(
        self, client: IrcClientImpl, post_event: AsyncMock
    ) -> None:
        """001でConnectedEventが投入されることを検証。"""
        await client.handle_line(":server 001 syslibot :Welcome")

        post_event.assert_awaited_once_with(ConnectedEvent(nick="syslibot"))

    @pytest.mark.asyncio
    async def test_nick_in_use_retries(self, client: IrcClientImpl) -> None:
        """ニックネームが使用中の場合は別名で再試行することを検証。"""
        await client.handle_line(":server 433 * syslibot :Nickname is already in use")

        assert client.nick == "syslibot_"
        assert sent_lines(client) == ["NICK syslibot_"]

    @pytest.mark.asyncio
    async def test_channel_message(self, client: IrcClientImpl, post_event: AsyncMock) -> None:
        """チャンネル内の発言がMessageEventになることを検証。"""
        await client.handle_line(":alice!a@h PRIVMSG #room :[slide 3]")

        post_event.assert_awaited_once_with(
            MessageEvent(who="alice", channel="#room", body="[slide 3]", addressed=False)
        )

    @pytest.mark.asyncio
    async def test_addressed_channel_message(
        self, client: IrcClientImpl, post_event: AsyncMock
    ) -> None:
        """ボット宛の発言は接頭辞が除去されることを検証。"""
        await client.handle_line(":alice!a@h PRIVMSG #room :syslibot, status")

        post_event.assert_awaited_once_with(
            MessageEvent(who="alice", channel="#room", body="status", addressed=True)
        )

    @pytest.mark.asyncio
    async def test_private_message(self, client: IrcClientImpl, post_event: AsyncMock) -> None:
        """プライベートメッセージはセッション"msg"のボット宛発言になることを検証。"""
        await client.handle_line(":alice!a@h PRIVMSG syslibot :help")

        post_event.assert_awaited_once_with(
            MessageEvent(who="alice", channel="msg", body="help", addressed=True)
        )

    @pytest.mark.asyncio
    async def test_ctcp_is_ignored(self, client: IrcClientImpl, post_event: AsyncMock) -> None:
        """CTCPメッセージは無視されることを検証。"""
        await client.handle_line(":alice!a@h PRIVMSG #room :\x01ACTION waves\x01")

        post_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invite_and_join(self, client: IrcClientImpl, post_event: AsyncMock) -> None:
        """INVITEとJOINがイベントになることを検証。"""
        await client.handle_line(":alice!a@h INVITE syslibot :#talk")
        await client.handle_line(":syslibot!b@h JOIN :#talk")

        assert [call.args[0] for call in post_event.await_args_list] == [
            InvitedEvent(who="alice", channel="#talk"),
            JoinedEvent(who="syslibot", channel="#talk"),
        ]


class TestSending:
    """送信系メソッドのテスト。"""

    @pytest.mark.asyncio
    async def test_send_message_splits_lines(self, client: IrcClientImpl) -> None:
        """改行を含むテキストが行ごとに送信されることを検証。"""
        await client.send_message("#room", "one\ntwo")

        assert sent_lines(client) == ["PRIVMSG #room :one", "PRIVMSG #room :two"]

    @pytest.mark.asyncio
    async def test_join_and_part(self, client: IrcClientImpl) -> None:
        """JOINとPARTの送信形式を検証。"""
        await client.join_channel("#room")
        await client.part_channel("#room")

        assert sent_lines(client) == ["JOIN #room", "PART #room"]

    @pytest.mark.asyncio
    async def test_run_requires_connect(self, client: IrcClientImpl) -> None:
        """connect前にrunを呼ぶとRuntimeErrorになることを検証。"""
        with pytest.raises(RuntimeError):
            await client.run()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["https://x.example/" + "a" * 1000, "é" * 400 + "日本語" * 100])
    async def test_long_message_is_split_into_lines(self, client: IrcClientImpl, text: str) -> None:
        """長いテキストが切り捨てられず、文字を壊さずに複数行で送信されることを検証。"""
        await client.send_message("#room", text)

        writer = client._writer
        assert writer is not None
        raw_lines = [call.args[0] for call in writer.write.call_args_list]
        assert len(raw_lines) > 1
        assert all(len(raw) <= MAX_LINE_BYTES for raw in raw_lines)
        payloads = [
            raw.decode("utf-8").rstrip("\r\n").removeprefix("PRIVMSG #room :")
            for raw in raw_lines
        ]
        assert "".join(payloads) == text


    @pytest.mark.asyncio
    async def test_oversized_raw_line_is_cut_on_character_boundary(
        self, client: IrcClientImpl
    ) -> None:
        """上限を超えるプロトコル行が文字を壊さずに切り詰められることを検証。"""
        await client.send_raw("PRIVMSG #room :" + "é" * 600)

        writer = client._writer
        assert writer is not None
        raw = writer.write.call_args.args[0]
        assert len(raw) <= MAX_LINE_BYTES
        assert raw.decode("utf-8").startswith("PRIVMSG #room :é")

class TestSplitToFit:
    """split_to_fitのテスト。"""

    def test_short_text_is_one_chunk(self) -> None:
        """上限以下のテキストは分割されないことを検証。"""
        assert split_to_fit("hello", 10) == ["hello"]

    def test_multibyte_characters_are_not_cut(self) -> None:
        """マルチバイト文字の途中で分割しないことを検証。"""
        chunks = split_to_fit("ééé", 3)

        assert chunks == ["é", "é", "é"]

    def test_empty_text(self) -> None:
        """空文字列は空リストになることを検証。"""
        assert split_to_fit("", 10) == []
