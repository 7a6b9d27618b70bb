"""
IRCクライアントモジュール。

チャット層(トランスポート)の実装を提供する:
- src.sync.bot.ChatTransportのインターフェースを実装
- asyncioのストリームでサーバーに接続(ircsの場合はTLS)
- 受信行を型付きイベントに変換してイベントキューに投入
- PINGへの応答はこの層で完結させる
"""

import asyncio
import logging
import re
import ssl
from collections.abc import Awaitable, Callable
from typing import NamedTuple

from src.config.settings import IrcServer
from src.sync.models import (
    PRIVATE_SESSION,
    ChatEvent,
    ConnectedEvent,
    InvitedEvent,
    JoinedEvent,
    MessageEvent,
)

logger = logging.getLogger(__name__)

# 1行の最大バイト数(CRLFを含む)
MAX_LINE_BYTES = 512

# サーバーが中継時に付ける ":nick!user@host " の分
RELAY_PREFIX_BYTES = 100

EventCallback = Callable[[ChatEvent], Awaitable[None]]


class IrcMessage(NamedTuple):
    """パース済みのIRCプロトコル行。"""

    prefix: str | None
    command: str
    params: list[str]


def parse_line(line: str) -> IrcMessage:
    """IRCプロトコルの1行をパースする。

    Args:
        line: 改行を除いた受信行(例: ":nick!user@host PRIVMSG #room :hello")

    Returns:
        IrcMessage

    Raises:
        ValueError: コマンドが含まれない場合
    """
    prefix = None
    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")

    trailing = None
    if " :" in line:
        line, trailing = line.split(" :", 1)
    elif line.startswith(":"):
        line, trailing = "", line[1:]

    words = line.split()
    if not words:
        msg = "IRC line without a command"
        raise ValueError(msg)
    params = words[1:]
    if trailing is not None:
        params.append(trailing)
    return IrcMessage(prefix=prefix, command=words[0].upper(), params=params)


def split_to_fit(text: str, limit: int, charset: str = "utf-8") -> list[str]:
    """エンコード後のバイト数がlimit以下になるようにテキストを分割する。

    文字の途中では分割しない。

    Args:
        text: 分割するテキスト
        limit: 1つあたりの最大バイト数
        charset: バイト数の計算に使う文字コード

    Returns:
        分割後のテキストのリスト(空文字列の場合は空リスト)
    """
    chunks: list[str] = []
    current = ""
    size = 0
    for char in text:
        char_size = len(char.encode(charset, errors="replace"))
        if current and size + char_size > limit:
            chunks.append(current)
            current, size = "", 0
        current += char
        size += char_size
    if current:
        chunks.append(current)
    return chunks


def nick_from_prefix(prefix: str | None) -> str:
    """プレフィックス "nick!user@host" からニックネームを取り出す。"""
    if prefix is None:
        return ""
    return prefix.split("!", 1)[0]


def split_address(text: str, nick: str) -> tuple[bool, str]:
    """チャンネル内の発言がボット宛かどうかを判定する。

    "nick: ..." または "nick, ..." で始まる発言をボット宛とみなし、接頭辞を取り除く。

    Args:
        text: 発言内容
        nick: ボットのニックネーム

    Returns:
        (ボット宛かどうか, 接頭辞を除いた本文)
    """
    match = re.match(rf"^\s*{re.escape(nick)}\s*[:,]\s*(.*)$", text, re.IGNORECASE | re.DOTALL)
    if match:
        return True, match.group(1)
    return False, text


class IrcClientImpl:
    """IRCサーバーとの接続を扱うチャット層の実装(src.sync.bot.ChatTransportを満たす)。

    Attributes:
        _server: 接続先サーバー情報
        _nick: 現在のニックネーム
        _real_name: IRCの実名欄
        _charset: 送受信に使う文字コード
        _post_event: 受信イベントの投入先
        _reader: 受信ストリーム
        _writer: 送信ストリーム
    """

    def __init__(
        self,
        server: IrcServer,
        nick: str,
        real_name: str,
        post_event: EventCallback,
        charset: str = "utf-8",
    ) -> None:
        """IrcClientImplを初期化する。

        Args:
            server: 接続先サーバー情報
            nick: 希望するニックネーム
            real_name: IRCの実名欄
            post_event: 受信イベントを受け取る非同期コールバック
            charset: 送受信に使う文字コード
        """
        self._server = server
        self._nick = nick
        self._real_name = real_name
        self._charset = charset
        self._post_event = post_event
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def nick(self) -> str:
        """現在のニックネームを返す。"""
        return self._nick

    async def connect(self) -> None:
        """サーバーに接続し、ユーザー登録を行う。"""
        ssl_context = ssl.create_default_context() if self._server.ssl else None
        logger.info("Connecting to %s:%d", self._server.host, self._server.port)
        self._reader, self._writer = await asyncio.open_connection(
            self._server.host,
            self._server.port,
            ssl=ssl_context,
        )

        if self._server.password:
            await self.send_raw(f"PASS {self._server.password}")
        await self.send_raw(f"NICK {self._nick}")
        username = self._server.user or self._nick
        await self.send_raw(f"USER {username} 0 * :{self._real_name}")

    async def run(self) -> None:
        """接続が切れるまで受信行を処理する。

        Raises:
            RuntimeError: connectの前に呼び出された場合
        """
        if self._reader is None:
            msg = "connect() must be called before run()"
            raise RuntimeError(msg)

        while True:
            raw = await self._reader.readline()
            if not raw:
                logger.info("Connection closed by server")
                return
            line = raw.decode(self._charset, errors="replace").rstrip("\r\n")
            if line:
                await self.handle_line(line)

    async def handle_line(self, line: str) -> None:
        """受信行を処理し、必要に応じてイベントを投入する。"""
        logger.debug("<< %s", line)
        try:
            message = parse_line(line)
        except ValueError:
            logger.warning("Ignoring malformed line: %r", line)
            return

        if message.command == "PING":
            await self.send_raw(f"PONG :{message.params[-1] if message.params else ''}")
        elif message.command == "001":
            if message.params:
                self._nick = message.params[0]
            await self._post_event(ConnectedEvent(nick=self._nick))
        elif message.command == "433":
            # ニックネームが使用中
            self._nick += "_"
            await self.send_raw(f"NICK {self._nick}")
        elif message.command == "PRIVMSG" and len(message.params) >= 2:
            await self._on_privmsg(message)
        elif message.command == "INVITE" and len(message.params) >= 2:
            await self._post_event(
                InvitedEvent(who=nick_from_prefix(message.prefix), channel=message.params[1])
            )
        elif message.command == "JOIN" and message.params:
            await self._post_event(
                JoinedEvent(who=nick_from_prefix(message.prefix), channel=message.params[0])
            )

    async def _on_privmsg(self, message: IrcMessage) -> None:
        target, text = message.params[0], message.params[1]
        # CTCP(ACTIONなど)は扱わない
        if text.startswith("\x01"):
            return

        who = nick_from_prefix(message.prefix)
        if target.casefold() == self._nick.casefold():
            event = MessageEvent(who=who, channel=PRIVATE_SESSION, body=text, addressed=True)
        else:
            addressed, body = split_address(text, self._nick)
            event = MessageEvent(who=who, channel=target, body=body, addressed=addressed)
        await self._post_event(event)

    async def send_raw(self, line: str) -> None:
        """プロトコル行を1行送信する。"""
        if self._writer is None:
            msg = "not connected"
            raise RuntimeError(msg)
        data = line.encode(self._charset, errors="replace")
        if len(data) > MAX_LINE_BYTES - 2:
            logger.warning("Truncating line of %d bytes", len(data))
            line = split_to_fit(line, MAX_LINE_BYTES - 2, self._charset)[0]
            data = line.encode(self._charset, errors="replace")
        self._writer.write(data + b"\r\n")
        await self._writer.drain()

    async def send_message(self, target: str, text: str) -> None:
        """チャンネルまたはユーザーにメッセージを送信する。

        改行を含むテキストは行ごとに分けて送信する。
        1行に収まらない場合は文字の境界で分けて続きの行として送信する。

        Args:
            target: 送信先(チャンネル名またはニックネーム)
            text: 送信するテキスト
        """
        header = f"PRIVMSG {target} :"
        limit = (
            MAX_LINE_BYTES
            - 2
            - RELAY_PREFIX_BYTES
            - len(header.encode(self._charset, errors="replace"))
        )
        for line in text.splitlines():
            for chunk in split_to_fit(line, limit, self._charset):
                await self.send_raw(header + chunk)

    async def join_channel(self, channel: str) -> None:
        """チャンネルに参加する。"""
        logger.info("Joining %s", channel)
        await self.send_raw(f"JOIN {channel}")

    async def part_channel(self, channel: str) -> None:
        """チャンネルから退出する。"""
        logger.info("Leaving %s", channel)
        await self.send_raw(f"PART {channel}")

    async def quit(self, reason: str = "") -> None:
        """QUITを送信して接続を閉じる。"""
        if self._writer is None:
            return
        try:
            await self.send_raw(f"QUIT :{reason}")
            self._writer.close()
            await self._writer.wait_closed()
        except OSError as e:
            logger.debug("Connection already closed: %s", e)
        self._writer = None
        self._reader = None
