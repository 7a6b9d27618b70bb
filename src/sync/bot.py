"""
SlideSyncBotモジュール。

単一のイベントキューを逐次処理するイベントループを提供する:
- チャット層からの受信イベント(接続、招待、参加、発言)
- 非同期通知の結果(DeliveryResult)
上記を1件ずつ処理するため、チャンネルセッションストアの更新が競合することはない。
"""

import asyncio
import logging
from typing import Protocol

from src.sync.dispatcher import CommandDispatcher
from src.sync.membership import MembershipStore
from src.sync.models import (
    ChatEvent,
    ConnectedEvent,
    DeliveryResult,
    InvitedEvent,
    JoinedEvent,
    MessageEvent,
    ReplyKind,
)
from src.sync.session_store import ChannelSessionStore

logger = logging.getLogger(__name__)


class ChatTransport(Protocol):
    """チャット層依存のProtocol型。"""

    @property
    def nick(self) -> str: ...

    async def send_message(self, target: str, text: str) -> None: ...

    async def join_channel(self, channel: str) -> None: ...

    async def part_channel(self, channel: str) -> None: ...


class SlideSyncBot:
    """イベントキューを処理するボット本体。

    Attributes:
        _transport: チャット層
        _dispatcher: コマンドディスパッチャ
        _store: チャンネルセッションストア
        _membership: メンバーシップ永続化
        _events: 受信イベントと通知結果を受け取るキュー
        _initial_channels: 接続時に参加するチャンネル(IRC-URLで指定されたもの)
    """

    def __init__(
        self,
        transport: ChatTransport,
        dispatcher: CommandDispatcher,
        store: ChannelSessionStore,
        membership: MembershipStore,
        events: "asyncio.Queue[ChatEvent]",
        initial_channels: list[str] | None = None,
    ) -> None:
        """SlideSyncBotを初期化する。

        Args:
            transport: チャット層
            dispatcher: コマンドディスパッチャ
            store: チャンネルセッションストア
            membership: メンバーシップ永続化
            events: イベントキュー(チャット層と通知サービスが投入する)
            initial_channels: 接続時に参加するチャンネル
        """
        self._transport = transport
        self._dispatcher = dispatcher
        self._store = store
        self._membership = membership
        self._events = events
        self._initial_channels = initial_channels or []

    async def post_event(self, event: ChatEvent) -> None:
        """イベントをキューに投入する。"""
        await self._events.put(event)

    async def run(self) -> None:
        """イベントを1件ずつ処理し続ける。キャンセルされるまで戻らない。"""
        while True:
            event = await self._events.get()
            try:
                await self.handle_event(event)
            except Exception:
                logger.exception("Failed to handle %s", type(event).__name__)
            finally:
                self._events.task_done()

    async def handle_event(self, event: ChatEvent) -> None:
        """イベントの種類に応じて処理を振り分ける。"""
        if isinstance(event, MessageEvent):
            await self._on_message(event)
        elif isinstance(event, DeliveryResult):
            self._on_delivery_result(event)
        elif isinstance(event, JoinedEvent):
            self._on_joined(event)
        elif isinstance(event, InvitedEvent):
            logger.info("Invited by %s to %s", event.who, event.channel)
            await self._transport.join_channel(event.channel)
        elif isinstance(event, ConnectedEvent):
            await self._on_connected()

    async def _on_connected(self) -> None:
        channels = set(self._membership.channels)
        channels.update(channel.lower() for channel in self._initial_channels)
        for channel in sorted(channels):
            await self._transport.join_channel(channel)

    def _on_joined(self, event: JoinedEvent) -> None:
        # 他のユーザーの参加は無視する
        if event.who.casefold() != self._transport.nick.casefold():
            return
        self._store.on_join(event.channel)

    def _on_delivery_result(self, result: DeliveryResult) -> None:
        # byeで退出した後に届いた結果でセッションを作り直さない
        if result.channel not in self._store:
            logger.debug("Ignoring result for %s: no session", result.channel)
            return
        self._store.set_status(result.channel, result.status_code)
        logger.info("Result %s --> %d", result.url, result.status_code)

    async def _on_message(self, event: MessageEvent) -> None:
        action = self._dispatcher.dispatch(event)

        if action.kind is ReplyKind.TEXT and action.text:
            target = event.who if event.is_private else event.channel
            await self._transport.send_message(target, action.text)
        elif action.kind is ReplyKind.LEAVE:
            await self._transport.part_channel(event.channel)
            self._membership.forget(event.channel)
            self._store.drop(event.channel)
