"""
チャンネルセッションストアモジュール。

チャンネルごとの同期サーバーURLと最終通知ステータスをメモリ上で管理する。
全操作は単一のイベントループ上で逐次実行される前提のため、ロックは使用しない。
"""

import logging
from collections.abc import Callable

from src.sync.models import ChannelSession, normalize_channel

logger = logging.getLogger(__name__)


class ChannelSessionStore:
    """チャンネルごとの状態を保持するストア。

    未参加のチャンネル(プライベートセッションを含む)に対する参照は、
    既定の同期サーバーURLを持つセッションを遅延生成して扱う。

    Attributes:
        _default_endpoint: 既定の同期サーバーURL
        _sessions: 正規化済みチャンネル名からセッションへのマッピング
        _on_join_listeners: 参加時に通知するコールバックのリスト
    """

    def __init__(self, default_endpoint: str) -> None:
        """ChannelSessionStoreを初期化する。

        Args:
            default_endpoint: 参加時に設定する既定の同期サーバーURL
        """
        self._default_endpoint = default_endpoint
        self._sessions: dict[str, ChannelSession] = {}
        self._on_join_listeners: list[Callable[[str], None]] = []

    @property
    def default_endpoint(self) -> str:
        """既定の同期サーバーURLを返す。"""
        return self._default_endpoint

    def add_join_listener(self, listener: Callable[[str], None]) -> None:
        """参加時に呼び出されるコールバックを登録する(メンバーシップ永続化用)。"""
        self._on_join_listeners.append(listener)

    def _session(self, channel: str) -> ChannelSession:
        key = normalize_channel(channel)
        session = self._sessions.get(key)
        if session is None:
            session = ChannelSession(sync_endpoint=self._default_endpoint)
            self._sessions[key] = session
        return session

    def on_join(self, channel: str) -> None:
        """チャンネル参加時の処理。

        同期サーバーURLを既定値に戻し、最終ステータスを消去してから
        登録済みのコールバックに参加を通知する。

        Args:
            channel: 参加したチャンネル名
        """
        self._sessions[normalize_channel(channel)] = ChannelSession(
            sync_endpoint=self._default_endpoint
        )
        logger.info("Joined %s, sync server is %s", channel, self._default_endpoint)
        for listener in self._on_join_listeners:
            listener(channel)

    def drop(self, channel: str) -> None:
        """退出したチャンネルのセッションを破棄する。"""
        self._sessions.pop(normalize_channel(channel), None)

    def set_endpoint(self, channel: str, url: str) -> None:
        """同期サーバーURLを変更する。最終ステータスは消去される。"""
        session = self._session(channel)
        session.sync_endpoint = url
        session.last_status = None
        logger.info("Sync server for %s is now %s", channel, url)

    def get_endpoint(self, channel: str) -> str:
        """同期サーバーURLを返す。"""
        return self._session(channel).sync_endpoint

    def set_status(self, channel: str, code: int | None) -> None:
        """最終ステータスを記録する。Noneを渡すと消去する。"""
        self._session(channel).last_status = code

    def get_status(self, channel: str) -> int | None:
        """最終ステータスを返す。未取得の場合はNone。"""
        return self._session(channel).last_status

    def __contains__(self, channel: object) -> bool:
        return isinstance(channel, str) and normalize_channel(channel) in self._sessions
