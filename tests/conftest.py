"""
Pytest設定と共有フィクスチャ。

プロジェクト全体で共有されるフィクスチャと設定を定義します。
"""

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
from src.sync.models import MessageEvent
from src.sync.session_store import ChannelSessionStore

DEFAULT_SYNC = "https://sync.example/sse"


@pytest.fixture
def store() -> ChannelSessionStore:
    """既定の同期サーバーを持ち、#roomに参加済みのストアを提供。"""
    store = ChannelSessionStore(DEFAULT_SYNC)
    store.on_join("#room")
    return store


@pytest.fixture
def mock_delivery() -> MagicMock:
    """モックされた通知サービスを提供。"""
    return MagicMock()


@pytest.fixture
def channel_message() -> Callable[..., MessageEvent]:
    """チャンネル内の発言イベントを生成する関数を提供。"""

    def factory(body: str, channel: str = "#room", addressed: bool = False) -> MessageEvent:
        return MessageEvent(who="alice", channel=channel, body=body, addressed=addressed)

    return factory


@pytest.fixture
def private_message() -> Callable[[str], MessageEvent]:
    """プライベートメッセージのイベントを生成する関数を提供。"""

    def factory(body: str) -> MessageEvent:
        return MessageEvent(who="alice", channel="msg", body=body, addressed=True)

    return factory
