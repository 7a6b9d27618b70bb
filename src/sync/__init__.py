"""
スライド同期モジュール。

コマンドのディスパッチ、チャンネルごとの状態管理、同期URLの組み立て、
同期サーバーへの非同期通知、参加チャンネルの永続化を担当する。
"""

from src.sync.bot import SlideSyncBot
from src.sync.delivery import DeliveryService, DeliveryServiceImpl, create_http_client
from src.sync.dispatcher import CommandDispatcher
from src.sync.membership import FileMembershipStore, MembershipError, MembershipStore
from src.sync.models import (
    ChannelSession,
    DeliveryRequest,
    DeliveryResult,
    MessageEvent,
    ReplyAction,
    ReplyKind,
)
from src.sync.session_store import ChannelSessionStore
from src.sync.url_composer import build_delivery_url, compose_sync_url, map_channel_id

__all__ = [
    "ChannelSession",
    "ChannelSessionStore",
    "CommandDispatcher",
    "DeliveryRequest",
    "DeliveryResult",
    "DeliveryService",
    "DeliveryServiceImpl",
    "FileMembershipStore",
    "MembershipError",
    "MembershipStore",
    "MessageEvent",
    "ReplyAction",
    "ReplyKind",
    "SlideSyncBot",
    "build_delivery_url",
    "compose_sync_url",
    "create_http_client",
    "map_channel_id",
]
