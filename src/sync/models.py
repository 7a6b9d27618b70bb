"""
スライド同期関連の型定義モジュール。

チャット層とコアの間でやり取りする型をPydanticモデルとして実装する:
- ChannelSession: チャンネルごとの状態(同期サーバーURL、最終ステータス)
- DeliveryRequest: スライド切替通知の要求
- DeliveryResult: 通知結果(非同期に到着するイベント)
- ReplyKind / ReplyAction: ディスパッチ結果
- ChatEvent系: トランスポートから届く受信イベント
"""

from enum import Enum

from pydantic import BaseModel, Field

# プライベートメッセージのセッション名
PRIVATE_SESSION = "msg"


def normalize_channel(channel: str) -> str:
    """チャンネル名を状態管理用のキーに正規化する(大文字小文字を同一視)。"""
    return channel.casefold()


class ChannelSession(BaseModel):
    """チャンネルごとの可変状態。

    Attributes:
        sync_endpoint: このチャンネルで使用する同期サーバーのURL
        last_status: 直近の通知で得られたHTTPステータスコード(未取得ならNone)
    """

    sync_endpoint: str
    last_status: int | None = None


class DeliveryRequest(BaseModel):
    """スライド切替通知の要求。

    Attributes:
        channel: 通知元のチャンネル名
        endpoint: 通知先の同期サーバーURL
        slide_ref: スライド参照(数値、"++"、"$"、"^"、"-"のいずれか)
    """

    channel: str
    endpoint: str
    slide_ref: str = Field(..., min_length=1)


class DeliveryResult(BaseModel):
    """スライド切替通知の結果。

    Attributes:
        channel: 通知元のチャンネル名
        url: 実際にGETしたURL
        status_code: 観測したHTTPステータスコード
    """

    channel: str
    url: str
    status_code: int


class ReplyKind(Enum):
    """ディスパッチ結果の種類。"""

    NO_REPLY = "no_reply"
    TEXT = "text"
    LEAVE = "leave"


class ReplyAction(BaseModel):
    """ディスパッチャが返すアクション。

    Attributes:
        kind: アクションの種類
        text: 返信テキスト(kindがTEXTの場合のみ)
    """

    kind: ReplyKind
    text: str | None = None

    @classmethod
    def no_reply(cls) -> "ReplyAction":
        return cls(kind=ReplyKind.NO_REPLY)

    @classmethod
    def reply(cls, text: str) -> "ReplyAction":
        return cls(kind=ReplyKind.TEXT, text=text)

    @classmethod
    def leave(cls) -> "ReplyAction":
        return cls(kind=ReplyKind.LEAVE)


class ConnectedEvent(BaseModel):
    """サーバーへの登録完了イベント。"""

    nick: str


class MessageEvent(BaseModel):
    """メッセージ受信イベント。

    Attributes:
        who: 発言者のニックネーム
        channel: 発言されたチャンネル名。プライベートメッセージの場合は"msg"
        body: 発言内容(宛先の接頭辞は除去済み)
        addressed: ボット宛の発言であればTrue
    """

    who: str
    channel: str
    body: str
    addressed: bool = False

    @property
    def is_private(self) -> bool:
        """プライベートセッションかどうかを返す。"""
        return self.channel == PRIVATE_SESSION


class InvitedEvent(BaseModel):
    """チャンネルへの招待イベント。"""

    who: str
    channel: str


class JoinedEvent(BaseModel):
    """チャンネル参加イベント(ボット自身以外の参加も含む)。"""

    who: str
    channel: str


ChatEvent = ConnectedEvent | MessageEvent | InvitedEvent | JoinedEvent | DeliveryResult
