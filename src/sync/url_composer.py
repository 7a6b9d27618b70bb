"""
同期URL組み立てモジュール。

スライドセットのURLに同期サーバーの参照(sync=...)を埋め込む処理と、
同期サーバーへの通知URLの組み立てを提供する。
"""

# IRCのチャンネル接頭辞はURLのパスに使えないため数字に置き換える
_SIGIL_MAP = {"#": "0", "&": "1"}


def map_channel_id(channel: str) -> str:
    """チャンネル名をURLのパスに使える識別子に変換する。

    先頭の "#" は "0" に、先頭の "&" は "1" に置き換える。
    それ以外の文字は変更しない。

    Args:
        channel: チャンネル名(例: "#room")

    Returns:
        変換後の識別子(例: "0room")
    """
    if channel and channel[0] in _SIGIL_MAP:
        return _SIGIL_MAP[channel[0]] + channel[1:]
    return channel


def compose_sync_url(slide_url: str, endpoint: str, channel: str) -> str:
    """スライドセットのURLに "sync=<endpoint>/<channel-id>" を追加する。

    既存のクエリがあれば "&sync=..." を末尾に追加し、なければ "?sync=..." を付ける。
    フラグメントは変更せずに最後に付け直す。

    Args:
        slide_url: スライドセットのURL
        endpoint: 同期サーバーのURL
        channel: チャンネル名

    Returns:
        同期パラメータ付きのURL
    """
    base, hash_mark, fragment = slide_url.partition("#")
    base, question_mark, query = base.partition("?")

    sync = f"sync={endpoint}/{map_channel_id(channel)}"
    # "?" のみの空クエリも既存のクエリとして扱う
    query = f"?{query}&{sync}" if question_mark else f"?{sync}"
    return f"{base}{query}{hash_mark}{fragment}"


def build_delivery_url(endpoint: str, channel: str, slide_ref: str) -> str:
    """同期サーバーへの通知URL "<endpoint>/<channel-id>?page=<slide_ref>" を組み立てる。

    スライド参照は解釈せずにそのまま埋め込む。
    """
    return f"{endpoint}/{map_channel_id(channel)}?page={slide_ref}"
