"""
メンバーシップ永続化モジュール。

ボットが参加しているチャンネルの集合をファイルに保存し、
再起動時に自動で再参加できるようにする。

ファイル形式:
- UTF-8テキスト、1行に1チャンネル(小文字)
- 変更のたびに全体を書き直す(追記はしない)
"""

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class MembershipError(Exception):
    """起動時にメンバーシップファイルを読み書きできない場合に発生する例外。"""


class MembershipStore(Protocol):
    """メンバーシップ永続化のプロトコル型。"""

    @property
    def channels(self) -> frozenset[str]:
        """現在のチャンネル集合を返す。"""
        ...

    def load(self) -> frozenset[str]:
        """保存済みのチャンネル集合を読み込む。"""
        ...

    def remember(self, channel: str) -> None:
        """チャンネルを集合に追加して保存する。"""
        ...

    def forget(self, channel: str) -> None:
        """チャンネルを集合から削除して保存する。"""
        ...


class FileMembershipStore:
    """ファイルを使ったMembershipStoreの実装。

    pathがNoneの場合は永続化を行わない(集合は常に空)。

    Attributes:
        _path: 保存先ファイルのパス
        _channels: 現在のチャンネル集合(小文字)
    """

    def __init__(self, path: Path | str | None) -> None:
        """FileMembershipStoreを初期化する。

        Args:
            path: 保存先ファイルのパス。Noneの場合は永続化しない。
        """
        self._path = Path(path) if path is not None else None
        self._channels: set[str] = set()

    @property
    def enabled(self) -> bool:
        """永続化が有効かどうかを返す。"""
        return self._path is not None

    @property
    def channels(self) -> frozenset[str]:
        """現在のチャンネル集合を返す。"""
        return frozenset(self._channels)

    def load(self) -> frozenset[str]:
        """ファイルからチャンネル集合を読み込む。

        ファイルが存在しない場合は空のファイルを作成する。

        Returns:
            読み込んだチャンネル集合

        Raises:
            MembershipError: ファイルの読み込みまたは作成に失敗した場合
        """
        self._channels = set()
        if self._path is None:
            return self.channels

        try:
            if self._path.is_file():
                logger.info("Reading %s", self._path)
                text = self._path.read_text(encoding="utf-8")
                self._channels = {line.strip().lower() for line in text.splitlines() if line.strip()}
            elif self._path.exists():
                msg = f"{self._path}: not a regular file"
                raise MembershipError(msg)
            else:
                logger.info("Creating %s", self._path)
                self._path.write_text("", encoding="utf-8")
        except OSError as e:
            raise MembershipError(f"{self._path}: {e.strerror or e}") from e

        return self.channels

    def remember(self, channel: str) -> None:
        """チャンネルを集合に追加する。既に含まれていれば何もしない。"""
        if self._path is None:
            return
        channel = channel.lower()
        if channel in self._channels:
            return
        self._channels.add(channel)
        self._save(self._path)

    def forget(self, channel: str) -> None:
        """チャンネルを集合から削除する。含まれていなければ何もしない。"""
        if self._path is None:
            return
        channel = channel.lower()
        if channel not in self._channels:
            return
        self._channels.discard(channel)
        self._save(self._path)

    def _save(self, path: Path) -> None:
        """集合全体でファイルを書き直す。

        書き込みに失敗しても例外は送出しない(メモリ上の集合が正となる)。
        書き込みはアトミックではない。
        """
        content = "".join(f"{channel}\n" for channel in sorted(self._channels))
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to write %s: %s", path, e)
