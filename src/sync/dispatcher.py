"""
コマンドディスパッチャモジュール。

受信した1行を優先順位付きのルール表で分類し、最初に一致したルールのハンドラを呼び出す。
後続のルールは前のルールが一致しなかったことを前提にしているため、順序を変更しないこと。

ルールの順序:
1. "slideset: URL"      (宛先に関係なく。プライベートでは無視)
2. "[slide N]"          (宛先に関係なく。プライベートでは無視)
3. ボット宛でない発言    (トランスポート側の既定動作に委ねる)
4. "use https://..."    (先頭の "please" を除去してから判定)
5. "use その他"
6. "status"             (末尾の "." "?" を除去してから判定)
7. "bye"
8. "help..."
9. それ以外
"""

import logging
import re
from collections.abc import Callable
from typing import NamedTuple

import httpx

from src.sync import grammar
from src.sync.delivery import DeliveryService
from src.sync.models import DeliveryRequest, MessageEvent, ReplyAction
from src.sync.session_store import ChannelSessionStore
from src.sync.url_composer import compose_sync_url

logger = logging.getLogger(__name__)

SLIDESET_REPLY = "If the slideset uses b6+, -> try this to synchronize the slides to IRC {url}"
BAD_SYNC_URL_REPLY = "That doesn't look like the URL of a sync server: {arg}"
USE_REPLY = "OK"

# ボット宛でない発言に対する既定の動作
FallbackHandler = Callable[[MessageEvent], ReplyAction]


class _Context:
    """1行の処理中に各ルールが共有する状態。

    Attributes:
        event: 受信イベント
        text: 正規化途中のテキスト(ルールの前処理で書き換えられる)
        match: 直前に一致したパターンの結果
    """

    def __init__(self, event: MessageEvent) -> None:
        self.event = event
        self.text = event.body
        self.match: re.Match[str] | None = None

    def group(self, name: str) -> str:
        """一致したパターンの名前付きグループを返す。

        Raises:
            RuntimeError: パターンに一致していない場合
        """
        if self.match is None:
            msg = f"no pattern matched for group {name!r}"
            raise RuntimeError(msg)
        return self.match.group(name)


class Rule(NamedTuple):
    """ルール表の1エントリ。

    Attributes:
        name: ルール名(ログ用)
        matches: 一致判定(パターンの場合は一致結果をコンテキストに保存する)
        handle: 一致時に呼び出すハンドラ
        prepare: 判定前にテキストへ適用する前処理(任意)
    """

    name: str
    matches: Callable[[_Context], bool]
    handle: Callable[[_Context], ReplyAction]
    prepare: Callable[[str], str] | None = None


def _pattern(pattern: re.Pattern[str]) -> Callable[[_Context], bool]:
    def matches(ctx: _Context) -> bool:
        ctx.match = pattern.match(ctx.text)
        return ctx.match is not None

    return matches


def _no_reply(_event: MessageEvent) -> ReplyAction:
    return ReplyAction.no_reply()


def status_text(code: int) -> str:
    """HTTPステータスコードを人が読める文字列に変換する(例: 200 -> "OK")。"""
    return httpx.codes.get_reason_phrase(code) or str(code)


class CommandDispatcher:
    """優先順位付きルール表によるディスパッチャ。

    Attributes:
        _store: チャンネルセッションストア
        _delivery: スライド切替通知サービス
        _nick: ボット自身のニックネーム
        _fallback: ボット宛でない発言に対する既定動作
        _rules: 評価順に並んだルール表
    """

    def __init__(
        self,
        store: ChannelSessionStore,
        delivery: DeliveryService,
        nick: str | Callable[[], str],
        fallback: FallbackHandler | None = None,
    ) -> None:
        """CommandDispatcherを初期化する。

        Args:
            store: チャンネルセッションストア
            delivery: スライド切替通知サービス
            nick: ボット自身のニックネーム、またはそれを返す関数(返信文に使用)
            fallback: ボット宛でない発言に対する既定動作(省略時は返信しない)
        """
        self._store = store
        self._delivery = delivery
        self._nick = nick
        self._fallback = fallback or _no_reply
        self._rules: list[Rule] = [
            Rule("slideset", _pattern(grammar.SLIDESET_PATTERN), self._handle_slideset),
            Rule("slide", _pattern(grammar.SLIDE_PATTERN), self._handle_slide),
            Rule("unaddressed", lambda ctx: not ctx.event.addressed, self._handle_unaddressed),
            Rule(
                "use",
                _pattern(grammar.USE_URL_PATTERN),
                self._handle_use,
                prepare=grammar.strip_please,
            ),
            Rule("use-invalid", _pattern(grammar.USE_ANY_PATTERN), self._handle_use_invalid),
            Rule(
                "status",
                _pattern(grammar.STATUS_PATTERN),
                self._handle_status,
                prepare=grammar.strip_trailing_punctuation,
            ),
            Rule("bye", _pattern(grammar.BYE_PATTERN), self._handle_bye),
            Rule("help", _pattern(grammar.HELP_PATTERN), self._handle_help),
            Rule("fallback", lambda ctx: True, self._handle_not_understood),
        ]

    @property
    def nick(self) -> str:
        """ボット自身のニックネームを返す。"""
        return self._nick() if callable(self._nick) else self._nick

    @property
    def rule_names(self) -> list[str]:
        """評価順のルール名を返す。"""
        return [rule.name for rule in self._rules]

    def dispatch(self, event: MessageEvent) -> ReplyAction:
        """受信した1行を分類し、対応するアクションを返す。

        Args:
            event: 受信イベント

        Returns:
            返信なし、テキスト返信、チャンネル退出のいずれか
        """
        ctx = _Context(event)
        for rule in self._rules:
            if rule.prepare is not None:
                ctx.text = rule.prepare(ctx.text)
            if rule.matches(ctx):
                logger.debug("Rule %s matched in %s: %s", rule.name, event.channel, event.body)
                return rule.handle(ctx)
        return ReplyAction.no_reply()

    def help_text(self, event: MessageEvent) -> str:
        """使い方の説明文を返す。"""
        prefix = "" if event.is_private else f"{self.nick}, "
        return (
            'Say "slideset: URL" to get a synchronized link to a slide set, '
            'then "[slide N]" (or "[slide ++]", "[slide -]", "[slide ^]", "[slide $]") '
            "to move all viewers to that slide. "
            f'Other commands: "{prefix}use SYNC-URL", "{prefix}status", "{prefix}bye".'
        )

    def _handle_slideset(self, ctx: _Context) -> ReplyAction:
        if ctx.event.is_private:
            return ReplyAction.no_reply()
        channel = ctx.event.channel
        slide_url = ctx.group("url")
        logger.info("Saw slideset: %s", slide_url)

        url = compose_sync_url(slide_url, self._store.get_endpoint(channel), channel)
        self._store.set_status(channel, None)
        return ReplyAction.reply(SLIDESET_REPLY.format(url=url))

    def _handle_slide(self, ctx: _Context) -> ReplyAction:
        if ctx.event.is_private:
            return ReplyAction.no_reply()
        channel = ctx.event.channel
        request = DeliveryRequest(
            channel=channel,
            endpoint=self._store.get_endpoint(channel),
            slide_ref=ctx.group("ref"),
        )
        self._delivery.notify(request)
        return ReplyAction.no_reply()

    def _handle_unaddressed(self, ctx: _Context) -> ReplyAction:
        return self._fallback(ctx.event)

    def _handle_use(self, ctx: _Context) -> ReplyAction:
        self._store.set_endpoint(ctx.event.channel, ctx.group("url"))
        return ReplyAction.reply(USE_REPLY)

    def _handle_use_invalid(self, ctx: _Context) -> ReplyAction:
        return ReplyAction.reply(BAD_SYNC_URL_REPLY.format(arg=ctx.group("arg")))

    def _handle_status(self, ctx: _Context) -> ReplyAction:
        channel = ctx.event.channel
        status = f"the sync server is {self._store.get_endpoint(channel)}"
        code = self._store.get_status(channel)
        if code:
            status += f" and its last response was: {status_text(code)}"
        return ReplyAction.reply(status)

    def _handle_bye(self, ctx: _Context) -> ReplyAction:
        # プライベートセッションには退出するチャンネルがない
        if ctx.event.is_private:
            return ReplyAction.no_reply()
        return ReplyAction.leave()

    def _handle_help(self, ctx: _Context) -> ReplyAction:
        return ReplyAction.reply(self.help_text(ctx.event))

    def _handle_not_understood(self, ctx: _Context) -> ReplyAction:
        if ctx.event.is_private:
            return ReplyAction.reply(f'Sorry, I don\'t understand "{ctx.text}". Try "help".')
        return ReplyAction.reply(
            f'sorry, I don\'t understand "{ctx.text}". Try "{self.nick}, help".'
        )
