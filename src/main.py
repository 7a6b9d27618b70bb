"""
アプリケーションのエントリーポイント。

IRCに接続してSlideSyncBotを起動する。
コマンドライン引数と環境変数から設定を読み込み、各コンポーネントを組み立てて
イベントループとIRCの受信ループを並行して実行する。
"""

import argparse
import asyncio
import contextlib
import getpass
import logging
import sys

from pydantic import ValidationError

from src.config import IrcServer, Settings, configure_logging
from src.irc import IrcClientImpl
from src.sync import (
    ChannelSessionStore,
    CommandDispatcher,
    DeliveryServiceImpl,
    FileMembershipStore,
    MembershipError,
    SlideSyncBot,
    create_http_client,
)
from src.sync.models import ChatEvent

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """コマンドライン引数をパースする。"""
    parser = argparse.ArgumentParser(
        prog="slidesyncbot",
        description="IRC bot that keeps browsers showing the same slide in sync",
    )
    parser.add_argument("irc_url", help="irc://[user[:password]@]host[:port][/channel]")
    parser.add_argument("sync_server_url", help="URL of the sync server")
    parser.add_argument("-n", dest="nick", help="nickname on IRC (default: syslibot)")
    parser.add_argument("-N", dest="real_name", help="real name on IRC")
    parser.add_argument("-r", dest="rejoin_file", help="file with channels to rejoin")
    parser.add_argument("-C", dest="charset", help="character encoding (default: utf-8)")
    parser.add_argument(
        "-k",
        dest="ssl_verify_hostname",
        action="store_false",
        default=None,
        help="do not verify the sync server's TLS certificate",
    )
    parser.add_argument("-v", dest="verbose", action="store_true", default=None, help="be verbose")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """コマンドライン引数を優先して設定を読み込む。"""
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return Settings(**overrides)


async def main(settings: Settings, server: IrcServer) -> None:
    """各コンポーネントを組み立ててボットを起動する。

    以下の処理を順次実行する:
    1. 参加チャンネルの永続化ファイルを読み込み(失敗時は起動中止)
    2. イベントキュー、通知サービス、ディスパッチャを作成
    3. IRCに接続
    4. イベントループとIRCの受信ループを並行実行
    """
    if server.user is not None and server.password is None:
        server.password = getpass.getpass(f'IRC password for user "{server.user}": ')

    membership = FileMembershipStore(settings.rejoin_file)
    membership.load()

    events: asyncio.Queue[ChatEvent] = asyncio.Queue()

    store = ChannelSessionStore(settings.sync_server_url)
    store.add_join_listener(membership.remember)

    delivery = DeliveryServiceImpl(
        client=create_http_client(
            verify=settings.ssl_verify_hostname,
            timeout=settings.delivery_timeout,
        ),
        post_result=events.put,
        max_concurrent=settings.max_concurrent_deliveries,
    )

    irc = IrcClientImpl(
        server=server,
        nick=settings.nick,
        real_name=settings.real_name,
        post_event=events.put,
        charset=settings.charset,
    )
    dispatcher = CommandDispatcher(store=store, delivery=delivery, nick=lambda: irc.nick)
    bot = SlideSyncBot(
        transport=irc,
        dispatcher=dispatcher,
        store=store,
        membership=membership,
        events=events,
        initial_channels=[server.channel] if server.channel else [],
    )

    logger.info("Connecting...")
    await irc.connect()
    bot_task = asyncio.create_task(bot.run())
    try:
        await irc.run()
    finally:
        bot_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await bot_task
        await delivery.aclose()
        await irc.quit()


def run(argv: list[str] | None = None) -> None:
    """コンソールスクリプトのエントリーポイント。"""
    args = parse_args(argv)
    try:
        settings = load_settings(args)
        server = settings.irc_server
    except (ValidationError, ValueError) as e:
        sys.exit(str(e))

    configure_logging(settings.verbose)

    try:
        asyncio.run(main(settings, server))
    except MembershipError as e:
        sys.exit(str(e))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
