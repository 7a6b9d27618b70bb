"""
非同期通知モジュール。

同期サーバーへのスライド切替通知(HTTP GET)をイベントループを止めずに実行する:
- notifyは即座に戻り、GETはバックグラウンドのasyncio.Taskで実行
- 同時実行数をセマフォで制限
- 結果はDeliveryResultイベントとしてイベントキューに戻す
- 失敗時の再試行は行わない
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

import httpx

from src.sync.models import DeliveryRequest, DeliveryResult
from src.sync.url_composer import build_delivery_url

logger = logging.getLogger(__name__)

USER_AGENT = "SlideSyncBot/0.1"

# 接続失敗、タイムアウト、不正なURLの場合に記録するステータス
FAILURE_STATUS = 500

ResultCallback = Callable[[DeliveryResult], Awaitable[None]]


class DeliveryService(Protocol):
    """スライド切替通知のプロトコル型。"""

    def notify(self, request: DeliveryRequest) -> "asyncio.Task[DeliveryResult]":
        """通知を開始する。呼び出し元はブロックされない。

        Args:
            request: 通知要求

        Returns:
            通知を実行するタスク
        """
        ...

    async def aclose(self) -> None:
        """実行中の通知を中止し、リソースを解放する。"""
        ...


def create_http_client(
    verify: bool = True,
    timeout: float = 30.0,
) -> httpx.AsyncClient:
    """通知用のHTTPクライアントを生成する。

    Args:
        verify: TLS証明書とホスト名を検証するかどうか
        timeout: リクエストのタイムアウト(秒)

    Returns:
        httpx.AsyncClient
    """
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        verify=verify,
        timeout=timeout,
        trust_env=True,
    )


class DeliveryServiceImpl:
    """DeliveryServiceの実装クラス。

    機能:
    - 通知ごとにasyncio.Taskを生成(完了順序は保証しない)
    - 同時実行数の上限(上限到達時はセマフォで待機)
    - 結果をコールバックでイベントキューに投入

    Attributes:
        _client: HTTPクライアント
        _post_result: 結果を受け取るコールバック
        _semaphore: 同時実行数を制限するセマフォ
        _tasks: 実行中のタスク
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        post_result: ResultCallback,
        max_concurrent: int = 8,
    ) -> None:
        """DeliveryServiceImplを初期化する。

        Args:
            client: HTTPクライアント
            post_result: 結果を受け取る非同期コールバック
            max_concurrent: 最大同時通知数
        """
        self._client = client
        self._post_result = post_result
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._tasks: set[asyncio.Task[DeliveryResult]] = set()

        logger.info("DeliveryServiceImpl initialized with max_concurrent=%d", max_concurrent)

    @property
    def in_flight(self) -> int:
        """実行中の通知数を返す。"""
        return len(self._tasks)

    def notify(self, request: DeliveryRequest) -> asyncio.Task[DeliveryResult]:
        """通知を開始する。

        Args:
            request: 通知要求

        Returns:
            通知を実行するタスク
        """
        url = build_delivery_url(request.endpoint, request.channel, request.slide_ref)
        logger.info("Requesting %s", url)

        task = asyncio.create_task(self._deliver(request.channel, url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, channel: str, url: str) -> DeliveryResult:
        async with self._semaphore:
            try:
                response = await self._client.get(url)
                status_code = response.status_code
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning("Request to %s failed: %s", url, e)
                status_code = FAILURE_STATUS

        result = DeliveryResult(channel=channel, url=url, status_code=status_code)
        await self._post_result(result)
        return result

    async def aclose(self) -> None:
        """実行中の通知をキャンセルし、HTTPクライアントを閉じる。"""
        for task in list(self._tasks):
            task.cancel()
        for task in list(self._tasks):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._client.aclose()
        logger.info("DeliveryServiceImpl closed")
