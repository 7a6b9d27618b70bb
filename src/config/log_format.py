"""
ログ出力設定モジュール。

全ログ行の先頭にUTCのタイムスタンプ(例: 2022-11-17T10:00:00Z)を付ける。
既にタイムスタンプで始まる行にはそのまま出力する。
verboseでない場合はログを一切出力しない。
"""

import logging
import re
import sys
import time

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z")


class UtcTimestampFormatter(logging.Formatter):
    """UTCタイムスタンプを先頭に付けるFormatter。"""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if TIMESTAMP_PATTERN.match(message):
            return message
        return f"{self.formatTime(record, TIMESTAMP_FORMAT)} {message}"


def configure_logging(verbose: bool) -> None:
    """ルートロガーを設定する。

    Args:
        verbose: Trueの場合はINFO以上を標準エラー出力に出す。Falseの場合は出力しない。
    """
    if not verbose:
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(UtcTimestampFormatter("%(message)s"))
    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)
