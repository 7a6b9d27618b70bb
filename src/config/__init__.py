"""
設定管理モジュール。

環境変数を型安全に管理し、アプリケーション全体で使用する設定を提供する。
"""

from src.config.log_format import UtcTimestampFormatter, configure_logging
from src.config.settings import IrcServer, Settings, parse_irc_url

__all__ = [
    "IrcServer",
    "Settings",
    "UtcTimestampFormatter",
    "configure_logging",
    "parse_irc_url",
]
