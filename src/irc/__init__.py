"""
IRCモジュール。

チャット層(IRCサーバーとの接続と送受信)の実装を提供する。
"""

from src.irc.client import IrcClientImpl, parse_line, split_address

__all__ = [
    "IrcClientImpl",
    "parse_line",
    "split_address",
]
