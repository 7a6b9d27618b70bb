"""
コマンド文法モジュール。

チャットの1行を分類するための正規表現を定義する。
スライド参照("++"、"$"、"^"、"-"や数値)はここでは解釈せず、
同期サーバーにそのまま転送する。
"""

import re

# スライド参照: 非負整数、"++"、または "$" "^" "-" のいずれか1文字
SLIDE_REF = r"[0-9]+|\+\+|[$^-]"

# "slideset: URL"
SLIDESET_PATTERN = re.compile(r"^\s*slideset\s*:\s*(?P<url>.+?)\s*$", re.IGNORECASE)

# "[slide N]"
SLIDE_PATTERN = re.compile(
    rf"^\s*\[\s*slide\s*(?P<ref>{SLIDE_REF})\s*\]\s*$",
    re.IGNORECASE,
)

# 先頭の "please" / "please,"
PLEASE_PREFIX = re.compile(r"^\s*please\s*,?\s*", re.IGNORECASE)

USE_URL_PATTERN = re.compile(r"^\s*use\s+(?P<url>https?://\S+)\s*$", re.IGNORECASE)
USE_ANY_PATTERN = re.compile(r"^\s*use\s+(?P<arg>.*?)\s*$", re.IGNORECASE)

# 末尾の "." または "?"
TRAILING_PUNCTUATION = re.compile(r"[.?]\s*$")

STATUS_PATTERN = re.compile(r"^\s*status\s*$", re.IGNORECASE)
BYE_PATTERN = re.compile(r"^\s*bye\s*$", re.IGNORECASE)
HELP_PATTERN = re.compile(r"^\s*help", re.IGNORECASE)


def strip_please(text: str) -> str:
    """先頭の丁寧語("please"、カンマ付きも可)を取り除く。"""
    return PLEASE_PREFIX.sub("", text, count=1)


def strip_trailing_punctuation(text: str) -> str:
    """末尾の "." または "?" を1つだけ取り除く。"""
    return TRAILING_PUNCTUATION.sub("", text, count=1)
