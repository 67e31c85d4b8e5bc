"""
メタデータ正規化モジュール

外部パーサーから受け取った任意の型の値を、種類ごとのタグ付き値に分類してから
文字列に変換します。PNGテキストチャンクとEXIF/XMP/IPTCフィールドを
1つの「フィールド名 → 文字列」の辞書に統合します。
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Union

EXIF_PREFIX = 'EXIF:'

# ExifToolがバイナリ値の代わりに出力するプレースホルダー
_BINARY_PLACEHOLDER_RE = re.compile(r'^\(Binary data \d+ bytes')

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextValue:
    """文字列・数値などのスカラー値"""
    value: Any


@dataclass(frozen=True)
class DateValue:
    """日時値"""
    value: Union[datetime, date]


@dataclass(frozen=True)
class BinaryValue:
    """バイナリ値（常に破棄）"""
    size: int


@dataclass(frozen=True)
class StructuredValue:
    """辞書・リストなどの構造化値"""
    value: Any


MetadataValue = Union[TextValue, DateValue, BinaryValue, StructuredValue]


def classify_value(raw: Any) -> Optional[MetadataValue]:
    """
    外部パーサーの値をタグ付き値に分類

    Args:
        raw: 任意の値

    Returns:
        分類された値（Noneの場合はNone）
    """
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return BinaryValue(size=len(raw))
    if isinstance(raw, (datetime, date)):
        return DateValue(value=raw)
    if isinstance(raw, (dict, list, tuple)):
        return StructuredValue(value=raw)
    if isinstance(raw, str) and _BINARY_PLACEHOLDER_RE.match(raw):
        return BinaryValue(size=0)
    return TextValue(value=raw)


def coerce_value(value: Optional[MetadataValue]) -> Optional[str]:
    """
    タグ付き値を文字列に変換

    バイナリ値・変換できない構造化値はNoneを返します（フィールドとして採用しない）。
    """
    if value is None or isinstance(value, BinaryValue):
        return None

    if isinstance(value, DateValue):
        return value.value.isoformat()

    if isinstance(value, StructuredValue):
        try:
            return json.dumps(value.value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.debug(f"構造化値のJSON変換に失敗: {e}")
            return None

    raw = value.value
    if isinstance(raw, bool):
        return 'true' if raw else 'false'
    return str(raw)


def normalize_exif_fields(raw_fields: Mapping[str, Any]) -> Dict[str, str]:
    """
    外部パーサーの出力を "EXIF:" + 元のキー の文字列辞書に変換

    空文字列・空白のみの値は破棄します。
    """
    fields: Dict[str, str] = {}
    for key, raw in raw_fields.items():
        text = coerce_value(classify_value(raw))
        if text is not None and text.strip():
            fields[EXIF_PREFIX + key] = text
    return fields


def merge_metadata(png_fields: Mapping[str, str],
                   exif_fields: Mapping[str, str]) -> Dict[str, str]:
    """
    PNGフィールドとEXIFフィールドを統合

    PNGフィールドを先に挿入し、同じキーがある場合は先に書き込まれた値を優先します。
    挿入順がそのままマッチング時のフィールド走査順になります。

    Args:
        png_fields: PNGテキストチャンクのフィールド
        exif_fields: 正規化済みのEXIF/XMP/IPTCフィールド

    Returns:
        統合されたメタデータ
    """
    metadata: Dict[str, str] = {}

    for key, value in png_fields.items():
        if value and value.strip():
            metadata.setdefault(key, value)

    for key, value in exif_fields.items():
        if value and value.strip():
            metadata.setdefault(key, value)

    return metadata
