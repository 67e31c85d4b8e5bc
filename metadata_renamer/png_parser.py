"""
PNGテキストチャンク解析モジュール

PNGファイルのテキストチャンク（tEXt, iTXt, zTXt）を直接解析します。
画像生成AIが書き込むプロンプト（PNG:parameters 等）を読み取るために使用します。
"""

import logging
import struct
import zlib
from typing import Dict, Tuple

# PNGシグネチャ: 89 50 4E 47 0D 0A 1A 0A
PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'

# 展開に失敗した圧縮テキストの代替文字列
INFLATE_FAILED_TEXT = '[圧縮テキスト - 展開不可]'

FIELD_PREFIX = 'PNG:'

logger = logging.getLogger(__name__)


def is_png(data: bytes) -> bool:
    """バイト列がPNGシグネチャで始まるかを判定"""
    return data[:8] == PNG_SIGNATURE


def _decode_text(data: bytes) -> str:
    """UTF-8でデコードし、失敗した場合はLatin-1で1バイトずつ変換"""
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError:
        return data.decode('latin-1')


def _find_null(data: bytes, start: int) -> int:
    """NUL終端の位置を検索（見つからない場合はデータ長）"""
    pos = data.find(b'\x00', start)
    return len(data) if pos < 0 else pos


def _inflate_text(compressed: bytes) -> str:
    """zlib圧縮されたテキストを展開（失敗時は代替文字列）"""
    try:
        return _decode_text(zlib.decompress(compressed))
    except zlib.error as e:
        logger.warning(f"圧縮テキストの展開に失敗: {e}")
        return INFLATE_FAILED_TEXT


def _parse_text_chunk(chunk_type: str, chunk_data: bytes) -> Tuple[str, str]:
    """
    テキストチャンクのペイロードを (キーワード, テキスト) に変換

    Args:
        chunk_type: 'tEXt', 'iTXt', 'zTXt' のいずれか
        chunk_data: チャンクのデータ部

    Returns:
        (キーワード, テキスト) のタプル
    """
    null_pos = _find_null(chunk_data, 0)
    keyword = _decode_text(chunk_data[:null_pos])

    if chunk_type == 'tEXt':
        # keyword NUL text
        return keyword, _decode_text(chunk_data[null_pos + 1:])

    if chunk_type == 'zTXt':
        # keyword NUL compressionMethod compressedText
        return keyword, _inflate_text(chunk_data[null_pos + 2:])

    # iTXt: keyword NUL compressionFlag compressionMethod languageTag NUL translatedKeyword NUL text
    compression_flag = chunk_data[null_pos + 1]
    language_end = _find_null(chunk_data, null_pos + 3)
    translated_end = _find_null(chunk_data, language_end + 1)
    text_data = chunk_data[translated_end + 1:]

    if compression_flag == 0:
        return keyword, _decode_text(text_data)
    return keyword, _inflate_text(text_data)


def parse_png_text_chunks(data: bytes) -> Dict[str, str]:
    """
    PNGのチャンク列を走査してテキストフィールドを抽出

    同じキーワードのチャンクが複数ある場合は後のチャンクで上書きします。
    個々のチャンクの解析に失敗しても、後続のチャンクの解析は継続します。

    Args:
        data: ファイル全体のバイト列

    Returns:
        "PNG:" + キーワード をキーとするテキストの辞書（PNGでない場合は空）
    """
    if not is_png(data):
        return {}

    result: Dict[str, str] = {}
    offset = 8

    while offset < len(data) - 12:
        length = struct.unpack('>I', data[offset:offset + 4])[0]
        chunk_type = data[offset + 4:offset + 8].decode('latin-1')

        if chunk_type == 'IEND':
            break

        if chunk_type in ('tEXt', 'iTXt', 'zTXt'):
            chunk_data = data[offset + 8:offset + 8 + length]
            try:
                keyword, text = _parse_text_chunk(chunk_type, chunk_data)
                result[FIELD_PREFIX + keyword] = text
            except Exception as e:
                logger.debug(f"{chunk_type}チャンクの解析をスキップ (オフセット {offset}): {e}")

        # length + type(4) + data(length) + CRC(4)
        offset += 12 + length

    logger.debug(f"PNGテキストチャンク抽出完了: {len(result)}件")
    return result
