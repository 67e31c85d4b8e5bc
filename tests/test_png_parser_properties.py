"""
PNGテキストチャンク解析のプロパティベーステスト

Property 1: テキストチャンクの抽出
Property 2: 圧縮テキストの展開
Property 3: 破損チャンクの局所化
を検証します。
"""

import struct
import zlib

from hypothesis import given, strategies as st
from hypothesis import settings

from metadata_renamer.png_parser import (
    INFLATE_FAILED_TEXT, PNG_SIGNATURE, is_png, parse_png_text_chunks
)


def make_chunk(chunk_type: bytes, data: bytes) -> bytes:
    """PNGチャンク（長さ + タイプ + データ + CRC）を作成"""
    crc = zlib.crc32(chunk_type + data) & 0xffffffff
    return struct.pack('>I', len(data)) + chunk_type + data + struct.pack('>I', crc)


def make_png(*chunks: bytes) -> bytes:
    """IHDR と IEND で挟んだPNGバイト列を作成"""
    ihdr = make_chunk(b'IHDR', struct.pack('>IIBBBBB', 1, 1, 8, 2, 0, 0, 0))
    return PNG_SIGNATURE + ihdr + b''.join(chunks) + make_chunk(b'IEND', b'')


def text_chunk(keyword: str, text: str) -> bytes:
    return make_chunk(b'tEXt', keyword.encode('utf-8') + b'\x00' + text.encode('utf-8'))


def ztxt_chunk(keyword: str, text: str) -> bytes:
    return make_chunk(
        b'zTXt',
        keyword.encode('utf-8') + b'\x00\x00' + zlib.compress(text.encode('utf-8'))
    )


def itxt_chunk(keyword: str, text: str, compressed: bool = False) -> bytes:
    body = zlib.compress(text.encode('utf-8')) if compressed else text.encode('utf-8')
    flag = b'\x01' if compressed else b'\x00'
    return make_chunk(
        b'iTXt',
        keyword.encode('utf-8') + b'\x00' + flag + b'\x00' + b'ja\x00' + b'\x00' + body
    )


# NUL とサロゲートを含まない文字列
keyword_strategy = st.text(
    alphabet=st.characters(blacklist_categories=('Cs',), blacklist_characters='\x00'),
    min_size=1,
    max_size=30
)

text_strategy = st.text(
    alphabet=st.characters(blacklist_categories=('Cs',), blacklist_characters='\x00'),
    min_size=0,
    max_size=200
)


@st.composite
def text_chunks_strategy(draw):
    """一意なキーワードを持つテキストチャンクの組を生成するストラテジー"""
    keywords = draw(st.lists(keyword_strategy, min_size=1, max_size=5, unique=True))
    entries = []
    for keyword in keywords:
        kind = draw(st.sampled_from(['tEXt', 'zTXt', 'iTXt', 'iTXt-compressed']))
        entries.append((kind, keyword, draw(text_strategy)))
    return entries


def build_chunk(kind: str, keyword: str, text: str) -> bytes:
    if kind == 'tEXt':
        return text_chunk(keyword, text)
    if kind == 'zTXt':
        return ztxt_chunk(keyword, text)
    return itxt_chunk(keyword, text, compressed=(kind == 'iTXt-compressed'))


class TestPngParserProperties:
    """PNGテキストチャンク解析のプロパティテスト"""

    @given(text_chunks_strategy())
    @settings(max_examples=100)
    def test_text_chunk_extraction_property(self, entries):
        """
        **Feature: metadata-renamer, Property 1: テキストチャンクの抽出**

        任意の tEXt / zTXt / iTXt チャンクを含むPNGに対して、
        各キーワードは "PNG:" を付けたキーで元のテキストと一致するべきである。
        """
        data = make_png(*(build_chunk(kind, keyword, text) for kind, keyword, text in entries))

        result = parse_png_text_chunks(data)

        assert len(result) == len(entries)
        for _, keyword, text in entries:
            assert result[f"PNG:{keyword}"] == text

    @given(keyword_strategy, text_strategy, text_strategy)
    @settings(max_examples=100)
    def test_last_chunk_wins_property(self, keyword, first_text, second_text):
        """
        **Feature: metadata-renamer, Property 1: テキストチャンクの抽出**

        同じキーワードのチャンクが複数ある場合、後のチャンクの値が採用されるべきである。
        """
        data = make_png(text_chunk(keyword, first_text), ztxt_chunk(keyword, second_text))

        assert parse_png_text_chunks(data) == {f"PNG:{keyword}": second_text}

    @given(keyword_strategy, st.binary(min_size=1, max_size=100))
    @settings(max_examples=100)
    def test_inflate_failure_placeholder_property(self, keyword, garbage):
        """
        **Feature: metadata-renamer, Property 2: 圧縮テキストの展開**

        展開できない圧縮テキストは例外にならず、代替文字列として記録されるべきである。
        """
        # zlibヘッダーとして解釈できないバイト列にする
        garbage = b'\xff' + garbage
        data = make_png(make_chunk(b'zTXt', keyword.encode('utf-8') + b'\x00\x00' + garbage))

        assert parse_png_text_chunks(data) == {f"PNG:{keyword}": INFLATE_FAILED_TEXT}

    @given(keyword_strategy, text_strategy)
    @settings(max_examples=100)
    def test_malformed_chunk_isolation_property(self, keyword, text):
        """
        **Feature: metadata-renamer, Property 3: 破損チャンクの局所化**

        解析できないチャンクがあっても、その後のチャンクは解析されるべきである。
        """
        broken_itxt = make_chunk(b'iTXt', b'')
        data = make_png(broken_itxt, text_chunk(keyword, text))

        assert parse_png_text_chunks(data) == {f"PNG:{keyword}": text}

    @given(st.binary(max_size=64))
    @settings(max_examples=100)
    def test_non_png_returns_empty_property(self, data):
        """PNGシグネチャで始まらないデータは空の辞書になるべきである。"""
        if data[:8] == PNG_SIGNATURE:
            return
        assert not is_png(data)
        assert parse_png_text_chunks(data) == {}


def test_scenario_stable_diffusion_parameters():
    """
    parameters チャンクを持つPNGの例

    tEXt "parameters" と zTXt "Comment" が両方とも抽出されることを確認
    """
    data = make_png(
        text_chunk('parameters', 'a cat, best quality\nSteps: 20'),
        ztxt_chunk('Comment', 'hello')
    )

    result = parse_png_text_chunks(data)

    assert result == {
        'PNG:parameters': 'a cat, best quality\nSteps: 20',
        'PNG:Comment': 'hello',
    }
    assert list(result) == ['PNG:parameters', 'PNG:Comment']


def test_corrupted_ztxt_and_valid_text():
    """壊れた zTXt の後の tEXt も抽出され、zTXt は代替文字列になることを確認"""
    data = make_png(
        make_chunk(b'zTXt', b'Comment\x00\x00not zlib data'),
        text_chunk('parameters', 'a cat')
    )

    assert parse_png_text_chunks(data) == {
        'PNG:Comment': INFLATE_FAILED_TEXT,
        'PNG:parameters': 'a cat',
    }


def test_chunks_after_iend_are_ignored():
    """IEND 以降のチャンクは無視されることを確認"""
    data = make_png(text_chunk('parameters', 'before')) + text_chunk('after', 'ignored')

    assert parse_png_text_chunks(data) == {'PNG:parameters': 'before'}


def test_latin1_fallback_for_invalid_utf8():
    """UTF-8として不正なテキストはLatin-1で解釈されることを確認"""
    data = make_png(make_chunk(b'tEXt', b'Author\x00caf\xe9'))

    assert parse_png_text_chunks(data) == {'PNG:Author': 'café'}


def test_truncated_file_does_not_raise():
    """途中で切れたPNGでも例外にならないことを確認"""
    data = make_png(text_chunk('parameters', 'a cat, best quality'))
    truncated = data[:len(data) - 20]

    result = parse_png_text_chunks(truncated)

    assert isinstance(result, dict)
