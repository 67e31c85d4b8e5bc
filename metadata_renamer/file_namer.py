"""
ファイル名生成モジュール

規則のファイル名の正規化、元ファイルの拡張子を引き継いだ新しいファイル名の生成、
エクスポート時の重複ファイル名の解決を行います。
"""

import re
from typing import Dict, List, Sequence, Set, Tuple

DEFAULT_EXTENSION = 'jpg'

_WHITESPACE_RE = re.compile(r'\s+')
_ILLEGAL_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
_UNDERSCORES_RE = re.compile(r'_+')
_TRAILING_EXTENSION_RE = re.compile(r'\.[^.]+$')


def sanitize_file_name(name: str) -> str:
    """
    ファイル名を正規化

    空白の連続は '_' 1文字に、ファイル名に使えない文字は '_' に置換し、
    連続する '_' をまとめて前後の '_' を除去します。
    """
    name = _WHITESPACE_RE.sub('_', name)
    name = _ILLEGAL_CHARS_RE.sub('_', name)
    name = _UNDERSCORES_RE.sub('_', name)
    return name.strip('_')


def strip_extension(name: str) -> str:
    """末尾の '.xxx' を1つ除去"""
    return _TRAILING_EXTENSION_RE.sub('', name)


def get_extension(original_name: str) -> str:
    """元ファイル名の最後の '.' 以降を拡張子として取得（なければ 'jpg'）"""
    if '.' not in original_name:
        return DEFAULT_EXTENSION
    return original_name.rsplit('.', 1)[1] or DEFAULT_EXTENSION


def derive_file_name(rule_file_name: str, original_name: str) -> str:
    """
    規則のファイル名と元ファイルの拡張子から新しいファイル名を生成

    Args:
        rule_file_name: 規則に保存されたベース名
        original_name: 元のファイル名

    Returns:
        "ベース名.拡張子"
    """
    return f"{strip_extension(rule_file_name)}.{get_extension(original_name)}"


def resolve_batch_names(entries: Sequence[Tuple[str, str]]) -> List[str]:
    """
    1つのエクスポートバッチ内でファイル名の重複を解決

    大文字小文字を区別せずに比較し、最初の出現はそのまま、
    2回目以降は拡張子の前に "_1", "_2", ... を付加します。
    連番を付けた名前がバッチ内で既に使われている場合は次の番号に進みます。

    Args:
        entries: (新しいファイル名, 元のファイル名) のシーケンス

    Returns:
        入力と同じ順序の最終ファイル名のリスト
    """
    counts: Dict[str, int] = {}
    used: Set[str] = set()
    final_names = []

    for new_file_name, original_name in entries:
        extension = get_extension(original_name)
        base_name = strip_extension(new_file_name)
        name_key = f"{base_name.lower()}.{extension.lower()}"

        final_name = f"{base_name}.{extension}"
        if name_key in counts or final_name.lower() in used:
            counter = counts.get(name_key, 0)
            while True:
                counter += 1
                final_name = f"{base_name}_{counter}.{extension}"
                if final_name.lower() not in used:
                    break
            counts[name_key] = counter
        else:
            counts[name_key] = 0

        used.add(final_name.lower())
        final_names.append(final_name)

    return final_names
