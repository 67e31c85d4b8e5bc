"""
規則ファイルの読み書き

規則をテキストファイルで取り込み・書き出しします。

形式:
    #ファイル名
    キーワード（複数行可、空白1つで連結）

    #ファイル名
    キーワード
"""

import logging
import re
import uuid
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

from .exceptions import FileOperationError
from .file_namer import sanitize_file_name
from .models import Rule

BOM = '\ufeff'

_WHITESPACE_RE = re.compile(r'\s+')

logger = logging.getLogger(__name__)


def new_rule_id() -> str:
    """規則IDを生成"""
    return str(uuid.uuid4())


def parse_rules_text(text: str, existing_keywords: Iterable[str] = ()) -> List[Rule]:
    """
    規則テキストを解析

    '#' で始まる行が新しいファイル名、それに続く空でない行がキーワードです。
    空のキーワード・空のファイル名のレコードと、既存の規則または同じファイル内の
    前のレコードとキーワードが重複するレコードは破棄します。

    Args:
        text: ファイルの内容（先頭のBOMは除去）
        existing_keywords: 既に登録されているキーワード

    Returns:
        取り込んだ規則のリスト（ファイル内の順序）
    """
    if text.startswith(BOM):
        text = text[len(BOM):]

    seen = set(existing_keywords)
    rules: List[Rule] = []

    current_name: Optional[str] = None
    keyword_parts: List[str] = []

    def save_current():
        if not current_name or not keyword_parts:
            return
        keyword = _WHITESPACE_RE.sub(' ', ' '.join(keyword_parts)).strip()
        file_name = sanitize_file_name(current_name)
        if not keyword or not file_name:
            return
        if keyword in seen:
            logger.debug(f"重複キーワードをスキップ: {keyword[:50]}")
            return
        seen.add(keyword)
        rules.append(Rule(id=new_rule_id(), keyword=keyword, new_file_name=file_name))

    for line in text.split('\n'):
        stripped = line.strip()

        if stripped.startswith('#'):
            save_current()
            current_name = stripped[1:].strip()
            keyword_parts = []
        elif current_name and stripped:
            keyword_parts.append(stripped)

    save_current()

    logger.debug(f"規則テキスト解析完了: {len(rules)}件")
    return rules


def format_rules_text(rules: Iterable[Rule]) -> str:
    """
    規則をテキスト形式に変換（先頭にBOMを付加）

    Args:
        rules: 規則のリスト

    Returns:
        書き出し用のテキスト
    """
    content = ''.join(f"#{rule.new_file_name}\n{rule.keyword}\n\n" for rule in rules)
    return BOM + content.strip()


def load_rules_file(path: Path, existing_keywords: Iterable[str] = ()) -> List[Rule]:
    """
    規則ファイルを読み込み

    Raises:
        FileOperationError: ファイルの読み込みに失敗した場合
    """
    try:
        text = path.read_text(encoding='utf-8-sig')
    except (OSError, UnicodeDecodeError) as e:
        raise FileOperationError(f"規則ファイル読み込みエラー: {path} - {e}") from e

    return parse_rules_text(text, existing_keywords)


def save_rules_file(rules: Iterable[Rule], path: Path) -> None:
    """
    規則ファイルを書き出し

    Raises:
        FileOperationError: ファイルの書き込みに失敗した場合
    """
    try:
        path.write_text(format_rules_text(rules), encoding='utf-8')
    except OSError as e:
        raise FileOperationError(f"規則ファイル書き込みエラー: {path} - {e}") from e
    logger.info(f"規則ファイルを書き出しました: {path}")


def default_export_file_name(today: Optional[date] = None) -> str:
    """書き出しファイルのデフォルト名 (keyword_rules_YYYY-MM-DD.txt)"""
    today = today or date.today()
    return f"keyword_rules_{today.isoformat()}.txt"
