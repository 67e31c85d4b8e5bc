"""
規則管理モジュール

キーワード規則の作成・編集・削除・有効化と、規則ファイルの取り込み・書き出しを
担当します。規則は置き換えで更新し、マッチングエンジンには読み取り専用で渡します。
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .file_namer import sanitize_file_name
from .models import DEFAULT_LIMITS, ProcessingLimits, Rule, RuleResult
from .rule_file import format_rules_text, new_rule_id, parse_rules_text


class RuleManager:
    """キーワード規則を管理するクラス"""

    def __init__(self, rules: Optional[List[Rule]] = None,
                 limits: ProcessingLimits = DEFAULT_LIMITS):
        """
        RuleManagerを初期化

        Args:
            rules: 初期の規則リスト
            limits: キーワード・ファイル名の長さ制限
        """
        self._rules: List[Rule] = list(rules or [])
        self.limits = limits
        self.logger = logging.getLogger(__name__)

    @property
    def rules(self) -> List[Rule]:
        """規則リストのコピー（優先順位順）"""
        return list(self._rules)

    def find(self, rule_id: str) -> Optional[Rule]:
        return next((rule for rule in self._rules if rule.id == rule_id), None)

    def add_rule(self, keyword: str, new_file_name: str,
                 partial_match: bool = False) -> RuleResult:
        """
        規則を追加

        キーワードが重複する場合や入力が不正な場合は規則リストを変更せず、
        エラーメッセージを含む結果を返します。

        Args:
            keyword: キーワード
            new_file_name: 新しいファイル名（正規化して保存）
            partial_match: 規則単位の部分マッチング

        Returns:
            追加結果
        """
        keyword = keyword.strip()
        error = self._validate(keyword, new_file_name.strip())
        if error is None and any(rule.keyword == keyword for rule in self._rules):
            error = "既に存在するキーワードです"
        if error:
            self.logger.warning(f"規則を追加できません: {error}")
            return RuleResult(rule=None, error=error)

        rule = Rule(
            id=new_rule_id(),
            keyword=keyword,
            new_file_name=sanitize_file_name(new_file_name.strip()),
            partial_match=partial_match
        )
        self._rules.append(rule)
        self.logger.debug(f"規則を追加: {rule.new_file_name} ({len(self._rules)}件)")
        return RuleResult(rule=rule)

    def update_rule(self, rule_id: str, keyword: str, new_file_name: str) -> RuleResult:
        """
        規則のキーワードとファイル名を編集

        空の入力の場合は変更せずに現在の規則を返します。
        """
        current = self.find(rule_id)
        if current is None:
            return RuleResult(rule=None, error=f"規則が見つかりません: {rule_id}")

        keyword = keyword.strip()
        new_file_name = new_file_name.strip()
        if not keyword or not new_file_name:
            return RuleResult(rule=current)

        error = self._validate(keyword, new_file_name)
        if error is None and any(r.keyword == keyword and r.id != rule_id for r in self._rules):
            error = "既に存在するキーワードです"
        if error:
            self.logger.warning(f"規則を更新できません: {error}")
            return RuleResult(rule=None, error=error)

        updated = replace(current, keyword=keyword, new_file_name=sanitize_file_name(new_file_name))
        self._replace(updated)
        return RuleResult(rule=updated)

    def _validate(self, keyword: str, new_file_name: str) -> Optional[str]:
        """入力を検証し、不正な場合はエラーメッセージを返す"""
        if not keyword or not new_file_name:
            return "キーワードとファイル名を入力してください"
        if len(keyword) > self.limits.max_keyword_length:
            return f"キーワードは{self.limits.max_keyword_length}文字を超えられません"
        # 規則ファイルでは '#' で始まる行がファイル名の見出しになる
        if any(line.strip().startswith('#') for line in keyword.splitlines()):
            return "キーワードの行を '#' で始めることはできません"
        if len(new_file_name) > self.limits.max_file_name_length:
            return f"ファイル名は{self.limits.max_file_name_length}文字を超えられません"
        if not sanitize_file_name(new_file_name):
            return "ファイル名に使用できる文字がありません"
        return None

    def _replace(self, updated: Rule) -> None:
        self._rules = [updated if rule.id == updated.id else rule for rule in self._rules]

    def remove_rule(self, rule_id: str) -> bool:
        """規則を削除（削除した場合True）"""
        before = len(self._rules)
        self._rules = [rule for rule in self._rules if rule.id != rule_id]
        return len(self._rules) < before

    def toggle_rule(self, rule_id: str) -> Optional[Rule]:
        """規則の有効・無効を切り替え"""
        current = self.find(rule_id)
        if current is None:
            return None
        updated = replace(current, enabled=not current.enabled)
        self._replace(updated)
        return updated

    def set_all_enabled(self, enabled: bool) -> None:
        """すべての規則の有効・無効を設定"""
        self._rules = [replace(rule, enabled=enabled) for rule in self._rules]

    def toggle_partial_match(self, rule_id: str) -> Optional[Rule]:
        """規則単位の部分マッチングを切り替え"""
        current = self.find(rule_id)
        if current is None:
            return None
        updated = replace(current, partial_match=not current.partial_match)
        self._replace(updated)
        return updated

    def set_all_partial_match(self, partial_match: bool) -> None:
        """すべての規則の部分マッチングを設定"""
        self._rules = [replace(rule, partial_match=partial_match) for rule in self._rules]

    def clear(self) -> None:
        """すべての規則を削除"""
        self._rules = []

    def search(self, term: str) -> List[Rule]:
        """キーワードまたはファイル名に検索語を含む規則（大文字小文字を区別しない）"""
        term = term.strip().lower()
        if not term:
            return self.rules
        return [
            rule for rule in self._rules
            if term in rule.keyword.lower() or term in rule.new_file_name.lower()
        ]

    def import_text(self, text: str, replace_existing: bool = False) -> List[Rule]:
        """
        規則テキストを取り込み

        Args:
            text: 規則ファイルの内容
            replace_existing: Trueの場合は既存の規則を置き換え、Falseの場合は追加

        Returns:
            取り込んだ規則のリスト
        """
        existing = () if replace_existing else [rule.keyword for rule in self._rules]
        imported = parse_rules_text(text, existing)

        if not imported:
            self.logger.warning("取り込む規則がありません。形式を確認してください (#ファイル名 / キーワード)")
            return []

        if replace_existing:
            self._rules = imported
        else:
            self._rules.extend(imported)

        self.logger.info(f"{len(imported)}件の規則を取り込みました")
        return imported

    def export_text(self) -> str:
        """規則をテキスト形式で書き出し"""
        return format_rules_text(self._rules)
