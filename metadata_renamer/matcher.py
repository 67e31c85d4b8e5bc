"""
マッチング処理モジュール

画像のメタデータに対してキーワード規則を評価し、適用する規則を決定します。
完全一致（キーワード全体が値に含まれる）を優先し、見つからない場合は
トークン単位の部分一致で候補を収集してスコア順に並べます。
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from .file_namer import derive_file_name
from .models import ImageFile, MatchCandidate, PartialMatchSettings, Rule
from .tokenizer import calculate_partial_match_score


def clear_match(image: ImageFile) -> ImageFile:
    """マッチング結果をすべて未設定にした画像を返す"""
    return replace(
        image,
        matched_rule=None,
        matched_field=None,
        new_file_name=None,
        match_score=None,
        candidate_matches=None,
        is_partial_match=None
    )


def select_candidate(image: ImageFile, candidate: MatchCandidate) -> ImageFile:
    """
    候補を手動で選択してマッチング結果を置き換える

    候補リストはそのまま保持します。同じ候補で何度呼び出しても結果は同じです。

    Args:
        image: 対象の画像
        candidate: 選択する候補

    Returns:
        更新された画像
    """
    return replace(
        image,
        matched_rule=candidate.rule,
        matched_field=candidate.matched_field,
        new_file_name=derive_file_name(candidate.rule.new_file_name, image.original_name),
        match_score=candidate.match_score,
        is_partial_match=candidate.match_score < 1.0
    )


class Matcher:
    """画像メタデータとキーワード規則をマッチングするクラス"""

    def __init__(self, settings: Optional[PartialMatchSettings] = None):
        """
        Matcherを初期化

        Args:
            settings: 部分マッチング設定（Noneの場合はデフォルト設定）
        """
        self.settings = settings or PartialMatchSettings()
        self.logger = logging.getLogger(__name__)

    def apply_rules(self, images: List[ImageFile], rules: List[Rule]) -> List[ImageFile]:
        """
        すべての画像に規則を適用

        入力の画像は変更せず、マッチング結果を設定した新しい画像のリストを返します。

        Args:
            images: 画像のリスト
            rules: 規則のリスト（この順序が優先順位）

        Returns:
            マッチング結果を設定した画像のリスト（入力と同じ順序）
        """
        self.logger.info(f"マッチング開始: {len(images)}個の画像, {len(rules)}個の規則")
        results = [self.match_image(image, rules) for image in images]

        matched = sum(1 for image in results if image.is_matched)
        self.logger.info(f"マッチング完了: {matched}/{len(results)}個の画像がマッチ")
        return results

    def match_image(self, image: ImageFile, rules: List[Rule]) -> ImageFile:
        """
        1つの画像に規則を適用

        Args:
            image: 対象の画像
            rules: 規則のリスト

        Returns:
            マッチング結果を設定した画像
        """
        if not image.metadata:
            return clear_match(image)

        enabled_rules = [rule for rule in rules if rule.enabled]

        # 1. 完全一致（規則順 → フィールド順で最初に見つかったものを採用）
        exact = self._find_exact_match(image, enabled_rules)
        if exact:
            return exact

        # 2. 部分一致
        candidates = self._collect_candidates(image, enabled_rules)
        if candidates:
            # 安定ソートのため同点の場合は収集順（規則順）が維持される
            candidates.sort(key=lambda c: c.match_score, reverse=True)
            best = candidates[0]

            self.logger.debug(
                f"部分マッチ: {image.original_name} -> {best.rule.new_file_name} "
                f"({best.match_score:.2f}, 候補数: {len(candidates)})"
            )
            matched = select_candidate(image, best)
            return replace(
                matched,
                candidate_matches=candidates if len(candidates) > 1 else None,
                is_partial_match=True
            )

        self.logger.debug(f"マッチなし: {image.original_name}")
        return clear_match(image)

    def _find_exact_match(self, image: ImageFile, rules: List[Rule]) -> Optional[ImageFile]:
        """
        キーワード全体をフィールド値に含む最初の (規則, フィールド) を検索

        Args:
            image: 対象の画像
            rules: 有効な規則のリスト

        Returns:
            完全一致した画像（見つからない場合はNone）
        """
        for rule in rules:
            for field_name, field_value in image.metadata.items():
                if rule.keyword in field_value:
                    self.logger.debug(
                        f"完全マッチ: {image.original_name} -> {rule.new_file_name} ({field_name})"
                    )
                    return replace(
                        image,
                        matched_rule=rule,
                        matched_field=field_name,
                        new_file_name=derive_file_name(rule.new_file_name, image.original_name),
                        match_score=1.0,
                        candidate_matches=None,
                        is_partial_match=False
                    )
        return None

    def _collect_candidates(self, image: ImageFile, rules: List[Rule]) -> List[MatchCandidate]:
        """
        部分マッチングの候補を収集

        全体設定または規則単位の設定で部分マッチングが有効な規則のみを対象に、
        最小一致率以上かつ1.0未満のスコアの (規則, フィールド) を候補とします。

        Args:
            image: 対象の画像
            rules: 有効な規則のリスト

        Returns:
            収集順の候補リスト
        """
        separator = self.settings.token_separator
        min_ratio = self.settings.min_match_ratio
        candidates = []

        for rule in rules:
            if not (self.settings.global_enabled or rule.partial_match):
                continue

            for field_name, field_value in image.metadata.items():
                result = calculate_partial_match_score(rule.keyword, field_value, separator)
                if min_ratio <= result.score < 1.0:
                    candidates.append(MatchCandidate(
                        rule=rule,
                        matched_field=field_name,
                        match_score=result.score,
                        matched_tokens=result.matched_tokens,
                        total_tokens=result.total_tokens
                    ))

        return candidates

    def get_match_statistics(self, images: List[ImageFile]) -> Dict[str, int]:
        """
        マッチング統計情報を取得

        Args:
            images: マッチング済みの画像のリスト

        Returns:
            統計情報の辞書
        """
        exact_count = sum(1 for image in images if image.is_matched and not image.is_partial_match)
        partial_count = sum(1 for image in images if image.is_matched and image.is_partial_match)

        return {
            'total_images': len(images),
            'exact_matches': exact_count,
            'partial_matches': partial_count,
            'unmatched': len(images) - exact_count - partial_count
        }
