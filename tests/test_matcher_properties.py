"""
Matcherのプロパティベーステスト

Property 6: 完全一致の優先
Property 7: 規則順の優先
Property 8: 部分一致候補の順序
Property 9: 無効な規則の無視
Property 12: 候補選択の冪等性
Property 27: 規則適用の冪等性
Property 28: 空のメタデータ
を検証します。
"""

import uuid
from pathlib import Path

import pytest
from hypothesis import assume, given, strategies as st
from hypothesis import settings

from metadata_renamer.exceptions import ValidationError
from metadata_renamer.matcher import Matcher, select_candidate
from metadata_renamer.models import ImageFile, PartialMatchSettings, Rule


def make_rule(keyword: str, new_file_name: str, enabled: bool = True,
              partial_match: bool = False) -> Rule:
    return Rule(
        id=str(uuid.uuid4()),
        keyword=keyword,
        new_file_name=new_file_name,
        enabled=enabled,
        partial_match=partial_match
    )


def make_image(metadata, original_name: str = 'image.png') -> ImageFile:
    return ImageFile(
        id=str(uuid.uuid4()),
        path=Path(f"/images/{original_name}"),
        original_name=original_name,
        file_size=1024,
        metadata=dict(metadata)
    )


word_strategy = st.text(
    alphabet=st.characters(whitelist_categories=('Ll',), max_codepoint=127),
    min_size=3,
    max_size=8
)


@st.composite
def exact_and_partial_scenario_strategy(draw):
    """完全一致する規則と部分一致する規則が両方存在するシナリオを生成"""
    words = draw(st.lists(word_strategy, min_size=4, max_size=6, unique=True))
    field_value = ', '.join(words)

    # 部分一致の規則: 最後の単語を含まない単語に置き換える
    missing = draw(word_strategy.filter(lambda w: all(w not in x and x not in w for x in words)))
    partial_keyword = ', '.join(words[:-1] + [missing])

    # 完全一致の規則: 値に含まれる部分文字列
    exact_keyword = words[draw(st.integers(min_value=0, max_value=len(words) - 1))]

    partial_first = draw(st.booleans())
    return {
        'field_value': field_value,
        'partial_rule': make_rule(partial_keyword, 'partial_name', partial_match=True),
        'exact_rule': make_rule(exact_keyword, 'exact_name'),
        'partial_first': partial_first,
    }


class TestMatcherProperties:
    """Matcherのプロパティテスト"""

    @given(exact_and_partial_scenario_strategy())
    @settings(max_examples=100)
    def test_exact_match_precedence_property(self, scenario):
        """
        **Feature: metadata-renamer, Property 6: 完全一致の優先**

        完全一致する規則が存在する場合、規則の並び順や部分一致のスコアに関係なく
        完全一致が採用され、候補リストは設定されないべきである。
        """
        rules = [scenario['exact_rule'], scenario['partial_rule']]
        if scenario['partial_first']:
            rules.reverse()

        matcher = Matcher(PartialMatchSettings(global_enabled=True, min_match_ratio=0.1))
        result = matcher.match_image(make_image({'PNG:parameters': scenario['field_value']}), rules)

        assert result.matched_rule is scenario['exact_rule']
        assert result.match_score == 1.0
        assert result.is_partial_match is False
        assert result.candidate_matches is None
        assert result.new_file_name == 'exact_name.png'

    @given(st.lists(word_strategy, min_size=2, max_size=6, unique=True),
           st.lists(word_strategy, min_size=1, max_size=3))
    @settings(max_examples=100)
    def test_rule_order_precedence_property(self, keywords, extra_words):
        """
        **Feature: metadata-renamer, Property 7: 規則順の優先**

        複数の規則が完全一致する場合、規則リストで最初の規則が採用されるべきである。
        """
        rules = [make_rule(keyword, f"name_{i}") for i, keyword in enumerate(keywords)]
        field_value = ' '.join(extra_words + list(reversed(keywords)))

        result = Matcher().match_image(make_image({'PNG:parameters': field_value}), rules)

        assert result.matched_rule is rules[0]
        assert result.new_file_name == 'name_0.png'

    @given(st.lists(word_strategy, min_size=5, max_size=5, unique=True),
           st.lists(st.integers(min_value=1, max_value=4), min_size=2, max_size=5))
    @settings(max_examples=100)
    def test_partial_candidates_ordering_property(self, words, hit_counts):
        """
        **Feature: metadata-renamer, Property 8: 部分一致候補の順序**

        部分一致の候補はスコアの降順に並び、同じスコアの場合は規則の順序が
        維持され、先頭の候補がマッチング結果になるべきである。
        """
        field_value = ' '.join(words[:4])
        missing = words[4]

        # i番目の規則は hit_counts[i] 個の一致トークンと1個の不一致トークンを持つ
        rules = [
            make_rule(', '.join(words[:hits] + [f"{missing}{i}"]), f"rule_{i}")
            for i, hits in enumerate(hit_counts)
        ]

        matcher = Matcher(PartialMatchSettings(global_enabled=True, min_match_ratio=0.1))
        result = matcher.match_image(make_image({'PNG:parameters': field_value}), rules)

        expected_order = sorted(range(len(rules)), key=lambda i: -hit_counts[i] / (hit_counts[i] + 1))

        assert result.is_partial_match is True
        assert result.matched_rule is rules[expected_order[0]]
        assert result.match_score == hit_counts[expected_order[0]] / (hit_counts[expected_order[0]] + 1)
        assert result.candidate_matches is not None
        assert [c.rule for c in result.candidate_matches] == [rules[i] for i in expected_order]

        scores = [c.match_score for c in result.candidate_matches]
        assert scores == sorted(scores, reverse=True)

    @given(st.lists(word_strategy, min_size=1, max_size=5, unique=True))
    @settings(max_examples=100)
    def test_disabled_rules_ignored_property(self, keywords):
        """
        **Feature: metadata-renamer, Property 9: 無効な規則の無視**

        無効な規則はキーワードが一致してもマッチング結果にも候補にも現れないべきである。
        """
        rules = [make_rule(keyword, f"name_{i}", enabled=False, partial_match=True)
                 for i, keyword in enumerate(keywords)]
        field_value = ' '.join(keywords)

        matcher = Matcher(PartialMatchSettings(global_enabled=True, min_match_ratio=0.1))
        result = matcher.match_image(make_image({'PNG:parameters': field_value}), rules)

        assert not result.is_matched
        assert result.new_file_name is None
        assert result.candidate_matches is None

    @given(st.lists(word_strategy, min_size=3, max_size=3, unique=True), st.integers(min_value=0, max_value=5))
    @settings(max_examples=100)
    def test_select_candidate_idempotent_property(self, words, repeat):
        """
        **Feature: metadata-renamer, Property 12: 候補選択の冪等性**

        同じ候補を何度選択しても結果は同じであり、候補リストは保持されるべきである。
        """
        field_value = f"{words[0]} {words[1]}"
        assume(words[2] not in field_value)
        rules = [
            make_rule(f"{words[0]}, {words[1]}, {words[2]}", 'first'),
            make_rule(f"{words[0]}, {words[2]}", 'second'),
        ]

        matcher = Matcher(PartialMatchSettings(global_enabled=True, min_match_ratio=0.5))
        image = matcher.match_image(make_image({'PNG:parameters': field_value}, 'photo.webp'), rules)
        assert len(image.candidate_matches) == 2

        chosen = image.candidate_matches[1]
        once = select_candidate(image, chosen)
        again = once
        for _ in range(repeat):
            again = select_candidate(again, chosen)

        assert once == again
        assert once.matched_rule is rules[1]
        assert once.new_file_name == 'second.webp'
        assert once.match_score == 0.5
        assert once.is_partial_match is True
        assert once.candidate_matches == image.candidate_matches

    @given(
        st.lists(word_strategy, min_size=2, max_size=6, unique=True),
        st.data(),
        st.booleans(),
        st.sampled_from([0.1, 0.5, 0.7, 0.99])
    )
    @settings(max_examples=100)
    def test_apply_rules_idempotent_property(self, words, data, global_enabled, ratio):
        """
        **Feature: metadata-renamer, Property 27: 規則適用の冪等性**

        同じ規則と同じメタデータに対して規則を2回適用した結果は、
        1回適用した結果と等しくなるべきである。
        """
        token_lists = st.lists(st.sampled_from(words), min_size=1, max_size=4)
        rules = [
            make_rule(', '.join(tokens), f"name_{i}",
                      enabled=data.draw(st.booleans()), partial_match=data.draw(st.booleans()))
            for i, tokens in enumerate(data.draw(st.lists(token_lists, max_size=5)))
        ]
        images = [
            make_image({'PNG:parameters': ' '.join(tokens)}, f"image_{i}.png")
            for i, tokens in enumerate(data.draw(st.lists(token_lists, min_size=1, max_size=5)))
        ]

        matcher = Matcher(PartialMatchSettings(global_enabled=global_enabled, min_match_ratio=ratio))
        once = matcher.apply_rules(images, rules)

        assert matcher.apply_rules(images, rules) == once
        assert matcher.apply_rules(once, rules) == once

    @given(
        st.lists(st.tuples(st.text(max_size=20), st.booleans(), st.booleans()), max_size=6),
        st.booleans()
    )
    @settings(max_examples=100)
    def test_empty_metadata_is_unmatched_property(self, rule_specs, global_enabled):
        """
        **Feature: metadata-renamer, Property 28: 空のメタデータ**

        メタデータが空の画像は、どのような規則リストに対してもマッチせず、
        候補も持たないべきである。
        """
        rules = [make_rule(keyword, f"name_{i}", enabled=enabled, partial_match=partial)
                 for i, (keyword, enabled, partial) in enumerate(rule_specs)]

        matcher = Matcher(PartialMatchSettings(global_enabled=global_enabled, min_match_ratio=0.1))
        result = matcher.match_image(make_image({}), rules)

        assert not result.is_matched
        assert result.matched_field is None
        assert result.new_file_name is None
        assert result.candidate_matches is None


class TestMatcherScenarios:
    """代表的なシナリオのテスト"""

    def test_scenario_exact_match_beats_better_partial(self):
        """完全一致は部分一致より優先されることを確認"""
        rules = [
            make_rule('1girl, solo, beach, sunset', 'beach_sunset', partial_match=True),
            make_rule('solo', 'solo_shot'),
        ]
        image = make_image({'PNG:parameters': '1girl, solo, beach, night'}, 'a.png')

        result = Matcher().match_image(image, rules)

        assert result.matched_rule is rules[1]
        assert result.new_file_name == 'solo_shot.png'
        assert result.matched_field == 'PNG:parameters'

    def test_scenario_partial_match_with_threshold(self):
        """一致率が最小値以上の場合に部分一致になることを確認"""
        rules = [make_rule('1girl, solo, beach, sunset', 'beach_sunset')]
        image = make_image({'PNG:parameters': '1girl, solo, beach, night'}, 'a.jpeg')

        below = Matcher(PartialMatchSettings(global_enabled=True, min_match_ratio=0.8))
        at = Matcher(PartialMatchSettings(global_enabled=True, min_match_ratio=0.75))

        assert not below.match_image(image, rules).is_matched

        result = at.match_image(image, rules)
        assert result.new_file_name == 'beach_sunset.jpeg'
        assert result.match_score == 0.75
        assert result.is_partial_match is True
        # 候補が1つの場合は候補リストを設定しない
        assert result.candidate_matches is None

    def test_scenario_partial_disabled_everywhere(self):
        """全体設定も規則単位の設定も無効なら部分一致しないことを確認"""
        rules = [make_rule('1girl, solo, beach, sunset', 'beach_sunset')]
        image = make_image({'PNG:parameters': '1girl, solo, beach, night'})

        result = Matcher(PartialMatchSettings(min_match_ratio=0.5)).match_image(image, rules)

        assert not result.is_matched
        assert result.match_score is None
        assert result.is_partial_match is None

    def test_scenario_per_rule_partial_match(self):
        """規則単位で部分マッチングを有効にした規則のみが候補になることを確認"""
        rules = [
            make_rule('cat, dog, bird', 'animals'),
            make_rule('cat, dog, fish', 'pets', partial_match=True),
        ]
        image = make_image({'PNG:parameters': 'cat and dog'})

        result = Matcher(PartialMatchSettings(min_match_ratio=0.5)).match_image(image, rules)

        assert result.matched_rule is rules[1]
        assert result.candidate_matches is None

    def test_scenario_field_order_precedence(self):
        """同じ規則が複数のフィールドに一致する場合は最初のフィールドが記録されることを確認"""
        rules = [make_rule('sunset', 'sunset')]
        image = make_image({
            'PNG:parameters': 'beach at sunset',
            'EXIF:ImageDescription': 'sunset photo',
        })

        result = Matcher().match_image(image, rules)

        assert result.matched_field == 'PNG:parameters'

    def test_apply_rules_does_not_mutate_input(self):
        """apply_rules は入力の画像を変更しないことを確認"""
        rules = [make_rule('cat', 'cat')]
        images = [make_image({'PNG:parameters': 'a cat'}), make_image({'PNG:parameters': 'a dog'})]

        results = Matcher().apply_rules(images, rules)

        assert [image.is_matched for image in results] == [True, False]
        assert all(not image.is_matched for image in images)

    def test_rematch_clears_previous_result(self):
        """規則の変更後に再適用すると以前の結果が消えることを確認"""
        image = make_image({'PNG:parameters': 'a cat'})
        matched = Matcher().match_image(image, [make_rule('cat', 'cat')])
        assert matched.is_matched

        result = Matcher().match_image(matched, [make_rule('dog', 'dog')])

        assert not result.is_matched
        assert result.new_file_name is None
        assert result.match_score is None

    def test_get_match_statistics(self):
        """マッチング統計情報の集計を確認"""
        rules = [make_rule('cat', 'cat'), make_rule('red, blue', 'colors', partial_match=True)]
        images = [
            make_image({'PNG:parameters': 'a cat'}),
            make_image({'PNG:parameters': 'red car'}),
            make_image({'PNG:parameters': 'nothing'}),
        ]
        matcher = Matcher(PartialMatchSettings(min_match_ratio=0.5))

        stats = matcher.get_match_statistics(matcher.apply_rules(images, rules))

        assert stats == {
            'total_images': 3,
            'exact_matches': 1,
            'partial_matches': 1,
            'unmatched': 1,
        }

    def test_settings_ratio_out_of_range(self):
        """最小一致率が範囲外の場合は ValidationError になることを確認"""
        for ratio in [0.0, 0.05, 1.0, 1.5]:
            with pytest.raises(ValidationError):
                PartialMatchSettings(min_match_ratio=ratio)

        assert PartialMatchSettings(min_match_ratio=0.1).min_match_ratio == 0.1
        assert PartialMatchSettings(min_match_ratio=0.99).min_match_ratio == 0.99
        assert PartialMatchSettings(token_separator='').token_separator == ','
