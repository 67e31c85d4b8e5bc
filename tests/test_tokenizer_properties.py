"""
トークン分割と部分一致スコアのプロパティベーステスト

Property 4: トークン分割の正規化
Property 5: 部分一致スコアの範囲
を検証します。
"""

from hypothesis import given, strategies as st
from hypothesis import settings

from metadata_renamer.tokenizer import calculate_partial_match_score, tokenize_keyword


token_strategy = st.text(
    alphabet=st.characters(whitelist_categories=('Lu', 'Ll', 'Nd')),
    min_size=1,
    max_size=10
)

separator_strategy = st.sampled_from([',', ';', '|', ' / '])


class TestTokenizerProperties:
    """トークン分割のプロパティテスト"""

    @given(st.lists(token_strategy, min_size=0, max_size=8), separator_strategy,
           st.lists(st.sampled_from(['', ' ', '  ', '\t']), min_size=16, max_size=16))
    @settings(max_examples=100)
    def test_tokenize_normalization_property(self, tokens, separator, padding):
        """
        **Feature: metadata-renamer, Property 4: トークン分割の正規化**

        任意のトークン列を区切り文字と空白で連結したキーワードに対して、
        分割結果は前後の空白を除いた元のトークン列（出現順）と一致するべきである。
        """
        parts = [f"{padding[i]}{token}{padding[i + 8]}" for i, token in enumerate(tokens)]
        # 空のトークンを途中に混ぜる
        keyword = separator.join(parts + ['   '])

        assert tokenize_keyword(keyword, separator) == tokens

    @given(st.text(max_size=50))
    @settings(max_examples=100)
    def test_tokens_are_stripped_and_non_empty_property(self, keyword):
        """
        **Feature: metadata-renamer, Property 4: トークン分割の正規化**

        任意のキーワードに対して、すべてのトークンは空でなく前後に空白を持たないべきである。
        """
        for token in tokenize_keyword(keyword):
            assert token
            assert token == token.strip()

    @given(st.lists(token_strategy, min_size=1, max_size=8), st.text(max_size=100))
    @settings(max_examples=100)
    def test_score_range_property(self, tokens, field_value):
        """
        **Feature: metadata-renamer, Property 5: 部分一致スコアの範囲**

        任意のキーワードとフィールド値に対して、スコアは 0〜1 の範囲にあり、
        一致したトークン数 / 全トークン数 と一致するべきである。
        """
        keyword = ', '.join(tokens)

        result = calculate_partial_match_score(keyword, field_value)

        assert 0.0 <= result.score <= 1.0
        assert result.total_tokens == len(tokens)
        assert result.score == len(result.matched_tokens) / len(tokens)
        for token in result.matched_tokens:
            assert token in field_value

    @given(st.lists(token_strategy, min_size=1, max_size=8))
    @settings(max_examples=100)
    def test_full_score_when_all_tokens_present_property(self, tokens):
        """
        **Feature: metadata-renamer, Property 5: 部分一致スコアの範囲**

        すべてのトークンを含むフィールド値に対して、スコアは 1.0 になるべきである。
        """
        keyword = ','.join(tokens)
        field_value = ' '.join(reversed(tokens))

        result = calculate_partial_match_score(keyword, field_value)

        assert result.score == 1.0
        assert result.matched_tokens == tokens

    @given(st.lists(token_strategy, min_size=1, max_size=8), st.text(max_size=100), st.data())
    @settings(max_examples=100)
    def test_token_order_invariance_property(self, tokens, field_value, data):
        """
        **Feature: metadata-renamer, Property 5: 部分一致スコアの範囲**

        キーワードのトークンの並び順を入れ替えても、スコアと一致トークン数は
        変わらないべきである。
        """
        permuted = data.draw(st.permutations(tokens))

        original = calculate_partial_match_score(', '.join(tokens), field_value)
        reordered = calculate_partial_match_score(', '.join(permuted), field_value)

        assert reordered.score == original.score
        assert reordered.total_tokens == original.total_tokens
        assert sorted(reordered.matched_tokens) == sorted(original.matched_tokens)


def test_empty_keyword_scores_zero():
    """トークンを持たないキーワードのスコアは0であることを確認"""
    for keyword in ['', '   ', ',,,', ' , , ']:
        result = calculate_partial_match_score(keyword, 'anything')
        assert result.score == 0.0
        assert result.matched_tokens == []
        assert result.total_tokens == 0


def test_empty_separator_falls_back_to_comma():
    """空の区切り文字はカンマとして扱われることを確認"""
    assert tokenize_keyword('a, b ,c', '') == ['a', 'b', 'c']


def test_matching_is_case_sensitive():
    """トークンの判定は大文字小文字を区別することを確認"""
    result = calculate_partial_match_score('Cat, dog', 'a cat and a dog')

    assert result.score == 0.5
    assert result.matched_tokens == ['dog']


def test_scenario_partial_match_three_of_four():
    """4トークン中3トークンが含まれる場合のスコアを確認"""
    result = calculate_partial_match_score('1girl, solo, beach, sunset', '1girl, solo, beach, night')

    assert result.score == 0.75
    assert result.matched_tokens == ['1girl', 'solo', 'beach']
    assert result.total_tokens == 4
