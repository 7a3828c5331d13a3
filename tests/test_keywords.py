from market_pulse import keywords as kw
from market_pulse.models import Category, Sentiment


def test_whole_word_matching():
    assert kw.contains("oil prices climb", "oil")
    assert not kw.contains("turmoil in bond markets", "oil")
    assert not kw.contains("the analyst said so", "ai")
    assert kw.contains("new ai chips", "ai")


def test_plural_suffix_is_tolerated():
    assert kw.contains("shares surges higher", "surge")
    assert kw.contains("new tariffs announced", "tariff")
    assert kw.contains("interest rates rise", "interest rate")


def test_fed_and_earnings_terms_carry_critical_weight():
    weights = {r.term: r.weight for r in kw.IMPACT_KEYWORDS}
    assert weights["fed"] == kw.CRITICAL_WEIGHT
    assert weights["federal reserve"] == kw.CRITICAL_WEIGHT
    assert weights["earnings beat"] == kw.CRITICAL_WEIGHT
    assert weights["merger"] == kw.DEFAULT_WEIGHT
    assert weights["lawsuit"] == kw.DEFAULT_WEIGHT


def test_category_terms_follow_ladder():
    assert tuple(kw.CATEGORY_TERMS) == kw.CATEGORY_LADDER
    assert "bitcoin" in kw.CATEGORY_TERMS[Category.CRYPTO]
    assert "merger" in kw.CATEGORY_TERMS[Category.MNA]
    # uncategorised movers never land in a bucket
    for terms in kw.CATEGORY_TERMS.values():
        assert "lawsuit" not in terms


def test_ticker_pattern_is_case_sensitive():
    assert kw.ticker_pattern("AAPL").search("AAPL jumps")
    assert kw.ticker_pattern("AAPL").search("buying $AAPL")
    assert not kw.ticker_pattern("AAPL").search("aapl jumps")
    assert not kw.ticker_pattern("MS").search("MSFT jumps")


def test_single_letter_ticker_needs_cashtag():
    assert not kw.ticker_pattern("C").search("Plan C for markets")
    assert kw.ticker_pattern("C").search("$C shares higher")


def test_fallback_rules_order():
    first = kw.FALLBACK_RULES[0]
    assert "fed" in first.terms
    assert first.impact == 8
    assert first.sentiment is Sentiment.BEARISH


def test_impact_table_is_broad_and_unique():
    terms = [r.term for r in kw.IMPACT_KEYWORDS]
    assert len(terms) > 300
    assert len(terms) == len(set(terms))
    for t in ("chapter 11", "trade war", "liquidity crisis", "joint venture", "exxon"):
        assert t in terms
    assert {r.weight for r in kw.IMPACT_KEYWORDS} == {kw.CRITICAL_WEIGHT, kw.DEFAULT_WEIGHT}
