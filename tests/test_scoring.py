#!/usr/bin/env python3
"""
Test English-likeness scoring and ranking
"""

import sys
import os
import math
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cipherengine import (
    SCORING_WEIGHTS, AdditiveKey, CandidateResult, NoKey,
    analyze_text, bigram_score, dictionary_score, frequency_score, letter_frequencies,
    score_candidate, score_results, trigram_score,
)

ENGLISH = "THE QUICK BROWN FOX JUMPS OVER THE LAZY DOG AND THEN THE DOG SLEEPS IN THE SUN"
GIBBERISH = "QZX JWV KQZ XJQ VZKW QXJZ WQKV ZXQJ KVWX"

def _candidate(k, text):
    key = AdditiveKey(k)
    return CandidateResult(key, key.display(), text)

def test_signals_are_bounded():
    """Every signal stays within [0, 1]"""
    print("Testing signal bounds...")

    for text in (ENGLISH, GIBBERISH, "", "A", "ZZZZZZZZ"):
        a = analyze_text(text)
        for name in ("composite", "dictionary", "frequency", "bigram", "trigram"):
            value = getattr(a, name)
            assert 0.0 <= value <= 1.0, f"{name} out of range for {text!r}: {value}"
        assert 0 <= a.confidence <= 100

    print("✅ Signal bound tests passed")

def test_individual_signals():
    """Test each signal on small inputs"""
    print("Testing individual signals...")

    assert bigram_score("THE") == 1.0
    assert trigram_score("THE") == 1.0
    assert bigram_score("A") == 0.0 and trigram_score("AB") == 0.0
    assert dictionary_score("THE CAT") == 0.5, "THE matches, CAT does not"
    assert dictionary_score("HELLOWORLD") == 1.0, "Unspaced text is scanned for embedded words"
    assert dictionary_score("") == 0.0

    freqs = letter_frequencies("AAB")
    assert abs(freqs["A"] - 2 / 3) < 1e-9 and freqs["Z"] == 0.0
    assert frequency_score(ENGLISH) > frequency_score("ZZZZZZZZ")

    print("✅ Individual signal tests passed")

def test_composite_weights():
    """Composite is the weighted sum and confidence rounds half up"""
    print("Testing composite weights...")

    assert abs(sum(SCORING_WEIGHTS.values()) - 1.0) < 1e-9
    a = analyze_text(ENGLISH)
    expected = (0.50 * a.dictionary + 0.25 * a.frequency + 0.15 * a.bigram + 0.10 * a.trigram)
    assert abs(a.composite - expected) < 1e-9
    assert a.confidence == int(math.floor(a.composite * 100 + 0.5))

    print("✅ Composite weight tests passed")

def test_english_outscores_gibberish():
    """Closer-to-English text scores higher"""
    print("Testing score monotonicity...")

    assert analyze_text(ENGLISH).composite > analyze_text(GIBBERISH).composite
    assert analyze_text("HELLO WORLD").composite > analyze_text("KHOOR ZRUOG").composite

    print("✅ Monotonicity tests passed")

def test_score_results_sorts_stably():
    """Equal scores keep their enumeration order"""
    print("Testing stable ranking...")

    results = [_candidate(1, "SAME TEXT"), _candidate(2, GIBBERISH), _candidate(3, "SAME TEXT"),
               _candidate(4, ENGLISH)]
    ranked = score_results(results)
    assert ranked is results, "Sorting happens in place"
    assert ranked[0].key == AdditiveKey(4), f"Got {ranked[0].key_display}"
    same = [r.key.k for r in ranked if r.plaintext == "SAME TEXT"]
    assert same == [1, 3], f"Tie order changed: {same}"
    scores = [r.score for r in ranked]
    assert scores == sorted(scores, reverse=True)

    print("✅ Stable ranking tests passed")

def test_sentinel_is_scored():
    """Sentinel candidates score like any other text"""
    print("Testing sentinel scoring...")

    key = NoKey("Not applicable")
    r = score_candidate(CandidateResult(key, key.display(), "Brute-force is not applicable for this tool."))
    assert r.analysis is not None
    assert 0 <= r.confidence <= 100
    assert r.score == r.analysis.composite

    print("✅ Sentinel scoring tests passed")

def run_all_tests():
    """Run all scoring tests"""
    print("🧪 Running scoring tests...")
    print("=" * 50)

    try:
        test_signals_are_bounded()
        test_individual_signals()
        test_composite_weights()
        test_english_outscores_gibberish()
        test_score_results_sorts_stably()
        test_sentinel_is_scored()

        print("=" * 50)
        print("🎉 All scoring tests passed!")
        return True

    except AssertionError as e:
        print(f"❌ Test failed: {e}")
        return False

if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
