#!/usr/bin/env python3
"""
Test key search: exhaustive enumeration, the Vigenere heuristic, dictionary
attacks, product combinations and the crack pipeline
"""

import sys
import os
import threading
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from cipherengine import (
    AdditiveKey, AffineKey, CipherType, ColumnarKey, CrackJob, CrackOptions, EngineFault, MultiplicativeKey,
    JobSuperseded, NoKey, ProductKey, RailFenceKey, HILL_MAX_CANDIDATES, MAX_RESULTS,
    additive_encode, multiplicative_encode, brute_force, bruteforce_additive, bruteforce_affine, bruteforce_autokey,
    bruteforce_columnar, bruteforce_double_transposition, bruteforce_hill, bruteforce_keyless,
    bruteforce_multiplicative, bruteforce_playfair, bruteforce_product, bruteforce_rail_fence,
    bruteforce_vigenere, crack, encode, estimate_vigenere_key_lengths, gcd, hill_determinant,
    hill_dictionary, index_of_coincidence, playfair_encode, rail_fence_encode, recover_vigenere_key,
    vigenere_encode,
)

# 80 letters of ordinary English; three copies give the IC estimate enough to work with
PHRASE = "MEETMEBESIDETHEOLDSTONEBRIDGEWHERETHERIVERBENDSWESTWARDANDBRINGTHELETTERSWITHYOU"
VIGENERE_PLAIN = PHRASE * 3

def test_exhaustive_counts():
    """Test exhaustive searches enumerate the whole key space"""
    print("Testing exhaustive key spaces...")

    assert len(bruteforce_additive("KHOOR")) == 26
    assert len(bruteforce_multiplicative("KHOOR")) == 12
    assert len(bruteforce_affine("KHOOR")) == 312
    assert len(bruteforce_autokey("KHOOR")) == 26
    assert [r.key.k for r in bruteforce_additive("KHOOR")] == list(range(26)), "Enumeration order is key order"

    print("✅ Exhaustive count tests passed")

def test_exhaustive_searches_find_key():
    """Test the candidate at the true key is the plaintext for each exhaustive search"""
    print("Testing multiplicative / affine / autokey search...")

    mult = bruteforce_multiplicative(multiplicative_encode("HELLOWORLD", 7))
    assert mult[3].key == MultiplicativeKey(7), f"Got {mult[3].key_display}"
    assert mult[3].plaintext == "HELLOWORLD", f"Got {mult[3].plaintext}"

    affine = bruteforce_affine("RCLLAOAPLX")
    hit = affine[2 * 26 + 8]
    assert hit.key == AffineKey(5, 8), f"Got {hit.key_display}"
    assert hit.plaintext == "HELLOWORLD", f"Got {hit.plaintext}"

    autokey = bruteforce_autokey("OLPWZKKFCO")
    assert autokey[7].key_display == "Initial Key = 7"
    assert autokey[7].plaintext == "HELLOWORLD", f"Got {autokey[7].plaintext}"

    print("✅ Multiplicative / affine / autokey search tests passed")

def test_additive_search_finds_key():
    """Test the additive candidate for the right key is the plaintext"""
    print("Testing additive search...")

    results = bruteforce_additive("KHOORZRUOG")
    assert results[3].plaintext == "HELLOWORLD", f"Got {results[3].plaintext}"
    assert results[3].key_display == "Key = 3"
    assert results[0].plaintext == "KHOORZRUOG", "Key 0 leaves text unchanged"

    print("✅ Additive search tests passed")

def test_transposition_ranges():
    """Test rail fence and keyless ranges are capped by text length"""
    print("Testing transposition search ranges...")

    rails = bruteforce_rail_fence("HOLELWRDLO")
    assert [r.key.rails for r in rails] == list(range(2, 11)), f"Got {[r.key.rails for r in rails]}"
    assert any(r.plaintext == "HELLOWORLD" for r in rails)
    assert len(bruteforce_rail_fence("ABCDE")) == 4
    assert len(bruteforce_rail_fence(rail_fence_encode("A" * 40, 3))) == 19

    keyless = bruteforce_keyless("HLODEORXLWLX")
    assert [r.key.columns for r in keyless] == list(range(2, 11))
    assert any(r.plaintext == "HELLOWORLDXX" for r in keyless)

    print("✅ Transposition range tests passed")

def test_index_of_coincidence():
    """Test IC on uniform and repetitive text"""
    print("Testing index of coincidence...")

    assert index_of_coincidence("A") == 0.0
    assert index_of_coincidence("AAAA") == 1.0
    assert index_of_coincidence("ABCDEFGHIJKLMNOPQRSTUVWXYZ") == 0.0

    print("✅ IC tests passed")

def test_vigenere_heuristic():
    """Test key length estimate and per-column key recovery"""
    print("Testing Vigenere heuristic...")

    ct = vigenere_encode(VIGENERE_PLAIN, "KEY")
    lengths = estimate_vigenere_key_lengths(ct)
    assert len(lengths) == 5, f"Expected 5 lengths, got {lengths}"
    assert 3 in lengths, f"True key length missing from {lengths}"
    assert recover_vigenere_key(ct, 3) == "KEY"

    results = bruteforce_vigenere(ct)
    assert len(results) == 5
    assert any(r.plaintext == VIGENERE_PLAIN for r in results), "Some candidate should be the plaintext"
    assert any(r.key_display == 'Key = "KEY" (len=3)' for r in results)

    print("✅ Vigenere heuristic tests passed")

def test_dictionary_attacks():
    """Test Playfair, columnar and double transposition key lists"""
    print("Testing dictionary attacks...")

    playfair = bruteforce_playfair(playfair_encode("MEETMEATTHEPARK", "MONARCHY"))
    assert len(playfair) == 12
    assert any(r.plaintext.startswith("MEETMEATTHEPARK") for r in playfair)

    columnar = bruteforce_columnar("ODLREOLLHW")
    assert len(columnar) == 13
    hit = [r for r in columnar if r.key == ColumnarKey("ZEBRA")]
    assert hit and hit[0].plaintext == "HELLOWORLD"
    assert len(bruteforce_columnar("ABCD")) == 2, "Only KEY and CODE fit four letters"

    double = bruteforce_double_transposition("HELLOWORLDXX")
    assert len(double) == 25

    print("✅ Dictionary attack tests passed")

def test_hill_search():
    """Test Hill candidates are capped and all invertible"""
    print("Testing Hill search...")

    keys = list(hill_dictionary())
    assert len(keys) > HILL_MAX_CANDIDATES
    assert all(gcd(hill_determinant(k.matrix), 26) == 1 for k in keys)

    results = bruteforce_hill("HELLOWORLD")
    assert len(results) == HILL_MAX_CANDIDATES
    first = encode(CipherType.HILL, "HELLOWORLD", keys[0])
    assert bruteforce_hill(first)[0].plaintext == "HELLOWORLD"

    print("✅ Hill search tests passed")

def test_sentinels():
    """Test non-searchable selections return a single explanatory result"""
    print("Testing sentinel results...")

    for ct, label in ((CipherType.MONOALPHABETIC, "Dictionary Attack Not Available"),
                      (CipherType.VERNAM, "Unbreakable (One-Time Pad)"),
                      (CipherType.RSA, "Not applicable"),
                      (CipherType.MOD_EXP, "Not applicable")):
        results = brute_force(ct, "ANYTHING")
        assert len(results) == 1, f"{ct.value}: expected one result"
        assert isinstance(results[0].key, NoKey)
        assert results[0].key_display == label, f"Got {results[0].key_display}"
        assert str(results[0].key) == "N/A"

    print("✅ Sentinel tests passed")

def test_product_search():
    """Test product cipher combinations and unsupported legs"""
    print("Testing product search...")

    assert len(bruteforce_product("ABCDEFGHIJ")) == 25, "Default legs are vigenere + columnar"
    results = bruteforce_product("ABCDEFGHIJ", CrackOptions("additive", "railfence"))
    assert len(results) == 26 * 5
    assert results[0].key_display == "additive: Key = 0 | railfence: Rails = 2"

    with pytest.raises(EngineFault):
        bruteforce_product("ABCDEFGHIJ", CrackOptions("vernam", "columnar"))
    with pytest.raises(EngineFault):
        bruteforce_product("ABCDEFGHIJ", CrackOptions("columnar", "columnar"))
    with pytest.raises(EngineFault):
        bruteforce_product("ABCDEFGHIJ", CrackOptions("additive", "vigenere"))

    print("✅ Product search tests passed")

def test_crack_ranks_plaintext_first():
    """Test the crack pipeline scores, sorts and truncates"""
    print("Testing crack pipeline...")

    plain = "HELLO WORLD THIS IS A SECRET MESSAGE"
    results = crack(CrackJob(CipherType.ADDITIVE, additive_encode(plain, 7)))
    assert len(results) == 26
    assert results[0].plaintext == plain, f"Got {results[0].plaintext}"
    assert results[0].key == AdditiveKey(7)
    assert results[0].analysis.dictionary == 1.0
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)

    affine = crack(CrackJob(CipherType.AFFINE, "ANYTEXT"))
    assert len(affine) == MAX_RESULTS, "Results are capped"
    assert len(crack(CrackJob(CipherType.AFFINE, "ANYTEXT"), limit=5)) == 5

    print("✅ Crack pipeline tests passed")

def test_crack_product_cipher():
    """Test an additive + rail fence product is recovered"""
    print("Testing product crack...")

    plain = "MEETMEATTHEOLDBRIDGEWHENTHEMOONRISES"
    key_ct = encode(CipherType.PRODUCT, plain, ProductKey(
        CipherType.ADDITIVE, AdditiveKey(3), CipherType.RAILFENCE, RailFenceKey(3)))
    progress = []
    results = crack(CrackJob(CipherType.PRODUCT, key_ct, CrackOptions("additive", "railfence")),
                    progress=progress.append)
    assert progress == ["Starting analysis...", "Crunching product cipher combinations...",
                        "Scoring candidates..."], f"Got {progress}"
    assert len(results) == MAX_RESULTS
    assert any(r.plaintext == plain for r in results[:5]), "Plaintext should be a leading candidate"

    print("✅ Product crack tests passed")

def test_crack_errors():
    """Test empty input and cancellation"""
    print("Testing crack errors...")

    with pytest.raises(EngineFault):
        crack(CrackJob(CipherType.ADDITIVE, "   "))
    with pytest.raises(EngineFault):
        crack(CrackJob("enigma", "HELLO"))

    cancelled = threading.Event()
    cancelled.set()
    with pytest.raises(JobSuperseded):
        crack(CrackJob(CipherType.ADDITIVE, "KHOOR"), cancel_event=cancelled)

    print("✅ Crack error tests passed")

def run_all_tests():
    """Run all search tests"""
    print("🧪 Running search tests...")
    print("=" * 50)

    try:
        test_exhaustive_counts()
        test_exhaustive_searches_find_key()
        test_additive_search_finds_key()
        test_transposition_ranges()
        test_index_of_coincidence()
        test_vigenere_heuristic()
        test_dictionary_attacks()
        test_hill_search()
        test_sentinels()
        test_product_search()
        test_crack_ranks_plaintext_first()
        test_crack_product_cipher()
        test_crack_errors()

        print("=" * 50)
        print("🎉 All search tests passed!")
        return True

    except AssertionError as e:
        print(f"❌ Test failed: {e}")
        return False

if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
