#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cipherengine.py: classical cipher transforms, key search and English scoring

Everything in here is a pure function over its inputs: the crack pipeline
(`crack`) is what the background runner in crackjob.py executes.
"""

import itertools
import math
import re
import string
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

ALPHABET = string.ascii_uppercase
MOD = 26

MAX_RESULTS = 50       # candidates kept after the final sort
TOP_CANDIDATES = 5     # leading slice shown first by callers
ENGLISH_IC = 0.067
VIGENERE_MAX_KEY_LEN = 15
VIGENERE_KEEP_LENGTHS = 5
HILL_MAX_CANDIDATES = 100

# ---------- Errors ----------
class CipherError(ValueError):
    """Base class for every error the engine reports to its caller."""

class InvalidKey(CipherError):
    """Key fails its cipher's validity constraint."""

class UnsupportedOperation(CipherError):
    """No transform (or no tractable search) exists for the selection."""

class JobSuperseded(CipherError):
    """A running job was displaced by a newer submission."""

class EngineFault(CipherError):
    """Malformed request or unexpected internal failure."""

# ---------- Alphabet utilities ----------
_NON_ALPHA_SPACE = re.compile(r"[^A-Z ]")
_NON_ALPHA = re.compile(r"[^A-Z]")

def to_index(ch: str) -> int:
    return ord(ch) - ord("A")

def from_index(n: int) -> str:
    return ALPHABET[((n % MOD) + MOD) % MOD]

def gcd(a: int, b: int) -> int:
    while b:
        a, b = b, a % b
    return abs(a)

def mod_inverse(k: int, m: int = MOD) -> Optional[int]:
    """Return x in [1, m) with k*x = 1 (mod m), or None when gcd(k, m) != 1."""
    k = ((k % m) + m) % m
    for x in range(1, m):
        if (k * x) % m == 1:
            return x
    return None

_VALID_MULTIPLIERS = tuple(k for k in range(1, MOD) if gcd(k, MOD) == 1)

def valid_multiplicative_keys() -> List[int]:
    return list(_VALID_MULTIPLIERS)

def clean_text(text: str) -> str:
    """Uppercase and keep only A-Z and space."""
    return _NON_ALPHA_SPACE.sub("", text.upper())

def letters_only(text: str) -> str:
    return clean_text(text).replace(" ", "")

# ---------- Key validation ----------
def _require_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidKey(f"{what} must be an integer")
    return value

def _require_shift(k: Any, what: str = "Key") -> int:
    k = _require_int(k, what)
    if not 0 <= k <= 25:
        raise InvalidKey(f"{what} must be between 0 and 25")
    return k

def _require_coprime(k: Any, what: str = "Key") -> int:
    k = _require_int(k, what)
    if gcd(k, MOD) != 1:
        valid = ",".join(str(v) for v in _VALID_MULTIPLIERS)
        raise InvalidKey(f"{what} must be coprime with 26 (valid: {valid})")
    return k

def _require_word(word: Any, what: str = "Keyword") -> str:
    if not isinstance(word, str):
        raise InvalidKey(f"{what} must be a string")
    cleaned = letters_only(word)
    if not cleaned:
        raise InvalidKey(f"{what} cannot be empty")
    return cleaned

def _require_at_least(n: Any, low: int, what: str) -> int:
    n = _require_int(n, what)
    if n < low:
        raise InvalidKey(f"{what} must be at least {low}")
    return n

# ---------- Cipher types & keys ----------
class Family(str, Enum):
    SUBSTITUTION = "substitution"
    TRANSPOSITION = "transposition"
    PRODUCT = "product"
    TOOL = "tool"

class CipherType(str, Enum):
    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"
    AFFINE = "affine"
    VIGENERE = "vigenere"
    AUTOKEY = "autokey"
    PLAYFAIR = "playfair"
    HILL = "hill"
    MONOALPHABETIC = "monoalphabetic"
    VERNAM = "vernam"
    RAILFENCE = "railfence"
    COLUMNAR = "columnar"
    DOUBLE = "double"
    SIMPLE_TRANS = "simple-trans"
    PRODUCT = "product"
    RSA = "rsa"
    DES = "des"
    AES = "aes"
    EULER_PHI = "euler-phi"
    EXT_GCD = "ext-gcd"
    MOD_INVERSE = "mod-inverse"
    MOD_EXP = "mod-exp"

    @property
    def family(self) -> Family:
        return CIPHERS[self].family

def cipher_type_from(value: Any) -> CipherType:
    if isinstance(value, CipherType):
        return value
    try:
        return CipherType(str(value).strip().lower())
    except ValueError:
        raise EngineFault(f"Unknown cipher: {value}") from None

@dataclass(frozen=True)
class AdditiveKey:
    k: int
    def validate(self):
        _require_shift(self.k)
    def display(self) -> str:
        return f"Key = {self.k}"

@dataclass(frozen=True)
class MultiplicativeKey:
    k: int
    def validate(self):
        _require_coprime(self.k)
    def display(self) -> str:
        return f"Key = {self.k}"

@dataclass(frozen=True)
class AffineKey:
    a: int
    b: int
    def validate(self):
        _require_coprime(self.a, "a")
        _require_shift(self.b, "b")
    def display(self) -> str:
        return f"a = {self.a}, b = {self.b}"

@dataclass(frozen=True)
class VigenereKey:
    word: str
    def validate(self):
        _require_word(self.word, "Key")
    def display(self) -> str:
        w = letters_only(self.word)
        return f'Key = "{w}" (len={len(w)})'

@dataclass(frozen=True)
class AutokeyKey:
    seed: int
    def validate(self):
        _require_shift(self.seed, "Initial key")
    def display(self) -> str:
        return f"Initial Key = {self.seed}"

@dataclass(frozen=True)
class PlayfairKey:
    word: str
    def validate(self):
        _require_word(self.word)
    def display(self) -> str:
        return f'Key = "{letters_only(self.word)}"'

@dataclass(frozen=True)
class HillKey:
    """2x2 matrix [[a, b], [c, d]] mod 26."""
    a: int
    b: int
    c: int
    d: int
    @property
    def matrix(self) -> Tuple[int, int, int, int]:
        return (self.a, self.b, self.c, self.d)
    def validate(self):
        hill_inverse(self.matrix)
    def display(self) -> str:
        return f"[[{self.a},{self.b}],[{self.c},{self.d}]]"

@dataclass(frozen=True)
class RailFenceKey:
    rails: int
    def validate(self):
        _require_at_least(self.rails, 2, "Rails")
    def display(self) -> str:
        return f"Rails = {self.rails}"

@dataclass(frozen=True)
class ColumnarKey:
    word: str
    def validate(self):
        _require_word(self.word)
    def display(self) -> str:
        return f'Key = "{letters_only(self.word)}"'

@dataclass(frozen=True)
class DoubleTranspositionKey:
    word1: str
    word2: str
    def validate(self):
        _require_word(self.word1, "First keyword")
        _require_word(self.word2, "Second keyword")
    def display(self) -> str:
        return f'Keys = "{letters_only(self.word1)}", "{letters_only(self.word2)}"'

@dataclass(frozen=True)
class MonoalphabeticKey:
    keyword: str
    @property
    def alphabet(self) -> str:
        return monoalphabetic_alphabet(self.keyword)
    def validate(self):
        monoalphabetic_alphabet(self.keyword)
    def display(self) -> str:
        return f'Keyword = "{letters_only(self.keyword)}" ({self.alphabet})'

@dataclass(frozen=True)
class VernamKey:
    pad: str
    def validate(self):
        _require_word(self.pad, "Key")
    def display(self) -> str:
        return f'Pad = "{letters_only(self.pad)}"'

@dataclass(frozen=True)
class KeylessKey:
    columns: int
    def validate(self):
        _require_at_least(self.columns, 2, "Columns")
    def display(self) -> str:
        return f"Columns = {self.columns}"

@dataclass(frozen=True)
class ProductKey:
    sub_type: CipherType
    sub_key: Any
    trans_type: CipherType
    trans_key: Any

    def validate(self):
        sub_type = cipher_type_from(self.sub_type)
        trans_type = cipher_type_from(self.trans_type)
        if sub_type.family is not Family.SUBSTITUTION:
            raise InvalidKey(f"{sub_type.value} is not a substitution cipher")
        if trans_type.family is not Family.TRANSPOSITION:
            raise InvalidKey(f"{trans_type.value} is not a transposition cipher")
        _check_key(sub_type, self.sub_key)
        _check_key(trans_type, self.trans_key)

    def display(self) -> str:
        sub_type = cipher_type_from(self.sub_type)
        trans_type = cipher_type_from(self.trans_type)
        return f"{sub_type.value}: {self.sub_key.display()} | {trans_type.value}: {self.trans_key.display()}"

@dataclass
class TextAnalysis:
    composite: float
    dictionary: float
    frequency: float
    bigram: float
    trigram: float
    confidence: int

@dataclass
class CandidateResult:
    key: Any
    key_display: str
    plaintext: str
    score: float = 0.0
    confidence: int = 0
    analysis: Optional[TextAnalysis] = None

@dataclass
class CrackOptions:
    sub_type: str = CipherType.VIGENERE.value
    trans_type: str = CipherType.COLUMNAR.value

@dataclass
class CrackJob:
    cipher_type: CipherType
    ciphertext: str
    options: CrackOptions = field(default_factory=CrackOptions)

def _candidate(key: Any, plaintext: str) -> CandidateResult:
    return CandidateResult(key=key, key_display=key.display(), plaintext=plaintext)

# ---------- Additive / Multiplicative / Affine ----------
# These three keep spaces as pass-through characters.
def _map_letters(text: str, fn: Callable[[int], int]) -> str:
    return "".join(ch if ch == " " else from_index(fn(to_index(ch))) for ch in clean_text(text))

def additive_encode(text: str, k: int) -> str:
    k = _require_shift(k)
    return _map_letters(text, lambda p: p + k)

def additive_decode(text: str, k: int) -> str:
    k = _require_shift(k)
    return _map_letters(text, lambda c: c - k)

def multiplicative_encode(text: str, k: int) -> str:
    k = _require_coprime(k)
    return _map_letters(text, lambda p: p * k)

def multiplicative_decode(text: str, k: int) -> str:
    inv = mod_inverse(_require_coprime(k))
    return _map_letters(text, lambda c: c * inv)

def affine_encode(text: str, a: int, b: int) -> str:
    a = _require_coprime(a, "a"); b = _require_shift(b, "b")
    return _map_letters(text, lambda p: a * p + b)

def affine_decode(text: str, a: int, b: int) -> str:
    inv = mod_inverse(_require_coprime(a, "a")); b = _require_shift(b, "b")
    return _map_letters(text, lambda c: inv * (c - b))

# ---------- Vigenere ----------
def vigenere_encode(text: str, word: str) -> str:
    key = _require_word(word, "Key")
    return "".join(from_index(to_index(ch) + to_index(key[i % len(key)]))
                   for i, ch in enumerate(letters_only(text)))

def vigenere_decode(text: str, word: str) -> str:
    key = _require_word(word, "Key")
    return "".join(from_index(to_index(ch) - to_index(key[i % len(key)]))
                   for i, ch in enumerate(letters_only(text)))

# ---------- Autokey ----------
def autokey_keystream(plaintext: str, seed: int) -> List[int]:
    """Shifts applied to each letter: the seed, then each previous plaintext letter."""
    seed = _require_shift(seed, "Initial key")
    letters = letters_only(plaintext)
    if not letters:
        return []
    return [seed] + [to_index(ch) for ch in letters[:-1]]

def autokey_encode(text: str, seed: int) -> str:
    letters = letters_only(text)
    stream = autokey_keystream(letters, seed)
    return "".join(from_index(to_index(ch) + k) for ch, k in zip(letters, stream))

def autokey_decode(text: str, seed: int) -> str:
    shift = _require_shift(seed, "Initial key")
    out = []
    for ch in letters_only(text):
        p = from_index(to_index(ch) - shift)
        out.append(p)
        shift = to_index(p)
    return "".join(out)

# ---------- Playfair ----------
def playfair_square(word: str) -> str:
    """25-letter key square, row-major, with J folded into I."""
    key = _require_word(word).replace("J", "I")
    seen: List[str] = []
    for ch in key + ALPHABET.replace("J", ""):
        if ch not in seen:
            seen.append(ch)
    return "".join(seen)

def _playfair_digraphs(letters: str) -> List[Tuple[str, str]]:
    pairs = []
    i = 0
    while i < len(letters):
        a = letters[i]
        b = letters[i + 1] if i + 1 < len(letters) else "X"
        if a == b:
            b = "X"
            i += 1
        else:
            i += 2
        pairs.append((a, b))
    return pairs

def _playfair_apply(pairs: Sequence[Tuple[str, str]], square: str, step: int) -> str:
    pos = {ch: divmod(i, 5) for i, ch in enumerate(square)}
    out = []
    for a, b in pairs:
        ra, ca = pos[a]
        rb, cb = pos[b]
        if ra == rb:
            out.append(square[ra * 5 + (ca + step) % 5]); out.append(square[rb * 5 + (cb + step) % 5])
        elif ca == cb:
            out.append(square[((ra + step) % 5) * 5 + ca]); out.append(square[((rb + step) % 5) * 5 + cb])
        else:
            out.append(square[ra * 5 + cb]); out.append(square[rb * 5 + ca])
    return "".join(out)

def playfair_encode(text: str, word: str) -> str:
    square = playfair_square(word)
    letters = letters_only(text).replace("J", "I")
    return _playfair_apply(_playfair_digraphs(letters), square, 1)

def playfair_decode(text: str, word: str) -> str:
    square = playfair_square(word)
    letters = letters_only(text).replace("J", "I")
    pairs = [(letters[i], letters[i + 1] if i + 1 < len(letters) else "X")
             for i in range(0, len(letters), 2)]
    return _playfair_apply(pairs, square, 4)

# ---------- Hill 2x2 ----------
Matrix2 = Tuple[int, int, int, int]

def hill_determinant(matrix: Matrix2) -> int:
    a, b, c, d = matrix
    return (a * d - b * c) % MOD

def _as_matrix(matrix: Any) -> Matrix2:
    """Accept (a, b, c, d) or [[a, b], [c, d]]."""
    try:
        flat = list(matrix)
        if len(flat) == 2:
            flat = [v for row in flat for v in row]
    except TypeError:
        raise InvalidKey("Hill key must be a 2x2 matrix") from None
    if len(flat) != 4:
        raise InvalidKey("Hill key must be a 2x2 matrix")
    a, b, c, d = (_require_int(v, "Matrix entry") for v in flat)
    return (a, b, c, d)

def hill_inverse(matrix: Any) -> Matrix2:
    """Adjugate times the determinant's inverse, mod 26."""
    a, b, c, d = _as_matrix(matrix)
    det_inv = mod_inverse(hill_determinant((a, b, c, d)))
    if det_inv is None:
        raise InvalidKey("Matrix is not invertible mod 26 (determinant must be coprime with 26)")
    return ((d * det_inv) % MOD, (-b * det_inv) % MOD, (-c * det_inv) % MOD, (a * det_inv) % MOD)

def _hill_apply(letters: str, matrix: Matrix2) -> str:
    a, b, c, d = matrix
    if len(letters) % 2:
        letters += "X"
    out = []
    for i in range(0, len(letters), 2):
        x, y = to_index(letters[i]), to_index(letters[i + 1])
        out.append(from_index(a * x + b * y))
        out.append(from_index(c * x + d * y))
    return "".join(out)

def hill_encode(text: str, matrix: Matrix2) -> str:
    matrix = _as_matrix(matrix)
    hill_inverse(matrix)
    return _hill_apply(letters_only(text), matrix)

def hill_decode(text: str, matrix: Matrix2) -> str:
    return _hill_apply(letters_only(text), hill_inverse(matrix))

# ---------- Rail fence ----------
def _zigzag(n: int, rails: int) -> Iterator[int]:
    rail, step = 0, 1
    for _ in range(n):
        yield rail
        rail += step
        if rail == 0 or rail == rails - 1:
            step = -step

def rail_fence_encode(text: str, rails: int) -> str:
    rails = _require_at_least(rails, 2, "Rails")
    letters = letters_only(text)
    fence: List[List[str]] = [[] for _ in range(rails)]
    for ch, rail in zip(letters, _zigzag(len(letters), rails)):
        fence[rail].append(ch)
    return "".join("".join(row) for row in fence)

def rail_fence_decode(text: str, rails: int) -> str:
    rails = _require_at_least(rails, 2, "Rails")
    letters = letters_only(text)
    pattern = list(_zigzag(len(letters), rails))
    lengths = Counter(pattern)
    fence = []
    idx = 0
    for rail in range(rails):
        fence.append(iter(letters[idx:idx + lengths[rail]]))
        idx += lengths[rail]
    return "".join(next(fence[rail]) for rail in pattern)

# ---------- Columnar / Double transposition ----------
def columnar_order(word: str) -> List[int]:
    """Column indices in reading order: key letters sorted, ties by position."""
    key = _require_word(word)
    return [i for _, i in sorted((ch, i) for i, ch in enumerate(key))]

def columnar_encode(text: str, word: str) -> str:
    order = columnar_order(word)
    cols = len(order)
    letters = letters_only(text)
    rows = -(-len(letters) // cols)
    padded = letters.ljust(rows * cols, "X")
    return "".join(padded[r * cols + c] for c in order for r in range(rows))

def columnar_decode(text: str, word: str) -> str:
    order = columnar_order(word)
    cols = len(order)
    letters = letters_only(text)
    rows = -(-len(letters) // cols)
    columns = [""] * cols
    idx = 0
    for c in order:
        columns[c] = letters[idx:idx + rows]
        idx += rows
    return "".join(columns[c][r] for r in range(rows) for c in range(cols) if r < len(columns[c]))

def double_transposition_encode(text: str, word1: str, word2: str) -> str:
    _require_word(word2, "Second keyword")
    return columnar_encode(columnar_encode(text, word1), word2)

def double_transposition_decode(text: str, word1: str, word2: str) -> str:
    _require_word(word1, "First keyword")
    return columnar_decode(columnar_decode(text, word2), word1)

# ---------- Keyless (simple) transposition ----------
def keyless_encode(text: str, columns: int) -> str:
    columns = _require_at_least(columns, 2, "Columns")
    letters = letters_only(text)
    rows = -(-len(letters) // columns)
    padded = letters.ljust(rows * columns, "X")
    return "".join(padded[r * columns + c] for c in range(columns) for r in range(rows))

def keyless_decode(text: str, columns: int) -> str:
    columns = _require_at_least(columns, 2, "Columns")
    letters = letters_only(text)
    rows = -(-len(letters) // columns)
    return "".join(letters[c * rows + r] for r in range(rows) for c in range(columns)
                   if c * rows + r < len(letters))

# ---------- Monoalphabetic ----------
def monoalphabetic_alphabet(keyword: str) -> str:
    """Unique keyword letters followed by the rest of the alphabet in order."""
    kw = _require_word(keyword)
    seen: List[str] = []
    for ch in kw + ALPHABET:
        if ch not in seen:
            seen.append(ch)
    alphabet = "".join(seen)
    if len(alphabet) != MOD or set(alphabet) != set(ALPHABET):
        raise InvalidKey("Derived alphabet is not a permutation of A-Z")
    return alphabet

def monoalphabetic_encode(text: str, keyword: str) -> str:
    alphabet = monoalphabetic_alphabet(keyword)
    return "".join(ch if ch == " " else alphabet[to_index(ch)] for ch in clean_text(text))

def monoalphabetic_decode(text: str, keyword: str) -> str:
    alphabet = monoalphabetic_alphabet(keyword)
    return "".join(ch if ch == " " else ALPHABET[alphabet.index(ch)] for ch in clean_text(text))

# ---------- Vernam / one-time pad ----------
@dataclass
class VernamStep:
    letter: str
    key_letter: str
    letter_num: int
    key_num: int
    result_num: int
    result: str

def vernam_steps(text: str, pad: str, decrypt: bool = False) -> List[VernamStep]:
    """Letter-by-letter mod-26 addition (or subtraction when decrypting)."""
    key = _require_word(pad, "Key")
    letters = letters_only(text)
    if len(key) < len(letters):
        raise InvalidKey("Key must be at least as long as the text")
    steps = []
    for ch, kc in zip(letters, key):
        p, k = to_index(ch), to_index(kc)
        n = ((p - k) if decrypt else (p + k)) % MOD
        steps.append(VernamStep(ch, kc, p, k, n, from_index(n)))
    return steps

def vernam_encode(text: str, pad: str) -> str:
    return "".join(s.result for s in vernam_steps(text, pad))

def vernam_decode(text: str, pad: str) -> str:
    return "".join(s.result for s in vernam_steps(text, pad, decrypt=True))

# ---------- Product cipher ----------
def product_encode_stages(text: str, key: ProductKey) -> Tuple[str, str]:
    """Returns (after substitution, final ciphertext)."""
    key.validate()
    after_sub = encode(key.sub_type, text, key.sub_key)
    return after_sub, encode(key.trans_type, after_sub, key.trans_key)

def product_decode_stages(text: str, key: ProductKey) -> Tuple[str, str]:
    """Returns (after undoing transposition, final plaintext)."""
    key.validate()
    after_trans = decode(key.trans_type, text, key.trans_key)
    return after_trans, decode(key.sub_type, after_trans, key.sub_key)

def product_encode(text: str, key: ProductKey) -> str:
    return product_encode_stages(text, key)[1]

def product_decode(text: str, key: ProductKey) -> str:
    return product_decode_stages(text, key)[1]

# ---------- Scoring ----------
COMMON_WORDS: Tuple[str, ...] = tuple(dict.fromkeys((
    # 1-3 letters
    "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HAD", "HER", "WAS", "ONE", "OUR", "OUT",
    "HAS", "HIS", "HOW", "ITS", "LET", "MAY", "NEW", "NOW", "OLD", "SEE", "WAY", "WHO", "BOY", "DID", "GET",
    "HIM", "MAN", "OWN", "SAY", "SHE", "TWO", "USE", "IS", "IT", "BE", "AS", "AT", "SO", "WE",
    "HE", "BY", "OR", "ON", "DO", "IF", "ME", "MY", "UP", "AN", "GO", "NO", "US", "AM", "TO", "OF", "IN", "A", "I",
    # 4-5 letters
    "THAT", "WITH", "HAVE", "THIS", "WILL", "YOUR", "FROM", "THEY", "BEEN", "CALL", "COME", "MADE", "FIND",
    "WERE", "SAID", "EACH", "MAKE", "LIKE", "INTO", "TIME", "VERY", "WHEN", "MORE", "SOME", "THAN", "THEM",
    "WORD", "WHAT", "JUST", "KNOW", "TAKE", "WELL", "BACK", "GOOD", "HERE", "ALSO", "MUST", "NAME", "LONG",
    "OVER", "SUCH", "LOOK", "ONLY", "YEAR", "MOST", "LAST", "WORK", "NEED", "FEEL", "EVEN", "WANT", "GIVE",
    "THESE", "FIRST", "COULD", "WOULD", "THERE", "THEIR", "WHICH", "ABOUT", "OTHER", "AFTER", "THINK",
    "BEING", "WHERE", "EVERY", "GREAT", "STILL", "NEVER", "THOSE", "FOUND", "UNDER", "WHILE", "AGAIN",
    "WORLD", "PLACE", "SMALL", "RIGHT", "LITTLE", "THREE", "THING", "STATE", "NIGHT", "HOUSE",
    # 6+ letters
    "PEOPLE", "SHOULD", "BEFORE", "THROUGH", "DIFFERENT", "BETWEEN", "BECAUSE", "ANOTHER", "HOWEVER",
    "SOMETHING", "WITHOUT", "AGAINST", "IMPORTANT", "NOTHING", "GOVERNMENT", "TOGETHER", "CHILDREN",
    "MESSAGE", "SECRET", "ATTACK", "SECURE", "SYSTEM", "CIPHER", "CRYPTOGRAPHY", "ENCRYPT", "DECRYPT",
    "HELLO", "PASSWORD", "SECURITY", "HIDDEN", "PLAINTEXT", "CIPHERTEXT", "INFORMATION",
)))
_COMMON_WORD_SET = frozenset(COMMON_WORDS)
_EMBEDDED_WORDS = tuple(w for w in COMMON_WORDS if len(w) >= 3)

ENGLISH_FREQ: Dict[str, float] = {
    'E': 0.127, 'T': 0.091, 'A': 0.082, 'O': 0.075, 'I': 0.070,
    'N': 0.067, 'S': 0.063, 'H': 0.061, 'R': 0.060, 'D': 0.043,
    'L': 0.040, 'C': 0.028, 'U': 0.028, 'M': 0.024, 'W': 0.024,
    'F': 0.022, 'G': 0.020, 'Y': 0.020, 'P': 0.019, 'B': 0.015,
    'V': 0.010, 'K': 0.008, 'J': 0.002, 'X': 0.002, 'Q': 0.001, 'Z': 0.001,
}

COMMON_BIGRAMS = frozenset((
    "TH", "HE", "IN", "ER", "AN", "RE", "ON", "AT", "EN", "ND",
    "TI", "ES", "OR", "TE", "OF", "ED", "IS", "IT", "AL", "AR",
    "ST", "TO", "NT", "NG", "SE", "HA", "AS", "OU", "IO", "LE",
    "VE", "CO", "ME", "DE", "HI", "RI", "RO", "IC", "NE", "EA",
    "RA", "CE", "LI", "CH", "LL", "BE", "MA", "SI", "OM", "UR",
))

COMMON_TRIGRAMS = frozenset((
    "THE", "AND", "ING", "HER", "HAT", "HIS", "THA", "ERE", "FOR", "ENT",
    "ION", "TER", "WAS", "YOU", "ITH", "VER", "ALL", "WIT", "THI", "TIO",
    "EVE", "OUR", "ERS", "ESS", "AVE", "ECT", "ONE", "IST", "RES", "OTH",
))

SCORING_WEIGHTS = {
    "dictionary": 0.50,
    "frequency": 0.25,
    "bigram": 0.15,
    "trigram": 0.10,
}

def letter_frequencies(text: str) -> Dict[str, float]:
    letters = _NON_ALPHA.sub("", text)
    total = len(letters) or 1
    counts = Counter(letters)
    return {ch: counts.get(ch, 0) / total for ch in ALPHABET}

def frequency_score(text: str) -> float:
    """Chi-squared distance to English, mapped to [0, 1] (1 is closest)."""
    observed = letter_frequencies(text)
    chi = 0.0
    for ch, expected in ENGLISH_FREQ.items():
        diff = observed[ch] - expected
        chi += diff * diff / expected
    return max(0.0, 1.0 - chi / 2)

def _ngram_score(text: str, size: int, table: frozenset) -> float:
    letters = _NON_ALPHA.sub("", text)
    total = len(letters) - size + 1
    if total <= 0:
        return 0.0
    hits = sum(1 for i in range(total) if letters[i:i + size] in table)
    return hits / total

def bigram_score(text: str) -> float:
    return _ngram_score(text, 2, COMMON_BIGRAMS)

def trigram_score(text: str) -> float:
    return _ngram_score(text, 3, COMMON_TRIGRAMS)

def _embedded_word_score(letters: str) -> float:
    found = sum(len(w) for w in _EMBEDDED_WORDS if w in letters)
    return min(1.0, found / (len(letters) or 1))

def dictionary_score(text: str) -> float:
    """Weighted share of words found in the common-word list.

    Text without whitespace is scanned for embedded common words instead.
    """
    words = text.split()
    if len(words) < 2:
        return _embedded_word_score(_NON_ALPHA.sub("", text))
    matched = total = 0
    for word in words:
        w = _NON_ALPHA.sub("", word)
        weight = min(len(w), 8)
        total += weight
        if w in _COMMON_WORD_SET:
            matched += weight
    return matched / total if total else 0.0

def analyze_text(text: str) -> TextAnalysis:
    d = dictionary_score(text)
    f = frequency_score(text)
    bi = bigram_score(text)
    tri = trigram_score(text)
    composite = (SCORING_WEIGHTS["dictionary"] * d + SCORING_WEIGHTS["frequency"] * f
                 + SCORING_WEIGHTS["bigram"] * bi + SCORING_WEIGHTS["trigram"] * tri)
    return TextAnalysis(composite, d, f, bi, tri, int(math.floor(composite * 100 + 0.5)))

def score_candidate(result: CandidateResult) -> CandidateResult:
    analysis = analyze_text(result.plaintext)
    result.score = analysis.composite
    result.confidence = analysis.confidence
    result.analysis = analysis
    return result

def score_results(results: List[CandidateResult]) -> List[CandidateResult]:
    """Score every candidate in place, then stable-sort by descending score."""
    for r in results:
        score_candidate(r)
    results.sort(key=lambda r: r.score, reverse=True)
    return results

# ---------- Key search: exhaustive ----------
def bruteforce_additive(ciphertext: str) -> List[CandidateResult]:
    cleaned = clean_text(ciphertext)
    return [_candidate(AdditiveKey(k), additive_decode(cleaned, k)) for k in range(MOD)]

def bruteforce_multiplicative(ciphertext: str) -> List[CandidateResult]:
    cleaned = clean_text(ciphertext)
    return [_candidate(MultiplicativeKey(k), multiplicative_decode(cleaned, k)) for k in _VALID_MULTIPLIERS]

def bruteforce_affine(ciphertext: str) -> List[CandidateResult]:
    cleaned = clean_text(ciphertext)
    return [_candidate(AffineKey(a, b), affine_decode(cleaned, a, b))
            for a in _VALID_MULTIPLIERS for b in range(MOD)]

def bruteforce_autokey(ciphertext: str) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    return [_candidate(AutokeyKey(k), autokey_decode(cleaned, k)) for k in range(MOD)]

def bruteforce_rail_fence(ciphertext: str, max_rails: int = 20) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    return [_candidate(RailFenceKey(r), rail_fence_decode(cleaned, r))
            for r in range(2, min(max_rails, len(cleaned)) + 1)]

def bruteforce_keyless(ciphertext: str, max_columns: int = 10) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    return [_candidate(KeylessKey(c), keyless_decode(cleaned, c))
            for c in range(2, min(max_columns, len(cleaned)) + 1)]

# ---------- Key search: Vigenere heuristic ----------
def index_of_coincidence(text: str) -> float:
    letters = _NON_ALPHA.sub("", text)
    n = len(letters)
    if n <= 1:
        return 0.0
    return sum(f * (f - 1) for f in Counter(letters).values()) / (n * (n - 1))

def estimate_vigenere_key_lengths(ciphertext: str, max_len: int = VIGENERE_MAX_KEY_LEN,
                                  keep: int = VIGENERE_KEEP_LENGTHS) -> List[int]:
    """Key lengths whose average column IC is closest to English."""
    cleaned = _NON_ALPHA.sub("", ciphertext)
    scored = []
    for key_len in range(1, max_len + 1):
        avg = sum(index_of_coincidence(cleaned[i::key_len]) for i in range(key_len)) / key_len
        scored.append((key_len, avg))
    scored.sort(key=lambda t: abs(t[1] - ENGLISH_IC))
    return [key_len for key_len, _ in scored[:keep]]

def recover_vigenere_key(ciphertext: str, key_len: int) -> str:
    """Per column, pick the shift that turns the most letters into 'E'."""
    cleaned = _NON_ALPHA.sub("", ciphertext)
    key = []
    for i in range(key_len):
        column = [to_index(ch) for ch in cleaned[i::key_len]]
        best_shift, best_count = 0, -1
        for shift in range(MOD):
            e_count = sum(1 for c in column if (c - shift) % MOD == 4)
            if e_count > best_count:
                best_shift, best_count = shift, e_count
        key.append(from_index(best_shift))
    return "".join(key)

def bruteforce_vigenere(ciphertext: str) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    outs = []
    for key_len in estimate_vigenere_key_lengths(cleaned):
        key = recover_vigenere_key(cleaned, key_len)
        outs.append(_candidate(VigenereKey(key), vigenere_decode(cleaned, key)))
    return outs

# ---------- Key search: dictionary attacks ----------
COMMON_PLAYFAIR_KEYS = (
    "KEYWORD", "SECRET", "CIPHER", "PLAYFAIR", "MONARCHY", "SECURITY",
    "CRYPTOGRAPHY", "HIDDEN", "MESSAGE", "PASSWORD", "EXAMPLE", "CHARLES",
)
COMMON_COLUMNAR_KEYS = (
    "KEY", "SECRET", "CIPHER", "CODE", "CRYPTO", "HIDDEN", "SECURE",
    "PASSWORD", "KEYWORD", "ZEBRA", "GERMAN", "ENCODE", "DECODE",
)
COMMON_VIGENERE_KEYS = (
    "KEY", "SECRET", "CIPHER", "LEMON", "SECURE", "CRYPTO", "HIDDEN",
    "PASSWORD", "KEYWORD", "ENCODE", "DECODE", "ALPHA", "BETA",
)

def bruteforce_playfair(ciphertext: str) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    return [_candidate(PlayfairKey(w), playfair_decode(cleaned, w)) for w in COMMON_PLAYFAIR_KEYS]

def bruteforce_columnar(ciphertext: str) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    return [_candidate(ColumnarKey(w), columnar_decode(cleaned, w))
            for w in COMMON_COLUMNAR_KEYS if len(w) <= len(cleaned)]

def bruteforce_double_transposition(ciphertext: str) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    outs = []
    for w1 in COMMON_COLUMNAR_KEYS[:5]:
        for w2 in COMMON_COLUMNAR_KEYS[:5]:
            if len(w1) > len(cleaned) or len(w2) > len(cleaned):
                continue
            outs.append(_candidate(DoubleTranspositionKey(w1, w2), double_transposition_decode(cleaned, w1, w2)))
    return outs

def hill_dictionary() -> Iterator[HillKey]:
    """Small invertible matrices: a, d from the first six valid multipliers, b, c in 0..9."""
    for a in _VALID_MULTIPLIERS[:6]:
        for d in _VALID_MULTIPLIERS[:6]:
            for b in range(10):
                for c in range(10):
                    if gcd(hill_determinant((a, b, c, d)), MOD) == 1:
                        yield HillKey(a, b, c, d)

def bruteforce_hill(ciphertext: str, limit: int = HILL_MAX_CANDIDATES) -> List[CandidateResult]:
    cleaned = letters_only(ciphertext)
    return [_candidate(key, hill_decode(cleaned, key.matrix))
            for key in itertools.islice(hill_dictionary(), limit)]

def _product_sub_keys(sub_type: CipherType) -> List[Any]:
    if sub_type is CipherType.ADDITIVE:
        return [AdditiveKey(k) for k in range(MOD)]
    if sub_type is CipherType.MULTIPLICATIVE:
        return [MultiplicativeKey(k) for k in _VALID_MULTIPLIERS]
    if sub_type is CipherType.AFFINE:
        return [AffineKey(a, b) for a in _VALID_MULTIPLIERS for b in range(MOD)]
    if sub_type is CipherType.AUTOKEY:
        return [AutokeyKey(k) for k in range(MOD)]
    if sub_type is CipherType.VIGENERE:
        return [VigenereKey(w) for w in COMMON_VIGENERE_KEYS[:5]]
    if sub_type is CipherType.PLAYFAIR:
        return [PlayfairKey(w) for w in COMMON_VIGENERE_KEYS[:5]]
    if sub_type is CipherType.MONOALPHABETIC:
        return [MonoalphabeticKey(w) for w in COMMON_VIGENERE_KEYS[:5]]
    if sub_type is CipherType.HILL:
        return list(itertools.islice(hill_dictionary(), 10))
    raise EngineFault(f"Product search does not support substitution cipher: {sub_type.value}")

def _product_trans_keys(trans_type: CipherType) -> List[Any]:
    if trans_type is CipherType.RAILFENCE:
        return [RailFenceKey(r) for r in range(2, 7)]
    if trans_type is CipherType.COLUMNAR:
        return [ColumnarKey(w) for w in COMMON_COLUMNAR_KEYS[:5]]
    if trans_type is CipherType.DOUBLE:
        return [DoubleTranspositionKey(w1, w2) for w1 in COMMON_COLUMNAR_KEYS[:3] for w2 in COMMON_COLUMNAR_KEYS[:3]]
    if trans_type is CipherType.SIMPLE_TRANS:
        return [KeylessKey(c) for c in range(2, 7)]
    raise EngineFault(f"Product search does not support transposition cipher: {trans_type.value}")

def _product_legs(options: CrackOptions) -> Tuple[CipherType, CipherType]:
    sub_type = cipher_type_from(options.sub_type or CipherType.VIGENERE.value)
    trans_type = cipher_type_from(options.trans_type or CipherType.COLUMNAR.value)
    if sub_type.family is not Family.SUBSTITUTION:
        raise EngineFault(f"{sub_type.value} is not a substitution cipher")
    if trans_type.family is not Family.TRANSPOSITION:
        raise EngineFault(f"{trans_type.value} is not a transposition cipher")
    return sub_type, trans_type

def bruteforce_product(ciphertext: str, options: Optional[CrackOptions] = None) -> List[CandidateResult]:
    sub_type, trans_type = _product_legs(options or CrackOptions())
    sub_keys = _product_sub_keys(sub_type)
    trans_keys = _product_trans_keys(trans_type)
    cleaned = letters_only(ciphertext)
    outs = []
    for sk in sub_keys:
        for tk in trans_keys:
            key = ProductKey(sub_type, sk, trans_type, tk)
            outs.append(_candidate(key, product_decode(cleaned, key)))
    return outs

# ---------- Key search: not searchable ----------
@dataclass(frozen=True)
class NoKey:
    label: str
    def display(self) -> str:
        return self.label
    def __str__(self):
        return "N/A"

_MONO_NOTE = ("Monoalphabetic cipher has 26! (about 4x10^26) possible keys. "
              "Use frequency analysis instead.")
_VERNAM_NOTE = ("Vernam cipher (OTP) is theoretically unbreakable: every plaintext "
                "is equally likely without the key.")
_TOOL_NOTE = "Brute-force is not applicable for this tool. Use the Encrypt operation instead."

def _sentinel(label: str, note: str) -> Callable[[str, CrackOptions], List[CandidateResult]]:
    return lambda ciphertext, options: [_candidate(NoKey(label), note)]

# ---------- Registry ----------
@dataclass(frozen=True)
class CipherEntry:
    family: Family
    key_class: Optional[type]
    encode: Optional[Callable[[str, Any], str]]
    decode: Optional[Callable[[str, Any], str]]
    search: Callable[[str, CrackOptions], List[CandidateResult]]

def _tool() -> CipherEntry:
    return CipherEntry(Family.TOOL, None, None, None, _sentinel("Not applicable", _TOOL_NOTE))

CIPHERS: Dict[CipherType, CipherEntry] = {
    CipherType.ADDITIVE: CipherEntry(
        Family.SUBSTITUTION, AdditiveKey,
        lambda t, k: additive_encode(t, k.k), lambda t, k: additive_decode(t, k.k),
        lambda t, o: bruteforce_additive(t)),
    CipherType.MULTIPLICATIVE: CipherEntry(
        Family.SUBSTITUTION, MultiplicativeKey,
        lambda t, k: multiplicative_encode(t, k.k), lambda t, k: multiplicative_decode(t, k.k),
        lambda t, o: bruteforce_multiplicative(t)),
    CipherType.AFFINE: CipherEntry(
        Family.SUBSTITUTION, AffineKey,
        lambda t, k: affine_encode(t, k.a, k.b), lambda t, k: affine_decode(t, k.a, k.b),
        lambda t, o: bruteforce_affine(t)),
    CipherType.VIGENERE: CipherEntry(
        Family.SUBSTITUTION, VigenereKey,
        lambda t, k: vigenere_encode(t, k.word), lambda t, k: vigenere_decode(t, k.word),
        lambda t, o: bruteforce_vigenere(t)),
    CipherType.AUTOKEY: CipherEntry(
        Family.SUBSTITUTION, AutokeyKey,
        lambda t, k: autokey_encode(t, k.seed), lambda t, k: autokey_decode(t, k.seed),
        lambda t, o: bruteforce_autokey(t)),
    CipherType.PLAYFAIR: CipherEntry(
        Family.SUBSTITUTION, PlayfairKey,
        lambda t, k: playfair_encode(t, k.word), lambda t, k: playfair_decode(t, k.word),
        lambda t, o: bruteforce_playfair(t)),
    CipherType.HILL: CipherEntry(
        Family.SUBSTITUTION, HillKey,
        lambda t, k: hill_encode(t, k.matrix), lambda t, k: hill_decode(t, k.matrix),
        lambda t, o: bruteforce_hill(t)),
    CipherType.MONOALPHABETIC: CipherEntry(
        Family.SUBSTITUTION, MonoalphabeticKey,
        lambda t, k: monoalphabetic_encode(t, k.keyword), lambda t, k: monoalphabetic_decode(t, k.keyword),
        _sentinel("Dictionary Attack Not Available", _MONO_NOTE)),
    CipherType.VERNAM: CipherEntry(
        Family.SUBSTITUTION, VernamKey,
        lambda t, k: vernam_encode(t, k.pad), lambda t, k: vernam_decode(t, k.pad),
        _sentinel("Unbreakable (One-Time Pad)", _VERNAM_NOTE)),
    CipherType.RAILFENCE: CipherEntry(
        Family.TRANSPOSITION, RailFenceKey,
        lambda t, k: rail_fence_encode(t, k.rails), lambda t, k: rail_fence_decode(t, k.rails),
        lambda t, o: bruteforce_rail_fence(t)),
    CipherType.COLUMNAR: CipherEntry(
        Family.TRANSPOSITION, ColumnarKey,
        lambda t, k: columnar_encode(t, k.word), lambda t, k: columnar_decode(t, k.word),
        lambda t, o: bruteforce_columnar(t)),
    CipherType.DOUBLE: CipherEntry(
        Family.TRANSPOSITION, DoubleTranspositionKey,
        lambda t, k: double_transposition_encode(t, k.word1, k.word2),
        lambda t, k: double_transposition_decode(t, k.word1, k.word2),
        lambda t, o: bruteforce_double_transposition(t)),
    CipherType.SIMPLE_TRANS: CipherEntry(
        Family.TRANSPOSITION, KeylessKey,
        lambda t, k: keyless_encode(t, k.columns), lambda t, k: keyless_decode(t, k.columns),
        lambda t, o: bruteforce_keyless(t)),
    CipherType.PRODUCT: CipherEntry(
        Family.PRODUCT, ProductKey, product_encode, product_decode, bruteforce_product),
    CipherType.RSA: _tool(),
    CipherType.DES: _tool(),
    CipherType.AES: _tool(),
    CipherType.EULER_PHI: _tool(),
    CipherType.EXT_GCD: _tool(),
    CipherType.MOD_INVERSE: _tool(),
    CipherType.MOD_EXP: _tool(),
}

_unregistered = [c.value for c in CipherType if c not in CIPHERS]
if _unregistered:
    raise RuntimeError(f"cipher types without a registry entry: {', '.join(_unregistered)}")

def _check_key(cipher_type: CipherType, key: Any) -> CipherEntry:
    entry = CIPHERS[cipher_type]
    if entry.key_class is None or entry.encode is None:
        raise UnsupportedOperation(f"{cipher_type.value} has no classical encode/decode here")
    if not isinstance(key, entry.key_class):
        raise InvalidKey(f"{cipher_type.value} expects a {entry.key_class.__name__}, got {type(key).__name__}")
    key.validate()
    return entry

def encode(cipher_type: Any, text: str, key: Any) -> str:
    ct = cipher_type_from(cipher_type)
    return _check_key(ct, key).encode(text, key)

def decode(cipher_type: Any, text: str, key: Any) -> str:
    ct = cipher_type_from(cipher_type)
    return _check_key(ct, key).decode(text, key)

def brute_force(cipher_type: Any, ciphertext: str, options: Optional[CrackOptions] = None) -> List[CandidateResult]:
    """Unscored candidates in enumeration order."""
    ct = cipher_type_from(cipher_type)
    return CIPHERS[ct].search(ciphertext, options or CrackOptions())

# ---------- Key parsing ----------
def _parse_ints(text: str, count: int, what: str) -> List[int]:
    nums = re.findall(r"-?\d+", text or "")
    if len(nums) != count or re.sub(r"[-\d\s,;\[\]()]", "", text or ""):
        raise InvalidKey(f"{what} needs {count} integer(s), got {text!r}")
    return [int(n) for n in nums]

def parse_key(cipher_type: Any, text: str, sub_type: Optional[str] = None,
              trans_type: Optional[str] = None, trans_text: Optional[str] = None) -> Any:
    """Build a validated key from its command-line form.

    "3" (additive, multiplicative, autokey, railfence, simple-trans),
    "5,8" (affine), "3,3,2,5" (hill, row-major), "LEMON" (keyword ciphers),
    "KEY,SECRET" (double). The product cipher takes its substitution key
    from `text` and its transposition key from `trans_text`.
    """
    ct = cipher_type_from(cipher_type)
    if ct in (CipherType.ADDITIVE, CipherType.MULTIPLICATIVE):
        key: Any = CIPHERS[ct].key_class(*_parse_ints(text, 1, "Key"))
    elif ct is CipherType.AUTOKEY:
        key = AutokeyKey(*_parse_ints(text, 1, "Initial key"))
    elif ct is CipherType.AFFINE:
        key = AffineKey(*_parse_ints(text, 2, "Affine key (a,b)"))
    elif ct is CipherType.HILL:
        key = HillKey(*_parse_ints(text, 4, "Hill matrix (a,b,c,d)"))
    elif ct is CipherType.RAILFENCE:
        key = RailFenceKey(*_parse_ints(text, 1, "Rails"))
    elif ct is CipherType.SIMPLE_TRANS:
        key = KeylessKey(*_parse_ints(text, 1, "Columns"))
    elif ct in (CipherType.VIGENERE, CipherType.PLAYFAIR, CipherType.COLUMNAR):
        key = CIPHERS[ct].key_class(text or "")
    elif ct is CipherType.MONOALPHABETIC:
        key = MonoalphabeticKey(text or "")
    elif ct is CipherType.VERNAM:
        key = VernamKey(text or "")
    elif ct is CipherType.DOUBLE:
        parts = [p for p in re.split(r"[,\s]+", text or "") if p]
        if len(parts) != 2:
            raise InvalidKey(f"Double transposition needs two keywords, got {text!r}")
        key = DoubleTranspositionKey(parts[0], parts[1])
    elif ct is CipherType.PRODUCT:
        if not sub_type or not trans_type:
            raise InvalidKey("Product cipher needs a substitution and a transposition type")
        sub = cipher_type_from(sub_type)
        trans = cipher_type_from(trans_type)
        key = ProductKey(sub, parse_key(sub, text), trans, parse_key(trans, trans_text or ""))
    else:
        raise UnsupportedOperation(f"{ct.value} has no classical key")
    key.validate()
    return key

# ---------- Crack pipeline ----------
def crack(job: CrackJob, progress: Optional[Callable[[str], None]] = None,
          cancel_event=None, limit: int = MAX_RESULTS) -> List[CandidateResult]:
    """Search, score and rank one job; at most `limit` results, best first.

    `cancel_event` is any object with `is_set()`; once set the job raises
    JobSuperseded at its next checkpoint instead of returning.
    """
    def report(msg: str):
        if progress is not None:
            progress(msg)

    def checkpoint():
        if cancel_event is not None and cancel_event.is_set():
            raise JobSuperseded("Job was superseded by a newer submission")

    ct = cipher_type_from(job.cipher_type)
    if not clean_text(job.ciphertext or "").strip():
        raise EngineFault("Please enter ciphertext to crack")

    report("Starting analysis...")
    if ct is CipherType.PRODUCT:
        report("Crunching product cipher combinations...")
    results = brute_force(ct, job.ciphertext, job.options)
    checkpoint()

    report("Scoring candidates...")
    for r in results:
        checkpoint()
        score_candidate(r)
    results.sort(key=lambda r: r.score, reverse=True)
    checkpoint()
    return results[:limit]
