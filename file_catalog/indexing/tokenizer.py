import re
from typing import Iterator, List

from .. import config

# Anything that is not a word character (Unicode letters, digits, '_') or whitespace
NON_WORD_RE = re.compile(r'[^\w\s]')


# Lowercase and blank out punctuation so only words remain.
def normalize_text(text: str) -> str:
    return NON_WORD_RE.sub(' ', text.lower())


# Split normalized text into tokens long enough to be worth indexing.
def tokenize(text: str, min_length: int = config.MIN_TOKEN_LENGTH) -> List[str]:
    return [tok for tok in normalize_text(text).split() if len(tok) >= min_length]


# Every contiguous n-character window of a token; empty for shorter tokens.
def ngrams(token: str, size: int = config.NGRAM_SIZE) -> Iterator[str]:
    for start in range(len(token) - size + 1):
        yield token[start:start + size]


# Full tokens followed by their n-grams: the keys a text is indexed under.
def index_terms(text: str) -> set[str]:
    tokens = tokenize(text)
    terms = set(tokens)
    for tok in tokens:
        terms.update(ngrams(tok))
    return terms
