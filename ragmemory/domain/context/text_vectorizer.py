from typing import Dict, Mapping
from collections import Counter
import math
import re

# Word characters are ASCII letters, digits and underscore; whitespace stays Unicode
_NON_WORD = re.compile(r'[^A-Za-z0-9_\s]')

MIN_TOKEN_LENGTH = 3


def vectorize(text: str, min_token_length: int = MIN_TOKEN_LENGTH) -> Dict[str, int]:
    """Turn free text into a sparse term-frequency vector.
    
    Lowercases, strips non-word characters, splits on whitespace and drops
    tokens shorter than ``min_token_length``. Empty or punctuation-only text
    yields an empty vector.
    """
    
    words = _NON_WORD.sub('', text.lower()).split()
    return dict(Counter(w for w in words if len(w) >= min_token_length))


def magnitude(vector: Mapping[str, int]) -> float:
    return math.sqrt(sum(count * count for count in vector.values()))


def cosine_similarity(vec1: Mapping[str, int], vec2: Mapping[str, int]) -> float:
    """Cosine similarity between two term-frequency vectors, 0 when either is empty"""
    
    mag1 = magnitude(vec1)
    mag2 = magnitude(vec2)
    if mag1 == 0 or mag2 == 0:
        return 0.0
        
    # Iterate over the smaller vector; missing keys contribute nothing
    if len(vec1) > len(vec2):
        vec1, vec2 = vec2, vec1
    dot_product = sum(count * vec2.get(word, 0) for word, count in vec1.items())
    
    return dot_product / (mag1 * mag2)
