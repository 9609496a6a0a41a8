# sardia_api/utils/text_search.py
"""
작품 전문 검색용 관련도 계산

Firestore는 전문 검색 인덱스를 제공하지 않으므로, 조회한 문서의 제목/발췌/본문을
토큰화하여 필드 가중치 기반 점수를 계산합니다.
"""

import re
from typing import Callable, Dict, Iterable, List, Set, Tuple, TypeVar

T = TypeVar('T')

# 제목 일치가 본문 일치보다 훨씬 강한 신호가 되도록 가중치를 둡니다.
SEARCH_FIELD_WEIGHTS: Dict[str, float] = {
    'title': 10.0,
    'excerpt': 5.0,
    'full_content': 1.0,
}

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> List[str]:
    if not text:
        return []
    return [token.casefold() for token in _TOKEN_PATTERN.findall(text)]


def query_terms(query: str) -> Set[str]:
    return set(tokenize(query))


def score_fields(terms: Set[str], fields: Dict[str, str],
                 weights: Dict[str, float] = SEARCH_FIELD_WEIGHTS) -> float:
    """
    각 필드에서 검색어가 등장할 때마다 가중치만큼 점수를 더합니다.
    같은 단어가 짧은 필드에서 반복될수록 점수가 조금 더 높아집니다.
    """
    if not terms:
        return 0.0

    score = 0.0
    for name, weight in weights.items():
        tokens = tokenize(fields.get(name) or '')
        if not tokens:
            continue
        for term in terms:
            frequency = tokens.count(term)
            if frequency:
                score += weight * (0.5 + 0.5 * frequency / len(tokens)) * frequency
    return score


def rank(query: str, documents: Iterable[T],
         fields_of: Callable[[T], Dict[str, str]],
         weights: Dict[str, float] = SEARCH_FIELD_WEIGHTS) -> List[Tuple[float, T]]:
    """점수가 0보다 큰 문서만 (score, document) 형태로 반환합니다. 정렬은 호출자가 수행합니다."""
    terms = query_terms(query)
    ranked = []
    for document in documents:
        score = score_fields(terms, fields_of(document), weights)
        if score > 0:
            ranked.append((score, document))
    return ranked
