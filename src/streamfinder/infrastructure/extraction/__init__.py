from .extractor import StreamExtractor, direct_stream
from .patterns import (
    Candidates,
    decode_base64,
    extract_candidates,
    find_nested_iframe,
    rank_candidates,
    select_best,
)
from .urls import clean_url, is_absolute_url, to_absolute

__all__ = [
    "Candidates",
    "StreamExtractor",
    "clean_url",
    "decode_base64",
    "direct_stream",
    "extract_candidates",
    "find_nested_iframe",
    "is_absolute_url",
    "rank_candidates",
    "select_best",
    "to_absolute",
]
