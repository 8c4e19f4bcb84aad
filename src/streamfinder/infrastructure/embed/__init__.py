from .domains import DomainStatus, EmbedDomainManager
from .templates import build_embed_url, domain_of, match_slug

__all__ = [
    "DomainStatus",
    "EmbedDomainManager",
    "build_embed_url",
    "domain_of",
    "match_slug",
]
