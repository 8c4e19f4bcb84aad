from .cache import CachePort
from .provider_resolver import ProviderResolverPort
from .stream_extractor import StreamExtractorPort
from .working_domain_store import WorkingDomainStore

__all__ = [
    "CachePort",
    "ProviderResolverPort",
    "StreamExtractorPort",
    "WorkingDomainStore",
]
