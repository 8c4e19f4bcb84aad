from .working_domain_cache import CacheWorkingDomainStore

__all__ = ["CacheWorkingDomainStore"]
