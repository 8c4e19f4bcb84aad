from .match_streams import MatchStreamsUseCase

__all__ = ["MatchStreamsUseCase"]
