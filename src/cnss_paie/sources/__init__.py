from .mock_profiles import MockProfileSource
from .rate_provider import RateTableCache, RateTableProvider

__all__ = [
    'MockProfileSource',
    'RateTableCache',
    'RateTableProvider'
]
