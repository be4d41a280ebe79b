"""
Value parsers used by argument coercion
"""

from .datetime_parser import DateTimeParser
from .formats import FORMAT_PARSERS, SemanticVersion
from .invoke import invoke

__all__ = [
    'DateTimeParser',
    'FORMAT_PARSERS',
    'SemanticVersion',
    'invoke',
]
