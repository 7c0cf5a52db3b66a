from .coercion import coerce, render
from .duration import format_duration, parse_duration
from .marshal import marshal
from .merge import merge_base, restore_display
from .unmarshal import unmarshal

__all__ = [
    "coerce",
    "format_duration",
    "marshal",
    "merge_base",
    "parse_duration",
    "render",
    "restore_display",
    "unmarshal",
]
