"""
Optimization Parameters Module

Validates raw image attributes into the ordered set of BunnyCDN optimizer
query parameters.
"""

import math
import re
import logging
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

WIDTH = 'width'
HEIGHT = 'height'
ASPECT_RATIO = 'aspect_ratio'
QUALITY = 'quality'
SHARPEN = 'sharpen'
BLUR = 'blur'
BRIGHTNESS = 'brightness'
SATURATION = 'saturation'
HUE = 'hue'
GAMMA = 'gamma'
CONTRAST = 'contrast'
AUTO_OPTIMIZE = 'auto_optimize'

# Serialization order of the query string
PARAM_KEYS = (
    WIDTH,
    HEIGHT,
    ASPECT_RATIO,
    QUALITY,
    SHARPEN,
    BLUR,
    BRIGHTNESS,
    SATURATION,
    HUE,
    GAMMA,
    CONTRAST,
    AUTO_OPTIMIZE,
)

AUTO_OPTIMIZE_LEVELS = ('low', 'medium', 'high')

AttributeValue = Union[str, int, float, bool, None]
AttributeBag = Mapping[str, AttributeValue]
OptimizationParams = Tuple[Tuple[str, str], ...]

NUMERIC_PATTERN = re.compile(r'^\s*[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?\s*\Z')


def is_numeric(
    value: AttributeValue,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None
) -> bool:
    """
    Check that a raw attribute is a number within an inclusive range.

    Falsy values (None, '', 0, '0', False) count as absent. Booleans are
    never numeric. The range is checked against the integer truncation
    of the value.

    Args:
        value: Raw attribute value
        minimum: Lowest accepted integer value
        maximum: Highest accepted integer value

    Returns:
        True if the value is numeric and within range
    """
    if not value or isinstance(value, bool):
        return False

    if isinstance(value, str):
        if not NUMERIC_PATTERN.match(value):
            return False
        value = float(value)
    elif not isinstance(value, (int, float)):
        return False

    # '1e400' parses to infinity
    if isinstance(value, float) and not math.isfinite(value):
        return False

    number = int(value)

    if minimum is not None and number < minimum:
        return False

    return maximum is None or number <= maximum


def format_value(value: Union[str, int, float]) -> str:
    """Render a validated number the way it will appear in the query string."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_aspect_ratio(value: AttributeValue) -> Optional[Tuple[int, int]]:
    """
    Parse an aspect ratio of the form 'A:B'.

    Args:
        value: Raw attribute value

    Returns:
        Tuple of (x, y) or None if the value is not a valid ratio
    """
    if not value or not isinstance(value, str):
        return None

    parts = value.split(':')
    if len(parts) != 2:
        return None

    if not is_numeric(parts[0], 1) or not is_numeric(parts[1], 1):
        return None

    return int(float(parts[0])), int(float(parts[1]))


def _ranged(minimum: Optional[int], maximum: Optional[int] = None) -> Callable[[AttributeValue], str]:
    def validate(value: AttributeValue) -> str:
        return format_value(value) if is_numeric(value, minimum, maximum) else ''
    return validate


def _aspect_ratio(value: AttributeValue) -> str:
    return value if parse_aspect_ratio(value) else ''


def _sharpen(value: AttributeValue) -> str:
    if not isinstance(value, bool):
        return ''
    return 'true' if value else 'false'


def _auto_optimize(value: AttributeValue) -> str:
    if not isinstance(value, str) or value not in AUTO_OPTIMIZE_LEVELS:
        return ''
    return value


VALIDATORS: Dict[str, Callable[[AttributeValue], str]] = {
    WIDTH: _ranged(1),
    HEIGHT: _ranged(1),
    ASPECT_RATIO: _aspect_ratio,
    QUALITY: _ranged(0, 100),
    SHARPEN: _sharpen,
    BLUR: _ranged(0, 100),
    BRIGHTNESS: _ranged(-100, 100),
    SATURATION: _ranged(-100, 100),
    HUE: _ranged(0, 100),
    GAMMA: _ranged(-100, 100),
    CONTRAST: _ranged(-100, 100),
    AUTO_OPTIMIZE: _auto_optimize,
}


def validate_params(bag: AttributeBag, suppress_dimensions: bool = False) -> OptimizationParams:
    """
    Build optimization parameters from a raw attribute bag.

    Every key is validated on its own; invalid or missing values are
    dropped, never defaulted. A valid aspect ratio supersedes height.

    Args:
        bag: Raw attributes (e.g. the 'bunny' entry of an image's attributes)
        suppress_dimensions: Omit width and height, for callers that merge
            filename dimensions afterwards

    Returns:
        Ordered tuple of (key, value) pairs
    """
    skip = set()
    if suppress_dimensions:
        skip.update((WIDTH, HEIGHT))
    if parse_aspect_ratio(bag.get(ASPECT_RATIO)):
        skip.add(HEIGHT)

    params = []
    for key in PARAM_KEYS:
        if key in skip:
            continue

        value = VALIDATORS[key](bag.get(key))
        if value:
            params.append((key, value))
        elif bag.get(key) is not None:
            logger.debug(f"Dropping invalid {key} value: {bag.get(key)!r}")

    return tuple(params)


def get_param(params: OptimizationParams, key: str) -> Optional[str]:
    """Look up a parameter value by key."""
    for name, value in params:
        if name == key:
            return value
    return None


def has_param(params: OptimizationParams, key: str) -> bool:
    """Check whether a parameter is set."""
    return get_param(params, key) is not None
