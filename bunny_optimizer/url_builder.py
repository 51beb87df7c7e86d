"""
URL Builder Module

Rewrites image URLs for BunnyCDN: normalizes the filename against the
attachment's stored file and appends optimizer query parameters.
"""

import re
import logging
from typing import NamedTuple, Optional, Tuple
from urllib.parse import urlparse

from .params import (
    ASPECT_RATIO,
    HEIGHT,
    WIDTH,
    OptimizationParams,
    has_param,
    parse_aspect_ratio,
)

logger = logging.getLogger(__name__)

# WordPress appends -WIDTHxHEIGHT to generated image sizes
SIZE_SUFFIX_PATTERN = re.compile(r'-([0-9]+)x([0-9]+)\Z')


class Dimensions(NamedTuple):
    width: int
    height: int


def derive_dimensions_from_filename(filename: str) -> Optional[Dimensions]:
    """
    Extract the size suffix WordPress adds to resized images.

    Example: 'photo-1024x768' -> Dimensions(1024, 768)

    Args:
        filename: Filename without extension

    Returns:
        Dimensions or None if the filename carries no size suffix
    """
    match = SIZE_SUFFIX_PATTERN.search(filename)
    if not match:
        return None

    width, height = int(match.group(1)), int(match.group(2))
    if not width or not height:
        return None

    return Dimensions(width, height)


def _prepend(params: OptimizationParams, key: str, value: str) -> OptimizationParams:
    # An explicit value wins but still moves to the front
    rest = tuple((name, val) for name, val in params if name != key)
    for name, val in params:
        if name == key:
            value = val
    return ((key, value),) + rest


def merge_filename_dimensions(
    params: OptimizationParams,
    dimensions: Optional[Dimensions],
    aspect_ratio_present: bool
) -> OptimizationParams:
    """
    Fill in width/height derived from the filename.

    Height is prepended first (skipped when an aspect ratio is set), then
    width, so the result always starts with width, height.

    Args:
        params: Validated parameters
        dimensions: Dimensions from the URL's filename
        aspect_ratio_present: Whether an aspect ratio was requested

    Returns:
        Merged parameters
    """
    if dimensions is None:
        return params

    if not aspect_ratio_present:
        params = _prepend(params, HEIGHT, str(dimensions.height))

    return _prepend(params, WIDTH, str(dimensions.width))


def serialize(params: OptimizationParams) -> str:
    """Join parameters into a query string (key=value&key=value)."""
    return '&'.join(f"{key}={value}" for key, value in params)


def _split_filename(basename: str) -> Tuple[str, str]:
    name, dot, extension = basename.rpartition('.')
    if not dot:
        return basename, ''
    return name, extension


def build_url(url: str, reference_filename: str, params: OptimizationParams = ()) -> str:
    """
    Build a CDN URL for an image.

    The directory is kept from the URL, the filename and extension come from
    the reference file, and any -WIDTHxHEIGHT suffix of the URL's filename is
    turned into width/height parameters.

    Example:
        https://x.com/wp/photo-1024x768.png + 'photo.jpg'
        -> https://x.com/wp/photo.jpg?width=1024&height=768

    Args:
        url: The image URL (usually a resized variant)
        reference_filename: The attachment's stored file (e.g. '2024/05/photo.jpg')
        params: Validated optimization parameters

    Returns:
        The rewritten URL, or the URL unchanged if it cannot be parsed
    """
    directory, slash, basename = url.rpartition('/')
    reference_name, reference_extension = _split_filename(reference_filename.rpartition('/')[2])

    if not slash or not reference_extension:
        logger.debug(f"Leaving URL unchanged: {url}")
        return url

    filename, _ = _split_filename(basename)
    dimensions = derive_dimensions_from_filename(filename)

    image_params = merge_filename_dimensions(
        params,
        dimensions,
        has_param(params, ASPECT_RATIO)
    )

    query = serialize(image_params)

    return f"{directory}/{reference_name}.{reference_extension}{'?' if query else ''}{query}"


def filter_srcset(srcset: str, reference_filename: str, params: OptimizationParams = ()) -> str:
    """
    Rewrite every candidate URL of a srcset attribute.

    Args:
        srcset: e.g. 'a-300x200.jpg 300w, a-600x400.jpg 600w'
        reference_filename: The attachment's stored file
        params: Validated optimization parameters

    Returns:
        The rewritten srcset with descriptors kept as they were
    """
    candidates = []
    for candidate in srcset.split(', '):
        parts = candidate.split(' ')
        parts[0] = build_url(parts[0], reference_filename, params)
        candidates.append(' '.join(parts))

    return ', '.join(candidates)


def compute_cropped_dimensions(width: int, height: int, aspect_ratio: str) -> Tuple[str, str]:
    """
    Compute the width/height attributes for an image cropped to a ratio.

    Uses the arithmetic of the existing WordPress markup: when the width is
    the looser constraint the result is
    (floor(height), height), otherwise (width, floor(width)).

    Args:
        width: Original pixel width
        height: Original pixel height
        aspect_ratio: Ratio such as '16:9'

    Returns:
        Tuple of (bunny_width, bunny_height) as strings
    """
    ratio = parse_aspect_ratio(aspect_ratio)
    if ratio is None or width <= 0 or height <= 0:
        return str(width), str(height)

    x, y = ratio

    if width / x > height / y:
        return str(width * height // width), str(height)

    return str(width), str(height * width // height)


def url_host(url: str) -> Optional[str]:
    """
    Extract the host of a URL as written, keeping its original case.

    Returns:
        Hostname (IPv6 literals with their brackets) or None if the URL has none
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        logger.debug(f"Unparseable URL: {url}")
        return None

    if not hostname:
        return None

    # Drop credentials; the host leads the rest of the netloc
    netloc = parsed.netloc.rpartition('@')[2]
    if netloc.startswith('['):
        return netloc[:netloc.find(']') + 1]
    return netloc[:len(hostname)]


def replace_host(url: str, cdn_host: str) -> str:
    """
    Point a URL at the CDN host.

    Args:
        url: The image URL
        cdn_host: CDN hostname (e.g. 'cdn.example.com')

    Returns:
        URL served from the CDN host, or unchanged if it has no host
    """
    host = url_host(url)
    if not host:
        return url

    return url.replace(host, cdn_host)


def replace_srcset_host(srcset: str, cdn_host: str) -> str:
    """Point every candidate URL of a srcset attribute at the CDN host."""
    candidates = []
    for candidate in srcset.split(', '):
        parts = candidate.split(' ')
        parts[0] = replace_host(parts[0], cdn_host)
        candidates.append(' '.join(parts))

    return ', '.join(candidates)
