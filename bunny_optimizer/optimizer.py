"""
Bunny Optimizer Module

Rewrites image attributes, markup and attachment payloads so media is
served through BunnyCDN.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from .config import DEFAULT_CDN_HOST
from .params import ASPECT_RATIO, get_param, is_numeric, validate_params
from .url_builder import build_url, compute_cropped_dimensions, filter_srcset, url_host

logger = logging.getLogger(__name__)

BUNNY_ATTRIBUTE = 'bunny'
BUNNY_WIDTH = 'bunny-width'
BUNNY_HEIGHT = 'bunny-height'


def _pixels(value: Any) -> int:
    return int(float(value)) if is_numeric(value) else 0


class TagProcessor(Protocol):
    """Attribute access over a single HTML fragment, supplied by the host."""

    def next_tag(self, tag_name: str) -> bool: ...

    def get_attribute(self, name: str) -> Optional[str]: ...

    def set_attribute(self, name: str, value: str) -> None: ...

    def remove_attribute(self, name: str) -> None: ...

    def get_updated_html(self) -> str: ...


class BunnyOptimizer:
    """Serves attachment images through BunnyCDN."""

    def __init__(self, cdn_host: str = DEFAULT_CDN_HOST):
        """
        Initialize the optimizer.

        Args:
            cdn_host: Hostname of the BunnyCDN pull zone
        """
        self.cdn_host = cdn_host

    def filter_attributes(
        self,
        attr: Mapping[str, Any],
        meta: Optional[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        """
        Rewrite the attributes of an attachment image.

        The optional 'bunny' attribute carries optimization settings
        (quality, aspect_ratio, ...). Width and height always come from the
        image URL itself.

        Args:
            attr: Image attributes (src, srcset, bunny, ...)
            meta: Attachment metadata with file, width and height, or None

        Returns:
            New attribute dictionary
        """
        attr = dict(attr)

        if not meta or not meta.get('file'):
            return attr

        bunny = attr.get(BUNNY_ATTRIBUTE)
        params = validate_params(bunny, True) if isinstance(bunny, Mapping) else ()

        if attr.get('src'):
            attr['src'] = build_url(attr['src'], meta['file'], params)

        if attr.get('srcset'):
            attr['srcset'] = filter_srcset(attr['srcset'], meta['file'], params)

        aspect_ratio = get_param(params, ASPECT_RATIO)
        if aspect_ratio:
            attr[BUNNY_WIDTH], attr[BUNNY_HEIGHT] = compute_cropped_dimensions(
                _pixels(meta.get('width')),
                _pixels(meta.get('height')),
                aspect_ratio
            )

        attr.pop(BUNNY_ATTRIBUTE, None)

        return attr

    def filter_html(self, html: str, processor_factory: Callable[[str], TagProcessor]) -> str:
        """
        Move bunny-width/bunny-height onto the width/height of the first image.

        Args:
            html: Image markup
            processor_factory: Builds a TagProcessor for the markup

        Returns:
            Updated markup
        """
        processor = processor_factory(html)
        if not processor.next_tag('img'):
            return html

        width = processor.get_attribute(BUNNY_WIDTH)
        height = processor.get_attribute(BUNNY_HEIGHT)

        if width:
            processor.set_attribute('width', width)
            processor.remove_attribute(BUNNY_WIDTH)

        if height:
            processor.set_attribute('height', height)
            processor.remove_attribute(BUNNY_HEIGHT)

        return processor.get_updated_html()

    def prepare_attachment_for_js(self, response: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Point the size URLs of a media-library payload at the CDN.

        Args:
            response: Attachment payload with 'url' and 'sizes'

        Returns:
            New payload with rewritten size URLs
        """
        response = dict(response)

        if 'sizes' not in response or not response.get('url'):
            return response

        sizes = {}
        for name, size in response['sizes'].items():
            size = dict(size)
            if not size.get('url'):
                sizes[name] = size
                continue

            url = build_url(size['url'], response['url'])
            host = url_host(url)
            if host:
                size['url'] = url.replace(host, self.cdn_host)
            else:
                logger.debug(f"Size {name} has no host, leaving as is: {size['url']}")
            sizes[name] = size

        response['sizes'] = sizes

        return response
