"""
CSV Handler Module

Handles reading the attachments CSV and writing the output mapping CSV.
"""

import csv
import os
from typing import Any, Dict, List, Optional, Tuple
import logging

from .params import PARAM_KEYS, SHARPEN

logger = logging.getLogger(__name__)

MAPPING_FIELDS = ['old_url', 'new_url', 'srcset', 'bunny_width', 'bunny_height', 'status', 'error']


def read_attachments_csv(filepath: str) -> List[Dict[str, str]]:
    """
    Read the CSV file describing attachment images.

    Args:
        filepath: Path to the input CSV file

    Returns:
        List of dictionaries, one per row
    """
    rows = []

    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Input CSV file not found: {filepath}")

    # Try different encodings to handle various CSV formats
    encodings = ['utf-8-sig', 'utf-8', 'latin-1', 'cp1252']

    for encoding in encodings:
        try:
            with open(filepath, 'r', encoding=encoding, newline='') as f:
                reader = csv.DictReader(f)
                rows = [
                    {k.strip(): v.strip() if v else '' for k, v in row.items() if k}
                    for row in reader
                ]

            logger.info(f"Successfully read {len(rows)} rows from {filepath} using {encoding}")
            return rows

        except UnicodeDecodeError:
            continue

    raise ValueError(f"Could not read CSV file with any supported encoding: {filepath}")


def get_src_column(row: Dict[str, str]) -> Optional[str]:
    """
    Extract the image URL from a row, handling various column name formats.

    Args:
        row: Dictionary containing CSV row data

    Returns:
        Image URL or None if not found
    """
    possible_names = ['src', 'url', 'URL', 'image_url', 'Image URL', 'Image Link']

    for name in possible_names:
        if row.get(name):
            return row[name]

    return None


def row_to_attachment(row: Dict[str, str]) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """
    Turn a CSV row into image attributes and attachment metadata.

    Args:
        row: Dictionary containing CSV row data

    Returns:
        Tuple of (attributes, metadata); metadata is None without a 'file' column
    """
    attr: Dict[str, Any] = {'src': get_src_column(row) or ''}

    if row.get('srcset'):
        attr['srcset'] = row['srcset']

    bunny: Dict[str, Any] = {}
    for key in PARAM_KEYS:
        value = row.get(key, '')
        if not value:
            continue
        if key == SHARPEN and value.lower() in ('true', 'false'):
            bunny[key] = value.lower() == 'true'
        else:
            bunny[key] = value

    if bunny:
        attr['bunny'] = bunny

    meta = None
    if row.get('file'):
        meta = {
            'file': row['file'],
            'width': row.get('original_width', ''),
            'height': row.get('original_height', ''),
        }

    return attr, meta


def write_mapping_csv(mappings: List[Dict[str, str]], output_path: str) -> str:
    """
    Write the URL mapping CSV file.

    Args:
        mappings: List of dictionaries with mapping data
        output_path: Path to write the output CSV

    Returns:
        Path to the written file
    """
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    if not mappings:
        logger.warning("No mappings to write")
        return output_path

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=MAPPING_FIELDS, extrasaction='ignore')
        writer.writeheader()
        writer.writerows(mappings)

    logger.info(f"Wrote {len(mappings)} mappings to {output_path}")
    return output_path
