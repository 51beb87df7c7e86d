"""
Rewrite Report Module

Collects per-row results of a batch rewrite and prints a summary.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RewriteReport:
    """Outcome of a batch rewrite."""

    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: str = ""

    total_items: int = 0
    success_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0

    mappings: List[Dict[str, str]] = field(default_factory=list)

    def mark_success(
        self,
        url: str,
        new_url: str,
        attributes: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Record a rewritten image.

        Args:
            url: Original image URL
            new_url: Rewritten CDN URL
            attributes: Extra columns (srcset, bunny_width, bunny_height)
        """
        self.success_count += 1

        mapping = {
            'old_url': url,
            'new_url': new_url,
            'status': 'success',
            'error': ''
        }
        if attributes:
            mapping.update(attributes)

        self.mappings.append(mapping)

    def mark_failed(self, url: str, error: str, new_url: str = '') -> None:
        """Record an image that could not be rewritten or verified."""
        self.failed_count += 1
        self.mappings.append({
            'old_url': url,
            'new_url': new_url,
            'status': 'failed',
            'error': error
        })

    def mark_skipped(self, url: str, reason: str = "") -> None:
        """Record a row that was not processed."""
        self.skipped_count += 1
        logger.warning(f"Skipped {url or '<no url>'}: {reason}")

    def mark_complete(self) -> None:
        self.completed_at = datetime.now().isoformat()

    def get_mappings(self) -> List[Dict[str, str]]:
        """Get all mappings (success and failed)."""
        return self.mappings

    def print_summary(self) -> None:
        """Print a summary of the rewrite."""
        print("\n" + "=" * 50)
        print("REWRITE SUMMARY")
        print("=" * 50)
        print(f"Total items:    {self.total_items}")
        print(f"Rewritten:      {self.success_count}")
        print(f"Failed:         {self.failed_count}")
        print(f"Skipped:        {self.skipped_count}")
        if self.completed_at:
            print(f"Completed at:   {self.completed_at}")
        print("=" * 50)

        if self.failed_count:
            print("\nFailed items:")
            for mapping in self.mappings:
                if mapping['status'] == 'failed':
                    print(f"  - {mapping['old_url']}: {mapping['error']}")
