"""
Public poll result exports.

Read-only builders describing resolved poll cycles, plus the atomic JSON
publisher that writes them for overlays and dashboards.
"""

from shared.public_exports.polls import (
    PublicPollExport,
    PublicPollExportBuilder,
    PublicPollOptionResult,
    PublicPollSummary,
)
from shared.public_exports.publisher import PublicExportPublisher

__all__ = [
    "PublicPollExport",
    "PublicPollOptionResult",
    "PublicPollSummary",
    "PublicPollExportBuilder",
    "PublicExportPublisher",
]
