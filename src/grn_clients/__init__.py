# Warehouse-specific GRN generators
# Each module holds the header rules and column quirks of one warehouse

import logging

from .knot_warehouse import GRNReport, KnotGRNGenerator

__all__ = ["GRNReport", "KnotGRNGenerator"]

logging.getLogger(__name__).addHandler(logging.NullHandler())
