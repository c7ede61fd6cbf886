"""Intermediate representation: the block model and answer coverage.

The graph itself lives in ``survey_flow.ir.graph``.
"""

from survey_flow.ir.blocks import Block, BlockOption, NavigationRule, dump_blocks, load_blocks
from survey_flow.ir.coverage import CoverageChecker, OptionCoverage, never_covered

__all__ = [
    "Block",
    "BlockOption",
    "CoverageChecker",
    "NavigationRule",
    "OptionCoverage",
    "dump_blocks",
    "load_blocks",
    "never_covered",
]
