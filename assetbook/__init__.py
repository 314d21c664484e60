"""Fixed-asset register with a straight-line depreciation ledger."""

__version__ = "1.0.0"
