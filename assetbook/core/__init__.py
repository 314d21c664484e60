"""Pure date and money arithmetic for the depreciation ledger."""
