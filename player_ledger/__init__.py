"""Virtual currency ledger for tabletop-game players."""
