"""Export file decoding (pandas)."""
