"""
Fuzzy matching and ranking package.

This package provides the in-memory half of a search:
- normalizer: Flattening, truncation and transliteration of record fields
- fuzzy: Substring, subsequence and typo-tolerant string matching
- scorer: Weighted per-record scoring over original and transliterated text
- merger: Reconciliation of the two scoring passes
- pagination: Page slicing and page metadata
- highlight: Match markers around matched character runs
"""
