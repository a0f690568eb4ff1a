"""
Core modules for the analytics console.

This package contains the aggregation engine (daily rollups and
whole-history summaries), pricing, error types and the query facade.
"""
