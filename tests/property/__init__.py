"""
Krishna108 - Property-Based Testing Suite

Property-based testing using Hypothesis for the verse ring, the recency
rule, reference text and slug generation.
"""
