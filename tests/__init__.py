"""
Test suite for W-Pre-market AMM

Contains:
- tests/unit/          : Unit tests for individual modules and pool scenarios
"""
