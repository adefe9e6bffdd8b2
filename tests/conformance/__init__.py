"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the rental ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. lease_atomicity.py - All-or-nothing transitions against external collaborators
2. listing_uniqueness.py - One active listing per asset, one open lease per listing
3. fee_exactness.py - Integer fee split with no value created or lost
4. custody_conservation.py - Currency conserved, escrow equals open collateral

These tests use hypothesis for property-based testing.
"""
