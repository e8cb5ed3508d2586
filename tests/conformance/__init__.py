"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the vault.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Locked total equals the sum of unsettled principal
2. atomicity.py - Failed operations leave no trace
3. idempotency.py - A deposit pays out at most once
4. reward_curve.py - Reward and penalty arithmetic over time

These tests use hypothesis for property-based testing.
"""
