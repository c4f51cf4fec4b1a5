"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending ledger.
Any compliant store or processor MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Net supplied identity and repayment conservation
2. atomicity.py - All-or-nothing event application
3. idempotency.py - Get-or-create and re-delivery handling
4. determinism.py - Reproducible replay
5. canonicalization.py - Address case never splits an identity
6. temporal.py - Event ordering and hourly snapshots
7. isolation.py - Untracked assets never write

These tests use hypothesis for property-based testing.
"""
