"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the staking pool.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Principal accounting and token conservation
2. atomicity.py - All-or-nothing entry points
3. idempotency.py - Repeated settlement at the same instant is a no-op
4. determinism.py - Identical operation sequences give identical pools
5. temporal.py - Monotonic rate and time
6. reentrancy.py - Nested entry-point calls are refused

These tests use hypothesis for property-based testing.
"""
