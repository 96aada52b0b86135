"""Test package for field-route-planner.

This package contains:
- Engine tests (test_tsp.py, test_endpoints.py, test_reconcile.py)
- Planning tests (test_day_plan.py, test_optimizer.py, test_planner.py, test_store.py)
- Client tests against mock transports (test_matrix.py, test_geocoding.py)
- HTTP API tests (test_api.py)
- Test configuration (conftest.py)
"""
