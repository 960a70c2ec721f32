'''
SMS Insights Test Suite

Test Modules:
-------------
- test_tabular.py: CSV parsing, field mapping, numeric coercion
- test_phone.py: phone normalization and prefix-variant lookup
- test_timestamps.py: format precedence, fallback, totality
- test_reconciliation.py: join resolution, inclusion rules, idempotence
- test_aggregation.py: proportional rounding, campaign/client/time rollups
- test_query.py: category slicing, view log order, category report
- test_sources.py: sheet fetching over httpx, transport failures
- test_loader.py: load publication, failures, latest-started-wins
- test_export.py: xlsx workbook layout
- test_api.py: dashboard endpoints and error mapping

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v
'''

__all__ = []
