"""
API Routes Package
==================
Shared payload builders for api.py.  Route handlers stay in api.py;
this package holds the pieces that shape analytics, history and
correlation results into JSON responses.

Modules:
  helpers  - type coercion, trend notes, payload builders
"""
