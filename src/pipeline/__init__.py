"""
Pipeline Package
================
  daily_pipeline  - recompute -> snapshot -> correlations -> advisory
  summary_builder - 3-bullet condensing of free-text advisory output
"""
