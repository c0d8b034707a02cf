"""
Analytics Package
=================
Pure daily-metric computations.

Modules:
  calculators - nutrients, physical load, sleep physics, cognitive load, energy
  scoring     - sub-score curves, composite, snapshot projection
"""
