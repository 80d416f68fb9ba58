"""
What-if comparisons of simulation configurations.
"""

from .scenario_analyzer import ScenarioAnalyzer

__all__ = ['ScenarioAnalyzer']
