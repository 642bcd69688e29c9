"""
Analytics Package - Pipeline KPIs and Stage Grouping.
"""

from opportunity_engine.analytics.pipeline_kpis import compute_pipeline_kpis, group_by_stage

__all__ = ["compute_pipeline_kpis", "group_by_stage"]
