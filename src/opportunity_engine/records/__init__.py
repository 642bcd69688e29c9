"""
Records Package - Single-Record Pipeline Operations.

Components:
    - OpportunityService: create / update / stage transition / soft delete
"""

from opportunity_engine.records.record_service import OpportunityService

__all__ = ["OpportunityService"]
