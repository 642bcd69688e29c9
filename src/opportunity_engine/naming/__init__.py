"""
Naming Package - Deterministic Opportunity Names.

Components:
    - generate_name: One name from organization, principal and context
    - generate_batch_name_previews: Ordered previews for many principals
    - NameGenerator: The same, bound to configured templates and limits
    - parse_auto_generated_name / is_auto_generated_name: Template matching
    - update_auto_generated_name: Re-render a name after its inputs change
"""

from opportunity_engine.naming.name_generator import (
    DEFAULT_TEMPLATES,
    NameGenerator,
    clean_name,
    generate_batch_name_previews,
    generate_name,
    is_auto_generated_name,
    parse_auto_generated_name,
    render_template,
    update_auto_generated_name,
)

__all__ = [
    "DEFAULT_TEMPLATES",
    "NameGenerator",
    "clean_name",
    "generate_batch_name_previews",
    "generate_name",
    "is_auto_generated_name",
    "parse_auto_generated_name",
    "render_template",
    "update_auto_generated_name",
]
