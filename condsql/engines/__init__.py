"""
Engines: SQL templates with conditional directives.
"""

from condsql.engines.sql import (
    ConditionalTemplateEngine,
    check_template_safety,
    parse_parameters,
    render_sql,
)

__all__ = [
    "ConditionalTemplateEngine",
    "render_sql",
    "parse_parameters",
    "check_template_safety",
]
