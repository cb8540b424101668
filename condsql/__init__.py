"""
condsql: render SQL text containing ``{% if <expr> %}`` conditional blocks.
"""

from condsql.engines.sql import (
    ConditionalTemplateEngine,
    TemplateVariableError,
    check_template_safety,
    parse_parameters,
    render_sql,
)

__version__ = "0.1.0"

__all__ = [
    "ConditionalTemplateEngine",
    "TemplateVariableError",
    "render_sql",
    "parse_parameters",
    "check_template_safety",
]
