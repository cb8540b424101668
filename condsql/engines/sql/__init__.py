"""
Conditional SQL templates: ``{% if %}`` / ``{% else %}`` / ``{% endif %}``.

Exports: ConditionalTemplateEngine, render_sql, parse_parameters,
check_template_safety.
"""

from condsql.engines.sql.expression import (
    ExpressionError,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
)
from condsql.engines.sql.parser import parse_parameters
from condsql.engines.sql.safety import check_template_safety
from condsql.engines.sql.template_engine import (
    ConditionalTemplateEngine,
    TemplateVariableError,
    render_sql,
)

__all__ = [
    "ConditionalTemplateEngine",
    "render_sql",
    "parse_parameters",
    "check_template_safety",
    "TemplateVariableError",
    "ExpressionError",
    "ExpressionSyntaxError",
    "ExpressionEvaluationError",
]
