"""
Conditional SQL template engine.

Resolves ``{% if <expr> %} ... {% else %} ... {% endif %}`` directives by
repeatedly rewriting the document: the first directive is split into
before / condition / valid / invalid / after, the condition is evaluated,
and the document becomes ``before + chosen branch + after``. The branch that
was not chosen is dropped unscanned, so directives inside it are never
evaluated; directives inside the chosen branch are picked up on a later pass.

Template problems never raise: an unmatched ``{% if `` leaves the rest of the
document as literal text, and a condition that fails to parse or evaluate
counts as false.

Example::

    engine = ConditionalTemplateEngine({"include_ids": True})
    sql = engine.render(open("select-customer.sql").read())

with ``select-customer.sql``::

    select
    {% if $include_ids %}
        ID,
    {% else %}
        NUMBER,
    {% endif %}
        NAME
    from customers

``:name`` bind placeholders are left as-is for the database driver.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from condsql.core.config import settings
from condsql.engines.sql.blocks import extract_block
from condsql.engines.sql.environment import VariableEnvironment
from condsql.engines.sql.expression import Failed, try_evaluate
from condsql.engines.sql.filters import sql_literal
from condsql.engines.sql.parser import SUBSTITUTION_RE

_log = logging.getLogger(__name__)


class TemplateVariableError(ValueError):
    """Raised by ``render_sql`` for a substitution variable not named ``$...``."""

    pass


class ConditionalTemplateEngine:
    """
    Renders conditional directives against global + per-call variables.

    - variables: engine-wide bindings, fixed for the engine's lifetime.
    - trim_prefix: drop the character before ``{% if`` / top-level
      ``{% else %}`` (default: ``settings.TRIM_DIRECTIVE_PREFIX``).
    - debug: log failed conditions at WARNING instead of DEBUG
      (default: ``settings.DEBUG``).

    Instances hold no per-render state and may be shared between threads.
    """

    def __init__(
        self,
        variables: Mapping[str, Any] | None = None,
        *,
        trim_prefix: bool | None = None,
        debug: bool | None = None,
    ) -> None:
        self.environment = VariableEnvironment(variables)
        self.trim_prefix = (
            settings.TRIM_DIRECTIVE_PREFIX if trim_prefix is None else trim_prefix
        )
        self.debug = settings.DEBUG if debug is None else debug

    def _condition_holds(self, condition: str, env: Mapping[str, Any]) -> bool:
        outcome = try_evaluate(condition, env)
        if isinstance(outcome, Failed):
            level = logging.WARNING if self.debug else logging.DEBUG
            _log.log(level, "Condition %r evaluated as false: %s", condition, outcome.reason)
            return False
        return outcome.value

    def render(self, text: str, variables: Mapping[str, Any] | None = None) -> str:
        """Return *text* with every directive resolved against the merged variables."""
        if not isinstance(text, str):
            raise TypeError(f"Template must be str, got {type(text).__name__}")
        env = self.environment.merged(variables)
        resolved = 0
        while True:
            block = extract_block(text, trim_prefix=self.trim_prefix)
            if block is None:
                break
            branch = block.valid if self._condition_holds(block.condition, env) else block.invalid
            text = block.before + branch + block.after
            resolved += 1
        if resolved:
            _log.debug("Resolved %d directive(s)", resolved)
        return text

    # Older callers use ``engine.parse(text)``.
    parse = render


def render_sql(sql: str, variables: Mapping[str, Any] | None = None) -> str:
    """
    Render directives in *sql*, then replace ``$name`` references with the
    SQL literal of the matching variable (see ``filters.sql_literal``).

    Every key of *variables* must start with ``$``. Unknown ``$name``
    references and ``:name`` placeholders are left untouched.
    """
    if variables is None:
        return sql
    for name in variables:
        if not str(name).startswith("$"):
            raise TemplateVariableError(f'The SQL variable "{name}" must start with $')

    rendered = ConditionalTemplateEngine().render(sql, variables)
    values = {str(k)[1:]: v for k, v in variables.items()}

    def _replace(m: re.Match[str]) -> str:
        name = m.group(1)
        if name not in values:
            return m.group(0)
        return sql_literal(values[name])

    return SUBSTITUTION_RE.sub(_replace, rendered)
