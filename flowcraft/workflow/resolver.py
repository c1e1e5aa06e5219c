"""
Variable resolver - template substitution against a variable context.

Supported reference syntaxes, in precedence order:
- =name      - whole-value reference; the entire template is the reference
- =${name}   - embeddable
- ${name}    - embeddable
- $(name)    - embeddable

Lookup tries the exact name, then the name with dots replaced by
underscores, then a case-insensitive match. References that do not
resolve are left verbatim so optional-variable templates never fail.
"""

import json
import re
from typing import Any, Mapping

# "=name" spanning the whole template; "=${" and "=$(" are not whole-value forms
WHOLE_VALUE_PATTERN = re.compile(r"^=([A-Za-z_][\w.]*)$")

# One pass over all embeddable forms so a substituted value is never re-scanned
EMBEDDED_PATTERN = re.compile(r"(=?)\$\{([^{}]+)\}|\$\(([^()]+)\)")

_MISSING = object()


def lookup(name: str, variables: Mapping[str, Any], default: Any = _MISSING) -> Any:
    """
    Find a variable by name with the resolver's fallback rules.

    Raises:
        KeyError: If nothing matches and no default is given.
    """
    name = name.strip()
    if name in variables:
        return variables[name]

    normalized = name.replace(".", "_")
    if normalized in variables:
        return variables[normalized]

    lowered = {name.lower(), normalized.lower()}
    for key, value in variables.items():
        if key.lower() in lowered:
            return value

    if default is _MISSING:
        raise KeyError(name)
    return default


def render_value(value: Any) -> str:
    """Render a variable value as text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def resolve(template: str | None, variables: Mapping[str, Any]) -> str:
    """
    Substitute variable references in a template.

    Examples:
        resolve("=name", {"name": "Ada"})             # "Ada"
        resolve("Hi ${name}!", {"name": "Ada"})       # "Hi Ada!"
        resolve("Hi $(Name)", {"name": "Ada"})        # "Hi Ada"
        resolve("=Local.name", {"Local_name": "Ada"}) # "Ada"
        resolve("${missing}", {})                     # "${missing}"
    """
    if not template:
        return ""
    if not isinstance(template, str):
        return render_value(template)

    whole = WHOLE_VALUE_PATTERN.match(template.strip())
    if whole:
        value = lookup(whole.group(1), variables, default=_MISSING)
        if value is not _MISSING:
            return render_value(value)

    def replace(match: re.Match) -> str:
        name = match.group(2) if match.group(2) is not None else match.group(3)
        value = lookup(name, variables, default=_MISSING)
        if value is _MISSING:
            return match.group(0)
        return render_value(value)

    return EMBEDDED_PATTERN.sub(replace, template)


def resolve_value(expression: Any, variables: Mapping[str, Any]) -> Any:
    """
    Resolve an expression to a raw value.

    A whole-value reference yields the variable's value untouched (lists stay
    lists); anything else is resolved as a text template.
    """
    if not isinstance(expression, str):
        return expression

    stripped = expression.strip()
    whole = WHOLE_VALUE_PATTERN.match(stripped)
    if whole is None:
        # ${name} / $(name) alone also address a whole value
        embedded = EMBEDDED_PATTERN.fullmatch(stripped)
        if embedded:
            name = embedded.group(2) if embedded.group(2) is not None else embedded.group(3)
            value = lookup(name, variables, default=_MISSING)
            if value is not _MISSING:
                return value
        return resolve(expression, variables)

    value = lookup(whole.group(1), variables, default=_MISSING)
    if value is _MISSING:
        return expression
    return value


def find_references(template: str) -> list[str]:
    """List the variable names referenced by a template, in order."""
    if not template:
        return []
    whole = WHOLE_VALUE_PATTERN.match(template.strip())
    if whole:
        return [whole.group(1)]
    names = []
    for match in EMBEDDED_PATTERN.finditer(template):
        name = match.group(2) if match.group(2) is not None else match.group(3)
        if name not in names:
            names.append(name)
    return names


__all__ = ["lookup", "render_value", "resolve", "resolve_value", "find_references"]
