"""Expansion of ``{{ reference }}`` placeholders in workflow values."""

from __future__ import annotations

import re
from typing import Dict, Optional

_PLACEHOLDER = re.compile(r"\{([^{}]*)\}")
_STEP_WORDS = re.compile(r"steps|outputs")
_STEP_REPLACEMENTS = {"steps": "tasks", "outputs": "results"}


class VariablesResolver:
    """Maps reference names to values and expands them inside strings."""

    def __init__(self, references: Optional[Dict[str, str]] = None) -> None:
        self.references: Dict[str, str] = dict(references or {})

    def clone(self) -> "VariablesResolver":
        """Return an independent copy of the resolver."""
        return VariablesResolver(self.references)

    def add_reference(self, ref: str, value: str) -> None:
        """Set the value a reference resolves to."""
        self.references[ref] = value

    def resolve(self, value: str) -> str:
        """Expand every ``{{ ref }}`` in the value.

        A value with no placeholder that is itself a reference name resolves to
        its reference. Unknown ``steps.`` references become Tekton task result
        expressions; other unknown references expand to an empty string.
        """
        matches = _PLACEHOLDER.findall(value)
        if not matches and value in self.references:
            return self.references[value]
        for match in matches:
            to_resolve = match.strip()
            resolved = self.references.get(to_resolve, "")
            if to_resolve.startswith("steps."):
                if to_resolve in self.references:
                    resolved = self.resolve(resolved)
                else:
                    translated = _STEP_WORDS.sub(
                        lambda m: _STEP_REPLACEMENTS[m.group(0)], to_resolve
                    )
                    resolved = f"$({translated})"
            value = value.replace(f"{{{{ {to_resolve} }}}}", resolved)
        return value