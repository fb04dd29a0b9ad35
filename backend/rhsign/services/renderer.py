import re
from collections.abc import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][\w.]*)\s*\}\}")


def render(markup: str, variables: Mapping[str, str]) -> str:
    """Substitui cada ``{{ nome }}`` conhecido pelo valor resolvido.

    Placeholders cujo nome não está no mapa permanecem intactos.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, markup or "")


def placeholders(markup: str) -> list[str]:
    """Nomes de placeholders presentes no conteúdo, na ordem em que aparecem."""
    seen: list[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(markup or ""):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen
