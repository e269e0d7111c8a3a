"""Starter documents offered by "New File -> From Template"."""
from typing import Dict

from boardide.errors import InvalidArgument

DEFAULT_TEMPLATE = "empty"

TEMPLATES: Dict[str, str] = {
    "empty": "",
    "hello-board": (
        "const board = new Board({ width: 400, height: 300 });\n"
        "\n"
        "board.text('Hello, board!', { x: 20, y: 40 });\n"
        "board.render();\n"
    ),
    "animation": (
        "const board = new Board({ width: 400, height: 300 });\n"
        "let x = 0;\n"
        "\n"
        "board.onFrame(() => {\n"
        "  board.clear();\n"
        "  board.circle({ x: x, y: 150, r: 20 });\n"
        "  x = (x + 2) % 400;\n"
        "});\n"
        "board.start();\n"
    ),
}


def get_template(name: str) -> str:
    try:
        return TEMPLATES[name]
    except KeyError:
        raise InvalidArgument(f"Unknown template {name!r}. Available: {', '.join(sorted(TEMPLATES))}") from None
