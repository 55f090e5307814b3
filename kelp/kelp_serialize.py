from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from koine import Parser

from kelp.kelp_errors import ParseFailure, TypeMismatch
from kelp.kelp_printer import Printer
from kelp.kelp_transformer import KelpTransformer

GRAMMAR_PATH = Path(__file__).parent / "grammar" / "kelp_grammar.yaml"


class Reader:
    """Reads KELP source text into values (grammar → koine AST → values)."""

    # The grammar is compiled once and shared by every Reader
    _parser: Optional[Parser] = None
    _transformer: Optional[KelpTransformer] = None

    def __init__(self):
        if Reader._parser is None:
            with GRAMMAR_PATH.open(encoding="utf-8") as f:
                Reader._parser = Parser(yaml.safe_load(f))
        if Reader._transformer is None:
            Reader._transformer = KelpTransformer()
        self.parser = Reader._parser
        self.transformer = Reader._transformer

    def read_all(self, text: str) -> list:
        if not isinstance(text, str):
            raise TypeMismatch("string", text)
        try:
            parse_out = self.parser.parse(text)
        except Exception as e:
            raise ParseFailure(f"parse failed: {e}") from e

        if isinstance(parse_out, dict) and 'status' in parse_out:
            if parse_out.get('status') != 'success':
                node = parse_out.get('error_node')
                node = node if isinstance(node, dict) else {}
                message = parse_out.get('error_message') or "parse failed"
                raise ParseFailure(str(message), node.get('line'), node.get('col'))
            ast_node = parse_out.get('ast')
            if ast_node is None:
                raise ParseFailure("missing AST in parser result")
        else:
            ast_node = parse_out
        try:
            return self.transformer.transform(ast_node)
        except ValueError as e:
            raise ParseFailure(f"cannot read value: {e}") from e


# --------------------------
# Public API
# --------------------------

def parse_program(text: str) -> list:
    """Reads every datum in `text` (program source)."""
    return Reader().read_all(text)


def parse(text: str) -> Any:
    """Reads exactly one datum from `text`; the read direction of the codec."""
    values = parse_program(text)
    if len(values) != 1:
        raise ParseFailure(f"expected exactly one datum, found {len(values)}")
    return values[0]


def show(value: Any) -> str:
    """Renders a serializable value; fails with TypeMismatch for anything else."""
    return Printer().pformat(value)


__all__ = [
    "Reader",
    "parse",
    "parse_program",
    "show",
]
