"""
Transforms the raw parser AST into KELP values using kelp_datatypes.
"""

import math

from kelp.kelp_datatypes import Symbol, List, text_to_int
from kelp.kelp_errors import ParseFailure

_UNESCAPES = {
    "\\": "\\",
    '"': '"',
    "n": "\n",
    "t": "\t",
    "r": "\r",
}

_TAGS = ("list", "quoted", "string", "boolean", "number", "symbol")


class KelpTransformer:
    def _attach_loc(self, obj, node):
        line = node.get('line'); col = node.get('col')
        if line is not None and col is not None:
            obj.loc = {'line': line, 'col': col, 'tag': node.get('tag'), 'text': node.get('text')}
        return obj

    def transform(self, node: object) -> list:
        """Returns the values read from a parse tree, in source order."""
        return list(self._collect(node))

    def _collect(self, node):
        # Lists of nodes, promoted sequences and untagged wrappers are
        # flattened; only datum nodes produce values.
        if isinstance(node, list):
            for item in node:
                yield from self._collect(item)
            return
        if not isinstance(node, dict):
            return
        tag = node.get('tag')
        if tag in _TAGS:
            yield self._transform_datum(tag, node)
            return
        if 'children' in node:
            yield from self._collect(node['children'])
        elif 'tag' not in node:
            # Named-children dicts
            for value in node.values():
                yield from self._collect(value)

    def _transform_datum(self, tag: str, node: dict):
        children = node.get('children', [])
        text = node.get('text')
        match tag:
            case 'list':
                return self._attach_loc(List(self._collect(children)), node)
            case 'quoted':
                items = list(self._collect(children))
                if len(items) != 1:
                    raise ParseFailure("quote must be followed by exactly one datum", node.get('line'), node.get('col'))
                return self._attach_loc(List([Symbol("quote"), items[0]]), node)
            case 'string':
                return self._unescape(text, node)
            case 'boolean':
                return text == '#t'
            case 'number':
                return self._number(text, node)
            case 'symbol':
                return self._attach_loc(Symbol(text), node)

    def _number(self, text: str, node: dict):
        try:
            if any(ch in text for ch in '.eE'):
                value = float(text)
                if not math.isfinite(value):
                    raise ParseFailure(f"number literal out of range: {text[:40]}", node.get('line'), node.get('col'))
                return value
            return text_to_int(text)
        except ValueError as e:
            raise ParseFailure(f"bad number literal: {e}", node.get('line'), node.get('col')) from e

    def _unescape(self, token: str, node: dict) -> str:
        body = token[1:-1]
        out = []
        i = 0
        while i < len(body):
            ch = body[i]
            if ch == "\\":
                nxt = body[i + 1] if i + 1 < len(body) else ""
                if nxt not in _UNESCAPES:
                    raise ParseFailure(f"unknown escape sequence '\\{nxt}' in string", node.get('line'), node.get('col'))
                out.append(_UNESCAPES[nxt])
                i += 2
                continue
            out.append(ch)
            i += 1
        return "".join(out)
