"""Boolean condition expressions for ``condition`` steps.

Expressions are first passed through the template resolver and then parsed
by a small recursive-descent parser. Supported syntax::

    expr       := and ('||' and)*
    and        := not ('&&' not)*
    not        := '!' not | comparison
    comparison := operand (('=='|'!='|'==='|'!=='|'<'|'<='|'>'|'>=') operand)?
    operand    := number | quoted string | true | false | null | word | '(' expr ')'

A bare word is read as a string, so ``${status} == active`` compares the
substituted status with the string ``"active"``. Nothing is ever executed
as code.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from .errors import ConditionError
from .templating import resolve

logger = logging.getLogger(__name__)

_DELIMITERS = r"""\s()<>=!&|'\""""

_TOKEN = re.compile(
    rf"""
    \s*(?:
        (?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?(?![^{_DELIMITERS}]))
      | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||<|>|!|\(|\))
      | (?P<placeholder>\$\{{[^}}]*\}})
      | (?P<word>[^{_DELIMITERS}]+)
    )
    """,
    re.VERBOSE,
)

_KEYWORDS = {"true": True, "false": False, "null": None, "undefined": None}

_COMPARISONS = {"==", "!=", "===", "!==", "<", "<=", ">", ">="}

MAX_NESTING = 64


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    value: Any = None


def tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    length = len(expression)
    while pos < length:
        if expression[pos:].strip() == "":
            break
        match = _TOKEN.match(expression, pos)
        if match is None or match.end() == pos:
            raise ConditionError(
                f"unexpected character {expression[pos:].lstrip()[:1]!r} in condition"
            )
        pos = match.end()
        kind = match.lastgroup
        text = match.group(kind)
        if kind == "number":
            tokens.append(Token("literal", text, float(text)))
        elif kind == "string":
            tokens.append(Token("literal", text, re.sub(r"\\(.)", r"\1", text[1:-1])))
        elif kind == "word":
            tokens.append(Token("literal", text, _KEYWORDS.get(text, text)))
        elif kind == "placeholder":
            raise ConditionError(f"unresolved placeholder {text}")
        else:
            tokens.append(Token("op", text))
    return tokens


# Nodes are plain tuples: ("lit", value), ("not", node), ("and", l, r),
# ("or", l, r), ("cmp", op, l, r).
Node = Tuple[Any, ...]


class _Parser:
    def __init__(self, tokens: List[Token]) -> None:
        self._tokens = tokens
        self._pos = 0
        self._depth = 0

    def _enter(self) -> None:
        self._depth += 1
        if self._depth > MAX_NESTING:
            raise ConditionError("condition nested too deeply")

    def _peek(self) -> Optional[Token]:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _accept(self, *ops: str) -> Optional[str]:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text in ops:
            self._pos += 1
            return token.text
        return None

    def parse(self) -> Node:
        if not self._tokens:
            raise ConditionError("empty condition")
        node = self._or()
        token = self._peek()
        if token is not None:
            raise ConditionError(f"unexpected token {token.text!r}")
        return node

    def _or(self) -> Node:
        node = self._and()
        while self._accept("||"):
            node = ("or", node, self._and())
        return node

    def _and(self) -> Node:
        node = self._not()
        while self._accept("&&"):
            node = ("and", node, self._not())
        return node

    def _not(self) -> Node:
        if self._accept("!"):
            self._enter()
            node = ("not", self._not())
            self._depth -= 1
            return node
        return self._comparison()

    def _comparison(self) -> Node:
        left = self._operand()
        op = self._accept(*_COMPARISONS)
        if op is None:
            return left
        return ("cmp", op, left, self._operand())

    def _operand(self) -> Node:
        token = self._peek()
        if token is None:
            raise ConditionError("condition ended unexpectedly")
        if token.kind == "literal":
            self._pos += 1
            return ("lit", token.value)
        if self._accept("("):
            self._enter()
            node = self._or()
            if not self._accept(")"):
                raise ConditionError("missing closing parenthesis")
            self._depth -= 1
            return node
        raise ConditionError(f"unexpected token {token.text!r}")


def parse(expression: str) -> Node:
    """Parse an already-substituted expression into a syntax tree."""
    return _Parser(tokenize(expression)).parse()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _numeric_pair(left: Any, right: Any) -> Optional[Tuple[float, float]]:
    if _is_number(left) and _is_number(right):
        return float(left), float(right)
    try:
        if _is_number(left) and isinstance(right, str):
            return float(left), float(right)
        if isinstance(left, str) and _is_number(right):
            return float(left), float(right)
    except ValueError:
        return None
    return None


def _truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return bool(value)


def _compare(op: str, left: Any, right: Any) -> bool:
    numbers = _numeric_pair(left, right)
    if op in ("==", "==="):
        return numbers[0] == numbers[1] if numbers else left == right
    if op in ("!=", "!=="):
        return numbers[0] != numbers[1] if numbers else left != right
    if numbers:
        left, right = numbers
    elif not (isinstance(left, str) and isinstance(right, str)):
        raise ConditionError(
            f"cannot compare {type(left).__name__} and {type(right).__name__} with {op}"
        )
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def _value(node: Node) -> Any:
    tag = node[0]
    if tag == "lit":
        return node[1]
    if tag == "not":
        return not _truthy(_value(node[1]))
    if tag == "and":
        return _truthy(_value(node[1])) and _truthy(_value(node[2]))
    if tag == "or":
        return _truthy(_value(node[1])) or _truthy(_value(node[2]))
    return _compare(node[1], _value(node[2]), _value(node[3]))


def evaluate_strict(expression: str, data: Mapping[str, Any]) -> bool:
    """Evaluate ``expression`` against ``data``; raise ``ConditionError`` on bad input."""
    try:
        return _truthy(_value(parse(resolve(expression, data))))
    except RecursionError:
        # Long flat chains of && or || build trees too deep to walk.
        raise ConditionError("condition is too complex to evaluate") from None


def evaluate(expression: str, data: Mapping[str, Any]) -> bool:
    """Evaluate ``expression``, treating any evaluation error as ``False``.

    Errors are logged as warnings so a run silently routed down the false
    branch can be told apart from a genuine ``False`` result.
    """
    try:
        return evaluate_strict(expression, data)
    except ConditionError as exc:
        logger.warning(
            f"Condition {expression!r} could not be evaluated ({exc}); using false"
        )
        return False
