"""
Boolean tag expressions used to select scenarios.

Grammar (lowest to highest precedence)::

    expression := and_expr ("or" and_expr)*
    and_expr   := not_expr ("and" not_expr)*
    not_expr   := "not" not_expr | primary
    primary    := TAG | "(" expression ")"

Tags are compared literally, including their leading ``@``.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import AbstractSet, Iterable, List, Optional

from ..core.exceptions import InvalidTagExpressionError
from .model import PlannedScenario

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"\(|\)|[^\s()]+")
OPERATORS = {"and", "or", "not"}


class Node(ABC):
    """Node of a parsed tag expression"""

    @abstractmethod
    def evaluate(self, tags: AbstractSet[str]) -> bool:
        pass


class TagLiteral(Node):
    def __init__(self, tag: str):
        self.tag = tag

    def evaluate(self, tags: AbstractSet[str]) -> bool:
        return self.tag in tags

    def __str__(self) -> str:
        return self.tag


class Not(Node):
    def __init__(self, operand: Node):
        self.operand = operand

    def evaluate(self, tags: AbstractSet[str]) -> bool:
        return not self.operand.evaluate(tags)

    def __str__(self) -> str:
        return f"not ({self.operand})"


class And(Node):
    def __init__(self, left: Node, right: Node):
        self.left = left
        self.right = right

    def evaluate(self, tags: AbstractSet[str]) -> bool:
        return self.left.evaluate(tags) and self.right.evaluate(tags)

    def __str__(self) -> str:
        return f"({self.left} and {self.right})"


class Or(Node):
    def __init__(self, left: Node, right: Node):
        self.left = left
        self.right = right

    def evaluate(self, tags: AbstractSet[str]) -> bool:
        return self.left.evaluate(tags) or self.right.evaluate(tags)

    def __str__(self) -> str:
        return f"({self.left} or {self.right})"


class TrueNode(Node):
    """Expression used when no tag expression is supplied"""

    def evaluate(self, tags: AbstractSet[str]) -> bool:
        return True

    def __str__(self) -> str:
        return "true"


class TagExpression:
    """A parsed tag expression"""

    def __init__(self, source: str, root: Node):
        self.source = source
        self.root = root

    @classmethod
    def parse(cls, expression: Optional[str]) -> "TagExpression":
        """
        Parse a tag expression.

        Args:
            expression: Expression text; None or blank selects everything

        Raises:
            InvalidTagExpressionError: if the expression is malformed
        """
        if expression is None or not expression.strip():
            return cls(expression or "", TrueNode())
        return cls(expression, _Parser(expression).parse())

    def matches(self, tags: Iterable[str]) -> bool:
        return self.root.evaluate(frozenset(tags))

    def __str__(self) -> str:
        return str(self.root)


class _Parser:
    """Recursive-descent parser over the token list"""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = self._tokenize(expression)
        self.position = 0

    def _tokenize(self, expression: str) -> List[str]:
        return TOKEN_PATTERN.findall(expression)

    def _peek(self) -> Optional[str]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def _advance(self) -> str:
        token = self.tokens[self.position]
        self.position += 1
        return token

    def _error(self, reason: str) -> InvalidTagExpressionError:
        return InvalidTagExpressionError(self.expression, reason)

    def parse(self) -> Node:
        node = self._parse_or()
        if self._peek() is not None:
            raise self._error(f"unexpected token {self._peek()!r} at position {self.position + 1}")
        return node

    def _parse_or(self) -> Node:
        node = self._parse_and()
        while self._peek() == "or":
            self._advance()
            node = Or(node, self._parse_and())
        return node

    def _parse_and(self) -> Node:
        node = self._parse_not()
        while self._peek() == "and":
            self._advance()
            node = And(node, self._parse_not())
        return node

    def _parse_not(self) -> Node:
        if self._peek() == "not":
            self._advance()
            return Not(self._parse_not())
        return self._parse_primary()

    def _parse_primary(self) -> Node:
        token = self._peek()
        if token is None:
            raise self._error("unexpected end of expression")

        if token == "(":
            self._advance()
            node = self._parse_or()
            if self._peek() != ")":
                raise self._error("missing closing parenthesis")
            self._advance()
            return node

        if token == ")":
            raise self._error("unbalanced closing parenthesis")
        if token in OPERATORS:
            raise self._error(f"operator {token!r} is missing an operand")
        if not token.startswith("@") or len(token) == 1:
            raise self._error(f"tag {token!r} must start with '@'")

        self._advance()
        return TagLiteral(token)


def filter_scenarios(scenarios: List[PlannedScenario], expression: Optional[str]) -> List[PlannedScenario]:
    """
    Select the concrete scenarios whose effective tags satisfy the expression.

    Must be applied after outline expansion so Examples tags are visible.
    Backgrounds travel with their scenarios and are never filtered on their own.
    """
    parsed = TagExpression.parse(expression)
    selected = [planned for planned in scenarios if parsed.matches(planned.tags)]

    if expression:
        logger.info(f"Tag expression '{expression}' selected {len(selected)} of {len(scenarios)} scenarios")
    return selected
