"""
Tokenizer and recursive descent parser for BMA update functions
"""

from collections import namedtuple
from fractions import Fraction

from .errors import ParseError, TypeMismatchError, UnknownVariableError
from .expression import (
    BOOLEAN,
    BOOLEAN_FUNCTIONS,
    COMPARISONS,
    NUMBER,
    Aggregate,
    BinaryOp,
    Conditional,
    Literal,
    UnaryOp,
    VariableRef,
)

Token = namedtuple("Token", ["kind", "text", "position"])

NUMBER_TOKEN = "number"
IDENT_TOKEN = "ident"
OPERATOR_TOKEN = "operator"
COMPARISON_TOKEN = "comparison"
OPEN_TOKEN = "("
CLOSE_TOKEN = ")"
COMMA_TOKEN = ","
END_TOKEN = "end"

UNARY_NAMES = ("abs", "ceil", "floor", "not")
AGGREGATE_NAMES = ("min", "max", "avg", "and", "or")

_TWO_CHAR_COMPARISONS = ("<=", ">=", "==", "!=")


def _is_identifier_start(char):
    return char.isalpha() or char == "_"


def _is_identifier_char(char):
    return char.isalnum() or char in "_-"


def tokenize(text):
    """
    Split a formula into tokens.

    Args:
        text: Formula text

    Returns:
        list: Tokens, terminated by an ``end`` token

    Raises:
        ParseError: On characters outside the grammar
    """
    tokens = []
    position = 0
    length = len(text)
    while position < length:
        char = text[position]
        if char.isspace():
            position += 1
        elif char.isdigit():
            start = position
            while position < length and text[position].isdigit():
                position += 1
            if position + 1 < length and text[position] == "." and text[position + 1].isdigit():
                position += 1
                while position < length and text[position].isdigit():
                    position += 1
            tokens.append(Token(NUMBER_TOKEN, text[start:position], start))
        elif _is_identifier_start(char):
            start = position
            while position < length and _is_identifier_char(text[position]):
                position += 1
            tokens.append(Token(IDENT_TOKEN, text[start:position], start))
        elif char in "+-*/":
            tokens.append(Token(OPERATOR_TOKEN, char, position))
            position += 1
        elif text[position:position + 2] in _TWO_CHAR_COMPARISONS:
            tokens.append(Token(COMPARISON_TOKEN, text[position:position + 2], position))
            position += 2
        elif char in "<>":
            tokens.append(Token(COMPARISON_TOKEN, char, position))
            position += 1
        elif char == "=":
            # BMA and SBML style single equals means equality
            tokens.append(Token(COMPARISON_TOKEN, "==", position))
            position += 1
        elif char in "(),":
            tokens.append(Token(char, char, position))
            position += 1
        else:
            raise ParseError(f"Unexpected `{char}`", position)
    tokens.append(Token(END_TOKEN, "", length))
    return tokens


class Parser:
    """
    Parser for a single update function.

    Args:
        text: Formula text
        catalogue: Optional mapping from variable id to display name. When
            given, every ``var(...)`` reference must resolve against it.
    """

    def __init__(self, text, catalogue=None):
        self.text = text
        self.catalogue = catalogue
        self.tokens = tokenize(text)
        self.index = 0

    @property
    def current(self):
        return self.tokens[self.index]

    def advance(self):
        token = self.tokens[self.index]
        if token.kind != END_TOKEN:
            self.index += 1
        return token

    def expect(self, kind):
        token = self.current
        if token.kind == kind:
            return self.advance()
        if token.kind == END_TOKEN:
            raise ParseError(f"Input ended while expecting `{kind}`", token.position)
        if token.kind == CLOSE_TOKEN:
            raise ParseError("Unexpected `)` (missing opening `(`)", token.position)
        raise ParseError(f"Unexpected `{token.text}`", token.position)

    def parse(self):
        if self.current.kind == END_TOKEN:
            raise ParseError("Expression is empty", 0)
        tree = self.comparison()
        token = self.current
        if token.kind == CLOSE_TOKEN:
            raise ParseError("Unexpected `)` (missing opening `(`)", token.position)
        if token.kind != END_TOKEN:
            raise ParseError(f"Unexpected `{token.text}`", token.position)
        _require(tree, NUMBER, 0, "The update function must produce a number")
        return tree

    def comparison(self):
        position = self.current.position
        left = self.additive()
        if self.current.kind != COMPARISON_TOKEN:
            return left
        op = self.advance().text
        right = self.additive()
        _require(left, NUMBER, position, f"`{op}` compares numbers")
        _require(right, NUMBER, position, f"`{op}` compares numbers")
        if self.current.kind == COMPARISON_TOKEN:
            raise ParseError("Comparisons cannot be chained", self.current.position)
        return BinaryOp(op, left, right)

    def additive(self):
        return self._binary_chain(self.term, "+-")

    def term(self):
        return self._binary_chain(self.unary, "*/")

    def _binary_chain(self, operand, operators):
        position = self.current.position
        left = operand()
        while self.current.kind == OPERATOR_TOKEN and self.current.text in operators:
            token = self.advance()
            if self.current.kind in (END_TOKEN, CLOSE_TOKEN, COMMA_TOKEN):
                raise ParseError(
                    f"Found nothing at the right-hand-side of operator `{token.text}`",
                    token.position,
                )
            right = operand()
            _require(left, NUMBER, position, f"`{token.text}` expects numbers")
            _require(right, NUMBER, token.position, f"`{token.text}` expects numbers")
            left = BinaryOp(token.text, left, right)
        return left

    def unary(self):
        token = self.current
        if token.kind == OPERATOR_TOKEN and token.text == "-":
            self.advance()
            operand = self.unary()
            _require(operand, NUMBER, token.position, "`-` expects a number")
            return UnaryOp("-", operand)
        if token.kind == OPERATOR_TOKEN:
            raise ParseError(
                f"Found nothing at the left-hand-side of operator `{token.text}`",
                token.position,
            )
        return self.atom()

    def atom(self):
        token = self.current
        if token.kind == NUMBER_TOKEN:
            self.advance()
            return Literal(Fraction(token.text))
        if token.kind == OPEN_TOKEN:
            self.advance()
            if self.current.kind == CLOSE_TOKEN:
                raise ParseError("Expression is empty", self.current.position)
            inner = self.comparison()
            self.expect(CLOSE_TOKEN)
            return inner
        if token.kind == IDENT_TOKEN:
            return self.call()
        if token.kind == END_TOKEN:
            raise ParseError("Input ended while expecting an operand", token.position)
        if token.kind == CLOSE_TOKEN:
            raise ParseError("Unexpected `)` (missing opening `(`)", token.position)
        raise ParseError(f"Unexpected `{token.text}`", token.position)

    def call(self):
        token = self.advance()
        name = token.text.lower()
        if name not in UNARY_NAMES + AGGREGATE_NAMES + ("var", "if"):
            raise ParseError(f"`{token.text}` is not a recognized function or variable", token.position)
        if self.current.kind != OPEN_TOKEN:
            raise ParseError(f"Function `{name}` must be followed by `(`", self.current.position)
        self.advance()
        if name == "var":
            return self.variable_reference()
        args = self.arguments()
        if name in UNARY_NAMES:
            if len(args) != 1:
                raise ParseError(
                    f"Function `{name}` expects exactly one argument; found `{len(args)}`",
                    token.position,
                )
            expected = BOOLEAN if name == "not" else NUMBER
            _require(args[0], expected, token.position, f"`{name}` expects a {expected}")
            return UnaryOp(name, args[0])
        if name == "if":
            if len(args) != 3:
                raise ParseError(
                    f"Function `if` expects exactly three arguments; found `{len(args)}`",
                    token.position,
                )
            _require(args[0], BOOLEAN, token.position, "`if` expects a boolean condition")
            _require(args[1], NUMBER, token.position, "`if` branches must be numbers")
            _require(args[2], NUMBER, token.position, "`if` branches must be numbers")
            return Conditional(*args)
        if not args:
            raise ParseError(f"Function `{name}` expects at least one argument", token.position)
        expected = BOOLEAN if name in BOOLEAN_FUNCTIONS else NUMBER
        for arg in args:
            _require(arg, expected, token.position, f"`{name}` expects {expected} arguments")
        return Aggregate(name, tuple(args))

    def arguments(self):
        args = []
        if self.current.kind == CLOSE_TOKEN:
            self.advance()
            return args
        while True:
            if self.current.kind in (COMMA_TOKEN, CLOSE_TOKEN):
                raise ParseError(f"Unexpected `{self.current.text}`", self.current.position)
            args.append(self.comparison())
            token = self.current
            if token.kind == COMMA_TOKEN:
                self.advance()
                continue
            self.expect(CLOSE_TOKEN)
            return args

    def variable_reference(self):
        token = self.current
        if token.kind not in (NUMBER_TOKEN, IDENT_TOKEN):
            if token.kind == END_TOKEN:
                raise ParseError("Input ended while expecting a variable identifier", token.position)
            raise ParseError(f"Unexpected `{token.text}`", token.position)
        self.advance()
        self.expect(CLOSE_TOKEN)
        return VariableRef(self.resolve(token))

    def resolve(self, token):
        text = token.text
        if token.kind == NUMBER_TOKEN and "." in text:
            raise ParseError(f"`{text}` is not a valid variable identifier", token.position)
        if self.catalogue is None:
            return int(text) if token.kind == NUMBER_TOKEN else text
        if token.kind == NUMBER_TOKEN and int(text) in self.catalogue:
            return int(text)
        if text in self.catalogue:
            return text
        matches = [var_id for var_id, name in self.catalogue.items() if name == text]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise ParseError(f"`{text}` resolves to multiple variables: {matches}", token.position)
        raise UnknownVariableError(f"`{text}` is not a known variable", token.position)


def _require(node, expected, position, message):
    if node.type != expected:
        raise TypeMismatchError(message, position)


def parse(text, catalogue=None):
    """
    Parse an update function into an expression tree.

    Args:
        text: Formula in BMA syntax, e.g. ``"max(var(1), 2) - var(B)"``
        catalogue: Optional mapping from variable id to name used to resolve
            and check ``var(...)`` references

    Returns:
        Expression: The parsed tree

    Raises:
        ParseError: Syntax errors, unknown variables and type mismatches
    """
    return Parser(text, catalogue).parse()
