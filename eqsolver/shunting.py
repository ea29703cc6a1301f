"""Shunting-yard expression parser and postfix evaluator.

Turns text such as ``"2 * sin(x) ^ 2 - 1"`` into an :class:`Expression`:
a postfix token list built once and evaluated as many times as needed
against a :class:`~eqsolver.context.Context`.

Grammar notes
-------------
- Operators, loosest first: ``+ -``, ``* /``, unary ``-``, ``^``.
  ``^`` (also written ``**``) is right-associative; ``-2^2`` is ``-4``.
- Function calls bind tightest and must use parentheses: ``log(8, 2)``.
- Constants from the context are inlined; any other identifier that is not
  a function becomes a variable reference resolved at evaluation time.
- There is no implicit multiplication: ``2x`` is rejected, write ``2*x``.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, NamedTuple, Optional

from eqsolver.context import Context
from eqsolver.errors import EquationSolverError, EvalError, ParseError


class TokenKind(Enum):
    NUM = "num"
    VAR = "var"
    OP = "op"
    NEG = "neg"
    FUNC = "func"


class Token(NamedTuple):
    kind: TokenKind
    value: object
    position: int


# ── Tokenizer ───────────────────────────────────────────────────────────

_LEXEME_RE = re.compile(
    r"\s*(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>\*\*|[+\-*/^])"
    r"|(?P<lparen>\()"
    r"|(?P<rparen>\))"
    r"|(?P<comma>,)"
    r")"
)


class _Lexeme(NamedTuple):
    kind: str
    text: str
    position: int


def _tokenize(text: str, offset: int = 0) -> Iterator[_Lexeme]:
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        m = _LEXEME_RE.match(text, pos)
        if m is None or m.lastgroup is None:
            start = pos + (len(text[pos:]) - len(text[pos:].lstrip()))
            raise ParseError("Invalid character", text[start], start + offset)
        yield _Lexeme(m.lastgroup, m.group(m.lastgroup), m.start(m.lastgroup) + offset)
        pos = m.end()


# ── Operators ───────────────────────────────────────────────────────────

_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2, "neg": 3, "^": 4}
_RIGHT_ASSOC = {"^"}


def _prec(tok: Token) -> int:
    return _PRECEDENCE["neg" if tok.kind is TokenKind.NEG else tok.value]


@dataclass
class _Paren:
    """An open parenthesis on the operator stack; ``func`` is set for calls."""

    position: int
    func: Optional[str] = None
    func_position: int = 0
    args: int = 0


def parse(text: str, context: Context, offset: int = 0) -> "Expression":
    """Parse *text* into an :class:`Expression`.

    Raises :class:`ParseError` for anything that is not a well-formed
    expression, including calls to functions missing from *context* and
    calls with the wrong number of arguments. *offset* is added to every
    reported position (used when *text* is one side of an equation).
    """
    lexemes = list(_tokenize(text, offset))
    if not lexemes:
        raise ParseError("Empty expression", position=offset)

    output: list[Token] = []
    stack: list = []
    expect_operand = True
    prev: Optional[_Lexeme] = None

    def pop_until_paren() -> Optional[_Paren]:
        while stack:
            top = stack[-1]
            if isinstance(top, _Paren):
                return top
            output.append(stack.pop())
        return None

    i = 0
    while i < len(lexemes):
        lex = lexemes[i]

        if lex.kind == "number":
            if not expect_operand:
                raise ParseError("Missing operator before number", lex.text, lex.position)
            output.append(Token(TokenKind.NUM, float(lex.text), lex.position))
            expect_operand = False

        elif lex.kind == "name":
            if not expect_operand:
                raise ParseError("Missing operator before name", lex.text, lex.position)
            name = lex.text
            nxt = lexemes[i + 1] if i + 1 < len(lexemes) else None
            if nxt is not None and nxt.kind == "lparen":
                if name not in context.functions:
                    raise ParseError("Unknown function", name, lex.position)
                stack.append(_Paren(nxt.position, func=name, func_position=lex.position))
                prev = nxt
                i += 2
                continue
            if name in context.functions:
                raise ParseError("Function must be called with parentheses", name, lex.position)
            if name in context.constants:
                output.append(Token(TokenKind.NUM, context.constants[name], lex.position))
            else:
                output.append(Token(TokenKind.VAR, name, lex.position))
            expect_operand = False

        elif lex.kind == "lparen":
            if not expect_operand:
                raise ParseError("Missing operator before '('", lex.text, lex.position)
            stack.append(_Paren(lex.position))

        elif lex.kind == "rparen":
            paren = pop_until_paren()
            if paren is None:
                raise ParseError("Unmatched ')'", lex.text, lex.position)
            if expect_operand:
                # only f() may close right after its '('
                if not (paren.func and prev is not None and prev.kind == "lparen"):
                    raise ParseError("Missing operand before ')'", lex.text, lex.position)
            else:
                paren.args += 1
            stack.pop()
            if paren.func:
                arity = context.functions[paren.func].arity
                if paren.args != arity:
                    raise ParseError(
                        f"Function '{paren.func}' takes {arity} argument(s) "
                        f"but {paren.args} were given",
                        paren.func, paren.func_position,
                    )
                output.append(Token(TokenKind.FUNC, (paren.func, paren.args),
                                    paren.func_position))
            expect_operand = False

        elif lex.kind == "comma":
            if expect_operand:
                raise ParseError("Missing operand before ','", lex.text, lex.position)
            paren = pop_until_paren()
            if paren is None or paren.func is None:
                raise ParseError("Misplaced ','", lex.text, lex.position)
            paren.args += 1
            expect_operand = True

        else:  # operator
            symbol = "^" if lex.text == "**" else lex.text
            if expect_operand:
                if symbol == "-":
                    stack.append(Token(TokenKind.NEG, "-", lex.position))
                elif symbol != "+":
                    raise ParseError("Missing operand before operator", lex.text, lex.position)
            else:
                op = Token(TokenKind.OP, symbol, lex.position)
                while stack and not isinstance(stack[-1], _Paren):
                    top = stack[-1]
                    if _prec(top) > _prec(op) or (
                            _prec(top) == _prec(op) and symbol not in _RIGHT_ASSOC):
                        output.append(stack.pop())
                    else:
                        break
                stack.append(op)
                expect_operand = True

        prev = lex
        i += 1

    if expect_operand:
        raise ParseError("Unexpected end of expression", position=offset + len(text))

    while stack:
        top = stack.pop()
        if isinstance(top, _Paren):
            raise ParseError("Unmatched '('", "(", top.position)
        output.append(top)

    return Expression(output, text)


# ── Evaluation ──────────────────────────────────────────────────────────

def _call(func, args, label: str) -> float:
    try:
        return func(*args)
    except EquationSolverError:
        raise
    except ZeroDivisionError:
        raise EvalError(f"Division by zero in {label}.")
    except OverflowError:
        raise EvalError(f"Numeric overflow in {label}.")
    except (ValueError, TypeError) as e:
        raise EvalError(f"Math domain error in {label}: {e}")


def _binary(symbol: str, a: float, b: float) -> float:
    if symbol == "+":
        return a + b
    if symbol == "-":
        return a - b
    if symbol == "*":
        return a * b
    if symbol == "/":
        if b == 0:
            raise EvalError(f"Division by zero: {a} / {b}.")
        return a / b
    return _call(math.pow, (a, b), f"{a} ^ {b}")


class Expression:
    """A parsed, reusable expression in postfix order."""

    def __init__(self, tokens: list, text: str = ""):
        self.tokens = list(tokens)
        self.text = text

    def __repr__(self):
        return f"Expression({self.text!r})"

    def __iter__(self):
        return iter(self.tokens)

    def __len__(self):
        return len(self.tokens)

    def variables(self) -> set:
        """Names of every variable referenced, found without evaluating."""
        return {tok.value for tok in self.tokens if tok.kind is TokenKind.VAR}

    def evaluate(self, context: Context, values: Optional[dict] = None) -> float:
        """Evaluate against *context*; names in *values* shadow context variables."""
        stack: list[float] = []
        for tok in self.tokens:
            kind = tok.kind
            if kind is TokenKind.NUM:
                stack.append(tok.value)
            elif kind is TokenKind.VAR:
                if values is not None and tok.value in values:
                    stack.append(float(values[tok.value]))
                elif tok.value in context.variables:
                    stack.append(context.variables[tok.value].value)
                else:
                    raise EvalError(f"Unbound variable '{tok.value}'.")
            elif kind is TokenKind.NEG:
                stack.append(-stack.pop())
            elif kind is TokenKind.OP:
                b = stack.pop()
                a = stack.pop()
                stack.append(_binary(tok.value, a, b))
            else:
                name, argc = tok.value
                fdef = context.functions.get(name)
                if fdef is None:
                    raise EvalError(f"Unknown function '{name}'.")
                if fdef.arity != argc:
                    raise EvalError(
                        f"Function '{name}' takes {fdef.arity} argument(s) "
                        f"but {argc} were given."
                    )
                args = stack[len(stack) - argc:]
                del stack[len(stack) - argc:]
                stack.append(float(_call(fdef.func, args, f"{name}()")))

        if len(stack) != 1:
            raise EvalError(f"Malformed expression: '{self.text}'.")
        result = stack[0]
        if not math.isfinite(result):
            raise EvalError(f"Expression '{self.text}' produced a non-finite result.")
        return result
