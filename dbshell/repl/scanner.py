# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Balance detection for shell input.

Decides whether the text typed so far forms a statement that can be handed
to the runtime, or whether the shell should keep reading lines. The scan is
purely lexical: it tracks brace and paren depth, skips string literals and
``//`` comments, and notices a trailing binary operator. It knows nothing
about the statement grammar.

Unmatched closers make the text "complete" straight away so the runtime can
report the real syntax error. Unmatched openers keep the shell reading.
"""

OP_SYMBOLS = frozenset("~!%^&*-+=|:,<>/?.")

QUOTES = ("'", '"')


def is_use_command(code: str) -> bool:
    """True for ``use <name>`` directives, which are never balanced.

    Database names may contain characters the scanner would treat as
    unbalanced, so these lines bypass it.
    """
    return code.partition(" ")[0] == "use"


def _skip_string(code: str, i: int) -> int:
    """Return the index of the quote closing the literal opened at ``i``.

    Returns ``len(code)`` when the literal is never closed.
    """
    quote = code[i]
    n = len(code)
    i += 1
    while i < n and code[i] != quote:
        if code[i] == "\\":
            i += 1
        i += 1
    return min(i, n)


def is_complete(code: str) -> bool:
    """Return True if ``code`` is a syntactically closed unit."""
    if is_use_command(code):
        return True

    brackets = 0
    parens = 0
    dangling_op = False

    n = len(code)
    i = 0
    while i < n:
        c = code[i]

        if c == "/":
            if i + 1 < n and code[i + 1] == "/":
                # line comment: resume after the newline
                while i < n and code[i] != "\n":
                    i += 1
            i += 1
            continue
        elif c == "{":
            brackets += 1
        elif c == "}":
            if brackets <= 0:
                return True
            brackets -= 1
        elif c == "(":
            parens += 1
        elif c == ")":
            if parens <= 0:
                return True
            parens -= 1
        elif c in QUOTES:
            i = _skip_string(code, i)
        elif c == "\\":
            if i + 1 < n and code[i + 1] == "/":
                i += 1
        elif c in "+-":
            if i + 1 < n and code[i + 1] == c:
                # ++ and -- are unary, never a dangling operator
                i += 2
                continue

        if i >= n:
            dangling_op = False
            break

        c = code[i]
        if c in OP_SYMBOLS:
            dangling_op = True
        elif not c.isspace():
            dangling_op = False
        i += 1

    return brackets == 0 and parens == 0 and not dangling_op
