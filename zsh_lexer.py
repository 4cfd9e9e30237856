# ============================================================================
# ZSH LEXER
# ============================================================================

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, bygroups, include
from pygments.token import (
    Comment,
    Error,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
)
from rich.style import Style
from rich.syntax import Syntax, SyntaxTheme

# Custom token types so Rich and Pygments know about them
Name.Argument = Token.Name.Argument
Name.Variable.Magic = Token.Name.Variable.Magic


class ZshLexer(RegexLexer):
    """
    A small stateful lexer for single zsh command lines as they appear in history.
    Use like so:
    ```python
    console.print(highlight_command("git log --oneline | head -n 5"))
    ```
    """

    name = "Z-shell history"
    aliases = ["zsh-history"]
    filenames = [".zsh_history"]

    flags = re.MULTILINE

    tokens = {
        "_expansions": [
            (r"\\[\s\S]", String.Escape),
            # Arithmetic must be checked before command substitution
            (r"\$\(\(", Operator, "arithmetic"),
            (r"\$\(", String.Interpol, "substitution"),
            (r"`[^`]*`", String.Backtick),
            (r"\$\{[^}]*\}", Name.Variable.Magic),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r"'[^']*'", String.Single),
            (r'"', String.Double, "double_quoted"),
        ],
        "root": [
            (r"\s+", Text),
            (r"#.*$", Comment.Single),
            (r"&&|\|\||\|&?|;;?|&", Operator),
            (r"(<<<|<<-?|>>?|<&|>&)|[0-9]*[<>]", Operator),
            (r"[()\[\]{}]", Punctuation),
            (
                r"\b(if|fi|else|elif|then|for|in|while|until|do|done|case|esac|function|select|repeat)\b",
                Keyword.Reserved,
            ),
            # Precommand modifiers don't end the command position
            (r"\b(sudo|noglob|nocorrect|command|builtin|exec|time|nohup|env)\b", Keyword.Pseudo),
            (r"([a-zA-Z_][a-zA-Z0-9_]*)(=)", bygroups(Name.Variable, Operator)),
            (
                r"\b(echo|printf|print|cd|pwd|export|unset|source|exit|return|alias|eval|set|setopt)\b",
                Name.Builtin,
                "arguments",
            ),
            include("_expansions"),
            (r"[a-zA-Z0-9_.~/+:@%-]+", Name.Function, "arguments"),
            (r".", Text),
        ],
        "arguments": [
            (r"\n", Text, "#pop"),
            (r"(?=&&|\|\||[|;&)])", Text, "#pop"),
            (r"[ \t]+", Text),
            (r"#.*$", Comment.Single),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"(<<<|<<-?|>>?|<&|>&)|[0-9]*[<>]", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("_expansions"),
            (r"[*?]", Operator),
            (r"[^=\s;&|()<>'\"`$\\*?]+", Name.Argument),
            (r".", Text),
        ],
        "double_quoted": [
            (r'"', String.Double, "#pop"),
            (r'\\(["$`\\])', String.Escape),
            (r"\$\(", String.Interpol, "substitution"),
            (r"\$\{[^}]*\}|\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r'[^"\\$]+', String.Double),
            (r"[\\$]", String.Double),
        ],
        "substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
        "arithmetic": [
            (r"\)\)", Operator, "#pop"),
            (r"[-+*/%&|<>!=^]+", Operator.Word),
            (r"\b[0-9]+\b", Number.Integer),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"\s+", Text),
            (r".", Text),
        ],
    }


class MonokaiProTheme(SyntaxTheme):
    """Rich syntax-highlighting theme that matches Monokai Pro, on the terminal's own background."""

    _RED = "#ff6188"
    _GREEN = "#a9dc76"
    _YELLOW = "#ffd866"
    _ORANGE = "#fc9867"
    _PURPLE = "#ab9df2"
    _CYAN = "#78dce8"
    _WHITE = "#fcfcfa"
    _COMMENT_GRAY = "#727072"

    default_style = Style(color=_WHITE)

    styles = {
        Name.Function: Style(color=_GREEN, bold=True),  # git, curl
        Name.Attribute: Style(color=_ORANGE),  # --long, -l
        Name.Argument: Style(color=_PURPLE),  # a filename
        Name.Variable.Magic: Style(color=_PURPLE),  # ${PATH}
        Name.Variable: Style(color=_WHITE),
        Name.Builtin: Style(color=_CYAN, italic=True),
        Keyword: Style(color=_RED, bold=True),
        Keyword.Pseudo: Style(color=_RED, italic=True),  # sudo, noglob
        Number: Style(color=_CYAN),
        Text: Style(color=_WHITE),
        Comment: Style(color=_COMMENT_GRAY, italic=True),
        Operator: Style(color=_RED),
        Operator.Word: Style(color=_RED),
        Punctuation: Style(color=_WHITE),
        String: Style(color=_YELLOW),
        String.Escape: Style(color=_PURPLE),
        String.Interpol: Style(color=_PURPLE, bold=True),
        Error: Style(color=_RED, bold=True),
    }

    @classmethod
    def get_style_for_token(cls, t):
        # Walk up the token hierarchy, e.g. String.Single -> String
        while t not in cls.styles and t.parent is not None:
            t = t.parent
        return cls.styles.get(t, cls.default_style)

    @classmethod
    def get_background_style(cls):
        return Style()


def highlight_command(command: str) -> Syntax:
    """→ A rich renderable for a (possibly multi-line) history command"""
    return Syntax(
        command,
        ZshLexer(),
        theme=MonokaiProTheme(),
        line_numbers=False,
        word_wrap=True,
        background_color="default",
    )
