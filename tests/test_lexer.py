# =============================================================================
# test_lexer.py - RPN Lexer Unit Tests
# =============================================================================
# Covers number literals (including negative ones), operators, keywords,
# whitespace handling, position tracking and error conditions.
# =============================================================================

import pytest
from rpnc.compiler.lexer import Lexer, Token, TokenType, tokenize
from rpnc.compiler.errors import LexError


# =============================================================================
# Helper Function
# =============================================================================

def lex(source: str) -> list[Token]:
    """Tokenize and drop the trailing EOF token."""
    return [t for t in tokenize(source) if t.type != TokenType.EOF]


def kinds(source: str) -> list[TokenType]:
    return [t.type for t in lex(source)]


# =============================================================================
# Basic Token Recognition Tests
# =============================================================================

class TestBasicTokens:
    """Test basic token recognition for simple inputs."""

    def test_empty_source(self):
        """Empty source should produce only EOF."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        """Whitespace of every kind is skipped."""
        tokens = tokenize("  \t\n \r\n ")
        assert [t.type for t in tokens] == [TokenType.EOF]

    def test_eof_is_always_last(self):
        tokens = tokenize("1 2 +")
        assert tokens[-1].type == TokenType.EOF
        assert sum(1 for t in tokens if t.type == TokenType.EOF) == 1

    def test_single_character_operators(self):
        assert kinds("+ - * / % ^ !") == [
            TokenType.PLUS,
            TokenType.MINUS,
            TokenType.ASTERISK,
            TokenType.SLASH,
            TokenType.MOD,
            TokenType.POWER,
            TokenType.FACTORIAL,
        ]

    def test_keywords(self):
        assert kinds("dup swap and xor") == [
            TokenType.DUP,
            TokenType.SWAP,
            TokenType.AND,
            TokenType.XOR,
        ]

    def test_operators_carry_no_literal(self):
        for token in lex("+ dup"):
            assert token.literal is None

    def test_full_expression(self):
        assert kinds("7 1 + 3 -") == [
            TokenType.NUMBER,
            TokenType.NUMBER,
            TokenType.PLUS,
            TokenType.NUMBER,
            TokenType.MINUS,
        ]

    def test_no_whitespace_needed_between_operators(self):
        assert kinds("1 2+3*") == [
            TokenType.NUMBER,
            TokenType.NUMBER,
            TokenType.PLUS,
            TokenType.NUMBER,
            TokenType.ASTERISK,
        ]


# =============================================================================
# Number Literal Tests
# =============================================================================

class TestNumbers:
    """Numbers keep their literal text verbatim."""

    def test_decimal_number(self):
        tokens = lex("123")
        assert tokens == [Token(TokenType.NUMBER, "123", 1, 1)]

    def test_literal_preserved_verbatim(self):
        """Leading zeros are not normalised by the lexer."""
        assert lex("007")[0].literal == "007"

    def test_negative_number(self):
        tokens = lex("-4")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].literal == "-4"

    def test_minus_before_space_is_operator(self):
        assert kinds("3 - 4") == [TokenType.NUMBER, TokenType.MINUS, TokenType.NUMBER]

    def test_trailing_minus_is_operator(self):
        tokens = lex("7 1 -")
        assert tokens[-1].type == TokenType.MINUS

    def test_minus_glued_to_digits_is_negative_literal(self):
        """Maximal munch: '1-2' is the number 1 followed by the number -2."""
        tokens = lex("1-2")
        assert [(t.type, t.literal) for t in tokens] == [
            (TokenType.NUMBER, "1"),
            (TokenType.NUMBER, "-2"),
        ]

    def test_number_followed_by_keyword(self):
        assert kinds("7dup") == [TokenType.NUMBER, TokenType.DUP]


# =============================================================================
# Position Tracking Tests
# =============================================================================

class TestPositions:

    def test_columns(self):
        tokens = tokenize("7 1 + 3 -")
        assert [(t.line, t.column) for t in tokens] == [
            (1, 1), (1, 3), (1, 5), (1, 7), (1, 9), (1, 10),
        ]

    def test_lines(self):
        tokens = lex("1\n  2\n+")
        assert [(t.line, t.column) for t in tokens] == [(1, 1), (2, 3), (3, 1)]

    def test_filename_recorded(self):
        tokens = list(Lexer("1 +", "sum.rpn").tokenize())
        assert all(t.filename == "sum.rpn" for t in tokens)
        assert str(tokens[1].location) == "sum.rpn:1:3"


# =============================================================================
# Token Value Semantics
# =============================================================================

class TestTokenEquality:

    def test_tokens_compare_by_value(self):
        assert Token(TokenType.PLUS) == Token(TokenType.PLUS)
        assert Token(TokenType.NUMBER, "1") != Token(TokenType.NUMBER, "2")

    def test_tokens_are_hashable(self):
        assert len({Token(TokenType.DUP), Token(TokenType.DUP)}) == 1

    def test_tokens_are_immutable(self):
        token = Token(TokenType.PLUS)
        with pytest.raises(AttributeError):
            token.type = TokenType.MINUS

    def test_tokenize_is_deterministic(self):
        source = "5 2 swap -\n-4 3 * dup xor"
        assert tokenize(source) == tokenize(source)

    def test_repr(self):
        assert repr(Token(TokenType.NUMBER, "7", 1, 1)) == "Token(NUMBER, '7', 1:1)"
        assert repr(Token(TokenType.PLUS, None, 1, 5)) == "Token(PLUS, 1:5)"


# =============================================================================
# Error Tests
# =============================================================================

class TestErrors:

    def test_invalid_character(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("1 2 &")
        error = exc_info.value
        assert error.char == "&"
        assert error.location.line == 1
        assert error.location.column == 5

    def test_error_message_has_caret(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("1 2 &")
        lines = str(exc_info.value).splitlines()
        assert lines[0] == "<input>:1:5: error: unexpected character '&' (0x26)"
        assert lines[1] == "    1 2 &"
        assert lines[2] == "        ^"
        assert lines[3].startswith("hint:")

    def test_keywords_are_case_sensitive(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("1 DUP")
        assert exc_info.value.char == "DUP"

    def test_unknown_word(self):
        with pytest.raises(LexError, match="unknown word 'foo'"):
            tokenize("1 foo +")

    def test_error_on_second_line(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("1 2 +\n3 ? -")
        error = exc_info.value
        assert (error.location.line, error.location.column) == (2, 3)
        assert error.source_line == "3 ? -"

    def test_lone_minus_sign_before_letter(self):
        """'-d' is MINUS followed by an unknown word, not a number."""
        with pytest.raises(LexError):
            tokenize("1 -d")

    @pytest.mark.parametrize("source,word", [
        ("1 dup2", "dup2"),
        ("1 2 swap-1", "swap-1"),
        ("1 x9y +", "x9y"),
    ])
    def test_digits_glued_to_word(self, source, word):
        """A number stuck to the end of a word makes the whole word unknown."""
        with pytest.raises(LexError, match=f"unknown word '{word}'") as exc_info:
            tokenize(source)
        assert exc_info.value.char == word

    def test_word_followed_by_operator(self):
        assert kinds("1 dup+ 2 swap-") == [
            TokenType.NUMBER,
            TokenType.DUP,
            TokenType.PLUS,
            TokenType.NUMBER,
            TokenType.SWAP,
            TokenType.MINUS,
        ]
