"""Tokenizing of shell commands and risk scoring of command trees."""

__version__ = "0.1.0"
__all__ = ["models", "lexer", "helpers", "analyzer"]