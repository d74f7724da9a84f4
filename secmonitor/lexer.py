"""Lexical analysis of shell command lines into classified tokens."""

from __future__ import annotations

import base64
import binascii
import dataclasses
import re
import string
from collections.abc import Iterable, Iterator

from secmonitor.models import Token, TokenType

_END = "\x00"
_DIGITS = frozenset(string.digits)
_HEX_DIGITS = frozenset(string.hexdigits)
_IDENTIFIER_START = frozenset("_/.-")
_IDENTIFIER_EXTRA = frozenset("_-./:=")
_WHITESPACE = frozenset(" \t\n\r")
_WILDCARDS = frozenset("*?[]")

_PATH_PATTERNS = tuple(
    re.compile(pattern, re.ASCII)
    for pattern in (
        r"^/[a-zA-Z0-9._/-]*",
        r"^\.{1,2}/[a-zA-Z0-9._/-]*",
        r"^~[a-zA-Z0-9._/-]*",
        r".*\.[a-zA-Z0-9]+\Z",
    )
)
_IP_PATTERN = re.compile(r"(\d{1,3}\.){3}\d{1,3}(:\d+)?", re.ASCII)
_URL_PATTERN = re.compile(r"https?://[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}(/.*)?", re.ASCII)

_KNOWN_COMMANDS = frozenset(
    """
    sudo su passwd find curl wget nc ncat netcat
    ls cat grep ps top htop netstat ss lsof whoami id uname hostname
    ping ssh scp rsync telnet
    chmod chown cp mv rm mkdir rmdir touch ln
    useradd userdel usermod groups newgrp
    kill killall nohup screen tmux
    tar gzip gunzip zip unzip
    tail head less more watch
    mount umount df du free crontab systemctl service chkconfig
    iptables nmap tcpdump wireshark arp route ip ifconfig
    echo printf test bash sh awk sed sort uniq cut tr wc xargs tee diff
    which whereis locate updatedb history alias unalias export
    env printenv set unset jobs fg bg disown clear reset date cal
    uptime w who last vim vi nano emacs make gcc python python3
    git docker kubectl mysql psql sqlite3 apache2 nginx httpd
    base64 openssl gpg md5sum sha1sum sha256sum dd hexdump strings xxd
    strace ltrace gdb john hashcat hydra metasploit msfconsole msfvenom
    aircrack-ng nikto dirb gobuster ffuf wfuzz sqlmap burpsuite nessus
    volatility autopsy binwalk foremost photorec testdisk
    chkrootkit rkhunter lynis fail2ban aide tripwire clamav freshclam maldet
    socat stunnel openvpn tor proxychains steghide exiftool yara masscan
    zmap hping3 ettercap bettercap mitmproxy dsniff tcpkill scapy ncrack
    medusa patator wpscan joomscan droopescan cmseek whatweb webtech
    sublist3r amass subfinder assetfinder findomain knockpy dnsrecon
    fierce dnsmap theharvester maltego recon-ng spiderfoot shodan censys
    rustscan naabu sx unicornscan
    """.split()
)

_COMMAND_ALIASES = {
    "ll": "ls",
    "la": "ls",
    "l": "ls",
    "dir": "ls",
    "copy": "cp",
    "move": "mv",
    "del": "rm",
    "type": "cat",
    "cls": "clear",
    "md": "mkdir",
    "rd": "rmdir",
}


def _is_letter(ch: str) -> bool:
    return ch.isalpha()


def _is_digit(ch: str) -> bool:
    return ch in _DIGITS


def is_path(s: str) -> bool:
    """Return True if ``s`` looks like a file-system path or a file name."""
    return any(pattern.search(s) for pattern in _PATH_PATTERNS)


def is_ip_address(s: str) -> bool:
    """Return True if ``s`` is a dotted IPv4 address, optionally with a port."""
    return _IP_PATTERN.fullmatch(s) is not None


def is_url(s: str) -> bool:
    """Return True if ``s`` is an http or https URL."""
    return _URL_PATTERN.fullmatch(s) is not None


def is_base64(s: str) -> bool:
    """Return True if ``s`` is a padded standard base64 string of at least 4 chars."""
    if len(s) < 4 or len(s) % 4 != 0:
        return False
    try:
        base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def is_hex(s: str) -> bool:
    """Return True if ``s`` is a hexadecimal string longer than ten characters."""
    if len(s) < 2 or len(s) % 2 != 0:
        return False
    return all(ch in _HEX_DIGITS for ch in s) and len(s) > 10


def is_encoded(s: str) -> bool:
    """Return True if ``s`` looks base64- or hex-encoded."""
    return is_base64(s) or is_hex(s)


def is_known_command(s: str) -> bool:
    """Return True if ``s`` is a recognised command name."""
    return s in _KNOWN_COMMANDS


def normalize_command(command: str) -> str:
    """Map a command alias to its canonical command name."""
    return _COMMAND_ALIASES.get(command, command)


def determine_token_type(identifier: str) -> TokenType:
    """Classify a bare word read from the command line."""
    if is_path(identifier):
        return TokenType.PATH
    if is_ip_address(identifier):
        return TokenType.IP_ADDRESS
    if is_url(identifier):
        return TokenType.URL
    if is_encoded(identifier):
        return TokenType.ENCODED
    if identifier.startswith("-"):
        return TokenType.FLAG
    if is_known_command(identifier):
        return TokenType.COMMAND
    return TokenType.PARAMETER


def _normalize_tokens(tokens: Iterable[Token]) -> Iterator[Token]:
    for token in tokens:
        if token.type is TokenType.COMMAND:
            token = dataclasses.replace(token, value=normalize_command(token.value))

        if token.type is TokenType.IP_ADDRESS and ":" in token.value:
            parts = token.value.split(":")
            if len(parts) == 2:
                address, port = parts
                yield dataclasses.replace(token, value=address, type=TokenType.IP_ADDRESS)
                yield dataclasses.replace(
                    token,
                    value=port,
                    type=TokenType.PORT,
                    position=token.position + len(address) + 1,
                )
                continue

        yield token


class Lexer:
    """Splits a command line into tokens; reusable across inputs."""

    def __init__(self) -> None:
        self._reset("")

    def _reset(self, text: str) -> None:
        self._text = text
        self._position = 0
        self._read_position = 0
        self._ch = _END
        self._line = 1
        self._column = 0

    def tokenize(self, text: str) -> list[Token]:
        """Return the tokens of ``text``, always ending with an EOF token."""
        self._reset(text)
        self._read_char()

        tokens: list[Token] = []
        while True:
            self._skip_whitespace()
            if self._ch == _END:
                tokens.append(
                    Token(TokenType.EOF, "", self._position, self._line, self._column)
                )
                break
            tokens.append(self._next_token())

        return list(_normalize_tokens(tokens))

    def _next_token(self) -> Token:
        position, line, column = self._position, self._line, self._column
        ch = self._ch

        if ch == "|":
            if self._peek_char() == "|":
                self._read_char()
                kind, value = TokenType.OPERATOR, "||"
            else:
                kind, value = TokenType.PIPE, ch
        elif ch == ">":
            if self._peek_char() == ">":
                self._read_char()
                kind, value = TokenType.REDIRECT, ">>"
            else:
                kind, value = TokenType.REDIRECT, ch
        elif ch == "<":
            kind, value = TokenType.REDIRECT, ch
        elif ch == "&":
            if self._peek_char() == "&":
                self._read_char()
                kind, value = TokenType.OPERATOR, "&&"
            else:
                kind, value = TokenType.AMPERSAND, ch
        elif ch == ";":
            kind, value = TokenType.SEMICOLON, ch
        elif ch in ('"', "'"):
            kind, value = TokenType.STRING, self._read_string(ch)
        elif ch == "$":
            kind, value = TokenType.VARIABLE, self._read_variable()
        elif ch in _WILDCARDS:
            kind, value = TokenType.WILDCARD, ch
        elif _is_letter(ch) or ch in _IDENTIFIER_START:
            value = self._read_identifier()
            kind = determine_token_type(value)
        elif _is_digit(ch):
            kind, value = TokenType.NUMBER, self._read_number()
        else:
            kind, value = TokenType.SPECIAL_CHAR, ch

        # The character following every token is consumed here.
        self._read_char()
        return Token(kind, value, position, line, column)

    def _read_char(self) -> None:
        if self._read_position >= len(self._text):
            self._ch = _END
        else:
            self._ch = self._text[self._read_position]
        self._position = self._read_position
        self._read_position += 1

        if self._ch == "\n":
            self._line += 1
            self._column = 0
        else:
            self._column += 1

    def _peek_char(self) -> str:
        if self._read_position >= len(self._text):
            return _END
        return self._text[self._read_position]

    def _skip_whitespace(self) -> None:
        while self._ch in _WHITESPACE:
            self._read_char()

    def _read_identifier(self) -> str:
        start = self._position
        while (
            _is_letter(self._ch)
            or _is_digit(self._ch)
            or self._ch in _IDENTIFIER_EXTRA
        ):
            self._read_char()
        return self._text[start : self._position]

    def _read_number(self) -> str:
        start = self._position
        while _is_digit(self._ch) or self._ch == ".":
            self._read_char()
        return self._text[start : self._position]

    def _read_string(self, delimiter: str) -> str:
        start = self._position + 1
        while True:
            self._read_char()
            if self._ch in (delimiter, _END):
                break
        return self._text[start : self._position]

    def _read_variable(self) -> str:
        start = self._position
        self._read_char()
        if self._ch == "{":
            while self._ch not in ("}", _END):
                self._read_char()
            if self._ch == "}":
                self._read_char()
        else:
            while _is_letter(self._ch) or _is_digit(self._ch) or self._ch == "_":
                self._read_char()
        return self._text[start : self._position]