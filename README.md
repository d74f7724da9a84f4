# secmonitor

Risk analysis of shell commands. A command line can be broken into
typed tokens, and a command tree can be scored against built-in rules
for privilege escalation, data exfiltration, reconnaissance,
persistence, lateral movement, defence evasion and network activity.

The package is a library. It has no command-line program.

## Installation

```
pip install .
```

## Tokenizing a command

```python
from secmonitor.lexer import Lexer

for token in Lexer().tokenize("sudo chmod 777 /tmp/run.sh"):
    print(token.type, token.value, token.line, token.column)
```

`Lexer.tokenize` returns a list of `Token` objects. Each one has a
`TokenType` such as `COMMAND`, `PARAMETER`, `FLAG`, `PATH`, `URL`,
`ENCODED`, `NUMBER`, `STRING`, `VARIABLE`, `PIPE`, `REDIRECT` or
`OPERATOR`. The list always ends with an `EOF` token.

A word is classified in this order:

1. path
2. IPv4 address
3. URL
4. base64 or long hex string
5. flag (leading `-`)
6. known command
7. parameter

A word that starts with a digit is read as a `NUMBER`.

The lexer also consumes the one character that directly follows each
token. Separate tokens with whitespace, as in `cat file | grep x`. If
you write `cat|grep`, the `|` is lost.

The classifiers can be used on their own:

```python
from secmonitor.lexer import determine_token_type, is_known_command, normalize_command

determine_token_type("192.168.1.10:22")   # TokenType.IP_ADDRESS
determine_token_type("-la")               # TokenType.FLAG
is_known_command("nmap")                  # True
normalize_command("dir")                  # "ls"
```

`normalize_command` maps aliases such as `ll`, `dir`, `copy` and `del`
to their canonical command.

## Scoring a command tree

`Analyzer.analyze` takes three arguments:

- a command tree built from `ASTNode` objects
- a user name
- a timestamp

The node types it recognises are:

- `Command` and `Pipeline`
- `CommandName`, `Argument` and `Flag`
- `Pipe`, `Separator`, `LogicalOperator`, `Redirection` and `RedirectionTarget`

The `token` of an `Argument` node decides whether it counts as a path,
an IP address or a URL.

```python
from datetime import datetime

from secmonitor.analyzer import Analyzer
from secmonitor.models import ASTNode, Token, TokenType

path = Token(type=TokenType.PATH, value="/etc/passwd")
command = ASTNode(
    type="Command",
    children=[
        ASTNode(type="CommandName", value="sudo"),
        ASTNode(type="Argument", value="/etc/passwd", token=path),
    ],
)

result = Analyzer().analyze(command, "alice", datetime(2024, 1, 1, 12, 0))
print(result.original_command)   # sudo /etc/passwd
print(result.risk_level)         # CRÍTICO
print(result.risk_score)         # 10.0
print(result.is_blocked)         # True
print(result.reasons)
print(result.recommendations)
```

### What the score is made of

The score starts from several sources:

- behaviours of the commands found in the tree, such as `sudo`, `whoami`, `crontab`, `curl`, `chmod 777`, or `cat … | curl`
- the built-in suspicious patterns
- sensitive files
- external IP addresses
- suspicious URL hosts

It is then raised in these cases:

- The command runs before 06:00 or after 22:59.
- Three or more of the user's last ten commands are reconnaissance commands. The analyzer keeps that history per user in `Analyzer.user_contexts`.

The score is then multiplied once for each threat category found:
privilege escalation by 1.5, data exfiltration by 1.3 and persistence
by 1.2. The result is capped at 10.

The levels are:

| Score | Level |
|-------|-------|
| 2.5 and above | `BAJO` |
| 5 and above | `MEDIO` |
| 7.5 and above | `ALTO` |
| 10 | `CRÍTICO`, and the result is marked as blocked |

`Analyzer.extract_behaviors`, `Analyzer.analyze_command` and
`Analyzer.analyze_pipeline` return the detected `Behavior` objects
without scoring them.

## Helpers

`secmonitor.helpers` holds the tree walkers and checks the analyzer
uses. These include:

- `reconstruct_command`
- `extract_file_paths`, `extract_ip_addresses` and `extract_urls`
- `is_external_ip`, `is_suspicious_url` and `is_sensitive_file_pattern`
- `is_recon_command`
- `matches_pattern`

It also provides the built-in sets:

- `default_rules()`
- `default_suspicious_files()`
- `default_patterns()`

## What the package does not do

- It does not build command trees from tokens. There is no parser, so the `ASTNode` tree passed to `Analyzer.analyze` must be built by the caller.
- There is no interactive prompt and no monitoring loop.
- `Analyzer.rules` holds the default `SecurityRule` list, but scoring does not use it.
- `Alert`, `CommandStats`, `UserStats` and `CommandInput` in `secmonitor.models` are plain data types. Nothing in the package fills them in or stores them.