"""Helpers for the semantic analysis of command syntax trees."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterator

from secmonitor.models import (
    ASTNode,
    RiskLevel,
    SecurityRule,
    SuspiciousPattern,
    ThreatCategory,
    TokenType,
)

_VALUE_NODES = frozenset({"CommandName", "Argument", "Flag", "RedirectionTarget"})
_OPERATOR_NODES = frozenset({"Separator", "LogicalOperator", "Redirection"})

_PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "127.0.0.0/8")
)

_SUSPICIOUS_URL_PATTERNS = tuple(
    re.compile(pattern, re.ASCII)
    for pattern in (
        r"bit\.ly",
        r"tinyurl\.com",
        r"pastebin\.com",
        r"raw\.githubusercontent\.com",
        r"ngrok\.io",
        r"duckdns\.org",
        r"\.tk\Z",
        r"\.ml\Z",
        r"\.ga\Z",
        r"\.cf\Z",
    )
)

_SENSITIVE_FILE_PATTERNS = tuple(
    re.compile(pattern, re.ASCII)
    for pattern in (
        r"/etc/passwd",
        r"/etc/shadow",
        r"/etc/hosts",
        r"/etc/sudoers",
        r"/root/",
        r"\.ssh/",
        r"\.bash_history",
        r"\.mysql_history",
        r"/var/log/",
        r"/proc/",
        r"/sys/",
        r"\.key\Z",
        r"\.pem\Z",
        r"\.p12\Z",
        r"\.pfx\Z",
        r"config",
        r"credentials",
        r"password",
    )
)

_RECON_COMMANDS = frozenset(
    {
        "whoami", "id", "uname", "hostname",
        "ps", "netstat", "ss", "lsof",
        "find", "locate", "which", "whereis",
        "env", "printenv", "set",
    }
)


def _walk(node: ASTNode) -> Iterator[ASTNode]:
    yield node
    for child in node.children:
        yield from _walk(child)


def _argument_values(node: ASTNode, kind: TokenType) -> list[str]:
    return [
        n.value
        for n in _walk(node)
        if n.type == "Argument" and n.token is not None and n.token.type == kind
    ]


def reconstruct_command(node: ASTNode) -> str:
    """Rebuild the command text from a syntax tree, words joined by spaces."""
    parts: list[str] = []
    if node.type in _VALUE_NODES:
        if node.value:
            parts.append(node.value)
    elif node.type == "Pipe":
        parts.append("|")
    elif node.type in _OPERATOR_NODES:
        parts.append(node.value)

    parts.extend(
        text for text in (reconstruct_command(child) for child in node.children) if text
    )
    return " ".join(parts)


def get_command_name(node: ASTNode) -> str:
    """Return the value of the first CommandName child, or an empty string."""
    return next(
        (child.value for child in node.children if child.type == "CommandName"), ""
    )


def extract_ip_addresses(node: ASTNode) -> list[str]:
    """Return every IP address argument in the tree, in depth-first order."""
    return _argument_values(node, TokenType.IP_ADDRESS)


def extract_urls(node: ASTNode) -> list[str]:
    """Return every URL argument in the tree, in depth-first order."""
    return _argument_values(node, TokenType.URL)


def extract_file_paths(node: ASTNode) -> list[str]:
    """Return every path argument in the tree, in depth-first order."""
    return _argument_values(node, TokenType.PATH)


def is_external_ip(ip: str) -> bool:
    """Return True if ``ip`` parses and lies outside the private and loopback ranges."""
    if "%" in ip:
        return False
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    if isinstance(address, ipaddress.IPv6Address):
        mapped = address.ipv4_mapped
        if mapped is None:
            return True
        address = mapped
    return not any(address in network for network in _PRIVATE_NETWORKS)


def has_external_ips(node: ASTNode) -> bool:
    """Return True if any IP argument in the tree is external."""
    return any(is_external_ip(ip) for ip in extract_ip_addresses(node))


def has_permissive_permissions(node: ASTNode) -> bool:
    """Return True if a direct argument grants 777 or 666 permissions."""
    return any(
        child.type == "Argument" and child.value in ("777", "666")
        for child in node.children
    )


def extract_pipeline_commands(node: ASTNode) -> list[str]:
    """Return the names of the commands directly inside a pipeline node."""
    names = (get_command_name(child) for child in node.children if child.type == "Command")
    return [name for name in names if name]


def is_suspicious_url(url: str) -> bool:
    """Return True if ``url`` points at a host often used for payloads or exfiltration."""
    return any(pattern.search(url) for pattern in _SUSPICIOUS_URL_PATTERNS)


def is_sensitive_file_pattern(path: str) -> bool:
    """Return True if ``path`` (case-insensitively) names a sensitive file or area."""
    lowered = path.lower()
    return any(pattern.search(lowered) for pattern in _SENSITIVE_FILE_PATTERNS)


def is_recon_command(command: str) -> bool:
    """Return True if ``command`` is typically used for reconnaissance."""
    return command in _RECON_COMMANDS


def matches_pattern(ast: ASTNode, pattern: SuspiciousPattern) -> bool:
    """Return True if the command in ``ast`` matches the pattern's regex or commands."""
    command = reconstruct_command(ast)
    if pattern.regex:
        try:
            if re.search(pattern.regex, command, re.ASCII):
                return True
        except re.error:
            pass
    return any(cmd in command for cmd in pattern.commands)


def default_rules() -> list[SecurityRule]:
    """Return the built-in security rules."""
    return [
        SecurityRule(
            id="PRIV_ESC_SUDO",
            name="Escalación con sudo",
            description="Uso de sudo para ejecutar comandos",
            pattern=r"^sudo\s+",
            category=ThreatCategory.PRIVILEGE_ESCALATION,
            severity=RiskLevel.HIGH,
            action="ALERT",
            enabled=True,
        ),
        SecurityRule(
            id="DATA_EXFIL_CURL",
            name="Exfiltración con curl",
            description="Uso de curl para enviar datos",
            pattern=r"curl.*-d\s+@",
            category=ThreatCategory.DATA_EXFILTRATION,
            severity=RiskLevel.CRITICAL,
            action="BLOCK",
            enabled=True,
        ),
        SecurityRule(
            id="RECON_ENUM",
            name="Enumeración del sistema",
            description="Comandos de reconocimiento del sistema",
            pattern=r"(whoami|id|uname|hostname)\s*$",
            category=ThreatCategory.RECONNAISSANCE,
            severity=RiskLevel.MEDIUM,
            action="LOG",
            enabled=True,
        ),
        SecurityRule(
            id="PERSIST_CRON",
            name="Persistencia con cron",
            description="Modificación de tareas programadas",
            pattern=r"crontab\s+-e",
            category=ThreatCategory.PERSISTENCE,
            severity=RiskLevel.HIGH,
            action="ALERT",
            enabled=True,
        ),
        SecurityRule(
            id="NET_SHELL",
            name="Shell reversa",
            description="Intento de shell reversa con netcat",
            pattern=r"nc.*-l.*-p\s+\d+",
            category=ThreatCategory.NETWORK_ACTIVITY,
            severity=RiskLevel.CRITICAL,
            action="BLOCK",
            enabled=True,
        ),
    ]


def default_suspicious_files() -> dict[str, float]:
    """Return the built-in map of sensitive file paths to risk scores."""
    return {
        "/etc/passwd": 8.0,
        "/etc/shadow": 9.0,
        "/etc/sudoers": 8.5,
        "/etc/hosts": 6.0,
        "/root/.bashrc": 7.0,
        "/root/.ssh": 8.0,
        "/var/log/auth.log": 6.5,
        "/var/log/secure": 6.5,
        "/home/*/.ssh": 7.5,
        "/tmp": 3.0,
        "/dev/shm": 4.0,
        "/var/tmp": 3.5,
        "/proc/version": 5.0,
        "/proc/cpuinfo": 4.0,
        "/sys/class/net": 5.5,
    }


def default_patterns() -> list[SuspiciousPattern]:
    """Return the built-in suspicious command patterns."""
    return [
        SuspiciousPattern(
            name="Shell Reversa Básica",
            description="Intento de establecer shell reversa",
            commands=["nc", "ncat", "bash", "/dev/tcp"],
            regex=r"(nc|ncat).*-l.*-p\s+\d+|bash\s+.*>/dev/tcp/",
            risk_score=9.0,
            category=ThreatCategory.NETWORK_ACTIVITY,
        ),
        SuspiciousPattern(
            name="Exfiltración con Base64",
            description="Codificación y exfiltración de datos",
            commands=["base64", "curl", "wget"],
            regex=r"base64.*\|.*(curl|wget)",
            risk_score=8.5,
            category=ThreatCategory.DATA_EXFILTRATION,
        ),
        SuspiciousPattern(
            name="Descarga de Payloads",
            description="Descarga de archivos ejecutables",
            commands=["wget", "curl"],
            regex=r"(wget|curl).*\.(sh|py|pl|elf|bin)",
            risk_score=7.5,
            category=ThreatCategory.DEFENSE_EVASION,
        ),
        SuspiciousPattern(
            name="Modificación de Permisos Críticos",
            description="Cambio de permisos a archivos del sistema",
            commands=["chmod"],
            regex=r"chmod\s+(777|755|644).*/(etc|usr|var|sys|proc)",
            risk_score=8.0,
            category=ThreatCategory.SYSTEM_MODIFICATION,
        ),
        SuspiciousPattern(
            name="Búsqueda de Archivos SUID",
            description="Búsqueda de binarios con permisos SUID",
            commands=["find"],
            regex=r"find.*-perm.*[us]\+s",
            risk_score=6.5,
            category=ThreatCategory.PRIVILEGE_ESCALATION,
        ),
        SuspiciousPattern(
            name="Limpieza de Logs",
            description="Intento de borrar logs del sistema",
            commands=["rm", "shred", ">"],
            regex=r"(rm|shred).*/(var/log|\.bash_history)|>\s*/var/log",
            risk_score=7.0,
            category=ThreatCategory.DEFENSE_EVASION,
        ),
        SuspiciousPattern(
            name="Enumeración de Red",
            description="Escaneo de red y puertos",
            commands=["nmap", "nc", "ping"],
            regex=r"nmap.*-s[STAU]|nc.*-z.*-v|ping.*-c\s+\d+.*192\.168|10\.|172\.",
            risk_score=5.5,
            category=ThreatCategory.RECONNAISSANCE,
        ),
        SuspiciousPattern(
            name="Persistencia por SSH",
            description="Modificación de claves SSH autorizadas",
            commands=["echo", "cat", ">>"],
            regex=r"(echo|cat).*>>.*authorized_keys",
            risk_score=8.5,
            category=ThreatCategory.PERSISTENCE,
        ),
        SuspiciousPattern(
            name="Dumping de Memoria",
            description="Volcado de memoria de procesos",
            commands=["dd", "hexdump", "strings"],
            regex=r"dd.*if=/dev/mem|strings\s+/proc/\d+/mem",
            risk_score=7.5,
            category=ThreatCategory.DATA_EXFILTRATION,
        ),
        SuspiciousPattern(
            name="Túnel SSH",
            description="Establecimiento de túnel SSH",
            commands=["ssh"],
            regex=r"ssh.*-[LRD]\s+\d+:",
            risk_score=6.0,
            category=ThreatCategory.LATERAL_MOVEMENT,
        ),
    ]