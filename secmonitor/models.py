"""Core data types shared by the lexer, parser and semantic analyzer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum


class TokenType(IntEnum):
    """Kinds of tokens recognised in a shell command."""

    COMMAND = 0
    PARAMETER = 1
    FLAG = 2
    PATH = 3
    OPERATOR = 4
    REDIRECT = 5
    PIPE = 6
    SEMICOLON = 7
    AMPERSAND = 8
    IP_ADDRESS = 9
    PORT = 10
    URL = 11
    VARIABLE = 12
    SPECIAL_CHAR = 13
    STRING = 14
    NUMBER = 15
    ENCODED = 16
    WILDCARD = 17
    EOF = 18

    def __str__(self) -> str:
        return self.name


@dataclass
class Token:
    """A single lexical token with its location in the input."""

    type: TokenType
    value: str = ""
    position: int = 0
    line: int = 1
    column: int = 0


@dataclass
class CommandInput:
    """A command submitted for analysis."""

    command: str
    user: str
    timestamp: datetime
    source: str = ""


@dataclass
class ASTNode:
    """A node of the abstract syntax tree built from a command."""

    type: str
    value: str = ""
    children: list[ASTNode] = field(default_factory=list)
    token: Token | None = None


class _DisplayEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class RiskLevel(_DisplayEnum):
    """Risk levels assigned to an analysed command."""

    NO_RISK = "SIN_RIESGO"
    LOW = "BAJO"
    MEDIUM = "MEDIO"
    HIGH = "ALTO"
    CRITICAL = "CRÍTICO"


NO_RISK_SCORE = 0.0
LOW_RISK_SCORE = 2.5
MEDIUM_RISK_SCORE = 5.0
HIGH_RISK_SCORE = 7.5
CRITICAL_RISK_SCORE = 10.0


class ThreatCategory(_DisplayEnum):
    """Categories of threat a command may belong to."""

    PRIVILEGE_ESCALATION = "ESCALACIÓN_PRIVILEGIOS"
    DATA_EXFILTRATION = "EXFILTRACIÓN_DATOS"
    RECONNAISSANCE = "RECONOCIMIENTO"
    PERSISTENCE = "PERSISTENCIA"
    LATERAL_MOVEMENT = "MOVIMIENTO_LATERAL"
    DEFENSE_EVASION = "EVASIÓN_DEFENSAS"
    NETWORK_ACTIVITY = "ACTIVIDAD_RED"
    SYSTEM_MODIFICATION = "MODIFICACIÓN_SISTEMA"


class CommandCategory(_DisplayEnum):
    """Functional classification of commands."""

    SYSTEM_INFO = "INFORMACIÓN_SISTEMA"
    FILE_SYSTEM = "SISTEMA_ARCHIVOS"
    NETWORK = "RED"
    PROCESS = "PROCESOS"
    USER_MANAGEMENT = "GESTIÓN_USUARIOS"
    ARCHIVE = "ARCHIVOS_COMPRIMIDOS"
    TEXT = "PROCESAMIENTO_TEXTO"
    MONITORING = "MONITOREO"
    SECURITY = "SEGURIDAD"
    UNKNOWN = "DESCONOCIDO"


@dataclass
class AnalysisResult:
    """Outcome of analysing one command."""

    original_command: str = ""
    user: str = ""
    timestamp: datetime | None = None
    tokens: list[Token] = field(default_factory=list)
    ast: ASTNode | None = None
    risk_score: float = 0.0
    risk_level: RiskLevel = RiskLevel.NO_RISK
    threat_categories: list[ThreatCategory] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    is_blocked: bool = False
    processing_time: timedelta = field(default_factory=timedelta)


@dataclass
class SuspiciousPattern:
    """A known-suspicious command pattern and its risk contribution."""

    name: str
    description: str
    commands: list[str] = field(default_factory=list)
    regex: str = ""
    risk_score: float = 0.0
    category: ThreatCategory = ThreatCategory.RECONNAISSANCE


@dataclass
class UserContext:
    """Per-user session state kept between commands."""

    username: str
    last_commands: list[str] = field(default_factory=list)
    session_start: datetime | None = None
    failed_attempts: int = 0
    privilege_level: str = "user"
    working_dir: str = ""
    suspicious_score: float = 0.0


@dataclass
class Alert:
    """An alert raised for a risky command."""

    id: str
    timestamp: datetime
    user: str
    command: str
    risk_level: RiskLevel
    risk_score: float
    category: ThreatCategory
    description: str = ""
    recommendations: list[str] = field(default_factory=list)
    acknowledged: bool = False
    acknowledged_by: str = ""
    acknowledged_at: datetime | None = None


@dataclass
class SecurityRule:
    """A named security rule expressed as a regular expression."""

    id: str
    name: str
    description: str
    pattern: str
    category: ThreatCategory
    severity: RiskLevel
    action: str = "LOG"
    enabled: bool = True


class ParseError(Exception):
    """Raised when a token sequence cannot be parsed."""

    def __init__(
        self,
        message: str,
        token: Token | None = None,
        expected: str = "",
        got: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.token = token
        self.expected = expected
        self.got = got

    def __str__(self) -> str:
        if self.token is not None:
            return (
                f"error de parsing en línea {self.token.line}, "
                f"columna {self.token.column}: {self.message}. "
                f"Esperaba {self.expected}, obtuvo {self.got}"
            )
        return f"error de parsing: {self.message}"


@dataclass
class UserStats:
    """Aggregated statistics for one user."""

    command_count: int = 0
    risk_score: float = 0.0
    last_activity: datetime | None = None
    most_used_command: str = ""
    violations: int = 0


@dataclass
class CommandStats:
    """Aggregated statistics over all analysed commands."""

    total_commands: int = 0
    risky_commands: int = 0
    blocked_commands: int = 0
    user_stats: dict[str, UserStats] = field(default_factory=dict)
    category_stats: dict[CommandCategory, int] = field(default_factory=dict)
    threat_stats: dict[ThreatCategory, int] = field(default_factory=dict)
    hourly_activity: list[int] = field(default_factory=lambda: [0] * 24)
    last_updated: datetime | None = None