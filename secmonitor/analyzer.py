"""Semantic analysis of command syntax trees into risk assessments."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta

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
    CRITICAL_RISK_SCORE,
    HIGH_RISK_SCORE,
    LOW_RISK_SCORE,
    MEDIUM_RISK_SCORE,
    AnalysisResult,
    ASTNode,
    RiskLevel,
    ThreatCategory,
    UserContext,
)

_MAX_SCORE = 10.0
_HISTORY_LENGTH = 10

# Score added and category recorded for each kind of behaviour.
_BEHAVIOR_EFFECTS: dict[str, tuple[float, ThreatCategory]] = {
    "privilege_escalation": (8.0, ThreatCategory.PRIVILEGE_ESCALATION),
    "data_exfiltration": (7.5, ThreatCategory.DATA_EXFILTRATION),
    "reconnaissance": (5.0, ThreatCategory.RECONNAISSANCE),
    "persistence": (6.5, ThreatCategory.PERSISTENCE),
    "lateral_movement": (6.0, ThreatCategory.LATERAL_MOVEMENT),
    "defense_evasion": (5.5, ThreatCategory.DEFENSE_EVASION),
    "network_activity": (4.0, ThreatCategory.NETWORK_ACTIVITY),
}

_PRIVILEGE_ESCALATION_COMMANDS = dict(
    zip(
        ("sudo", "su", "passwd"),
        (
            "Ejecución con privilegios elevados",
            "Cambio de usuario",
            "Modificación de contraseña",
        ),
    )
)

_RECON_COMMANDS = {
    "whoami": "Identificación de usuario actual",
    "id": "Consulta de identificadores de usuario",
    "uname": "Información del sistema",
    "hostname": "Consulta de nombre del host",
    "ps": "Listado de procesos",
    "netstat": "Consulta de conexiones de red",
    "ss": "Análisis de sockets",
    "lsof": "Archivos abiertos por procesos",
    "find": "Búsqueda en sistema de archivos",
}

_PERSISTENCE_COMMANDS = {
    "crontab": "Programación de tareas",
    "systemctl": "Gestión de servicios del sistema",
    "service": "Control de servicios",
    "chkconfig": "Configuración de servicios de arranque",
}

_NETWORK_COMMANDS = {
    "curl": "Transferencia de datos HTTP",
    "wget": "Descarga de archivos web",
    "nc": "Netcat - conexión de red",
    "ncat": "Ncat - conexión de red mejorada",
    "ssh": "Conexión SSH",
    "scp": "Copia segura por red",
    "rsync": "Sincronización remota",
    "telnet": "Conexión Telnet",
}

_CATEGORY_MULTIPLIERS = {
    ThreatCategory.PRIVILEGE_ESCALATION: 1.5,
    ThreatCategory.DATA_EXFILTRATION: 1.3,
    ThreatCategory.PERSISTENCE: 1.2,
}

_CATEGORY_RECOMMENDATIONS = {
    ThreatCategory.PRIVILEGE_ESCALATION: "Revisar políticas de sudo y acceso administrativo",
    ThreatCategory.DATA_EXFILTRATION: "Implementar DLP y monitoreo de tráfico de red",
    ThreatCategory.RECONNAISSANCE: "Monitorear actividad de reconocimiento del usuario",
    ThreatCategory.PERSISTENCE: "Auditar cambios en servicios y tareas programadas",
}

_HIGH_RISK_RECOMMENDATION = "Investigar inmediatamente la actividad del usuario"


@dataclass
class Behavior:
    """A behaviour detected in a command, with its nominal severity."""

    type: str
    description: str
    severity: float


def _risk_level(score: float) -> RiskLevel:
    if score >= CRITICAL_RISK_SCORE:
        return RiskLevel.CRITICAL
    if score >= HIGH_RISK_SCORE:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    if score >= LOW_RISK_SCORE:
        return RiskLevel.LOW
    return RiskLevel.NO_RISK


class Analyzer:
    """Scores command syntax trees for security risk, keeping per-user context."""

    def __init__(self) -> None:
        self.rules = default_rules()
        self.suspicious_files = default_suspicious_files()
        self.patterns = default_patterns()
        self.user_contexts: dict[str, UserContext] = {}

    def analyze(self, ast: ASTNode, user: str, timestamp: datetime) -> AnalysisResult:
        """Analyse ``ast`` run by ``user`` at ``timestamp`` and return the assessment."""
        started = time.perf_counter()

        result = AnalysisResult(
            original_command=reconstruct_command(ast),
            user=user,
            timestamp=timestamp,
            ast=ast,
        )

        self._update_user_context(user, result.original_command, timestamp)
        self._analyze_behavior(ast, result)
        self._analyze_patterns(ast, result)
        self._analyze_temporal_patterns(user, timestamp, result)
        self._analyze_sensitive_files(ast, result)
        self._analyze_network_activity(ast, result)
        self._calculate_final_risk(result)

        result.processing_time = timedelta(seconds=time.perf_counter() - started)
        return result

    def extract_behaviors(self, node: ASTNode) -> list[Behavior]:
        """Return every behaviour found in the tree, in depth-first order."""
        behaviors: list[Behavior] = []
        if node.type == "Command":
            behaviors.extend(self.analyze_command(get_command_name(node), node))
        elif node.type == "Pipeline":
            behaviors.extend(self.analyze_pipeline(node))

        for child in node.children:
            behaviors.extend(self.extract_behaviors(child))
        return behaviors

    def analyze_command(self, command: str, node: ASTNode) -> list[Behavior]:
        """Return the behaviours implied by running ``command`` as in ``node``."""
        behaviors: list[Behavior] = []

        if command in _PRIVILEGE_ESCALATION_COMMANDS:
            behaviors.append(
                Behavior("privilege_escalation", _PRIVILEGE_ESCALATION_COMMANDS[command], 8.0)
            )
        if command in _RECON_COMMANDS:
            behaviors.append(Behavior("reconnaissance", _RECON_COMMANDS[command], 5.0))
        if command in _PERSISTENCE_COMMANDS:
            behaviors.append(Behavior("persistence", _PERSISTENCE_COMMANDS[command], 6.5))
        if command in _NETWORK_COMMANDS:
            behaviors.append(Behavior("network_activity", _NETWORK_COMMANDS[command], 4.0))
            if has_external_ips(node):
                behaviors.append(
                    Behavior(
                        "data_exfiltration",
                        "Comunicación con direcciones IP externas",
                        7.5,
                    )
                )
        if command == "chmod" and has_permissive_permissions(node):
            behaviors.append(
                Behavior(
                    "privilege_escalation",
                    "Asignación de permisos permisivos (777)",
                    6.0,
                )
            )
        return behaviors

    def analyze_pipeline(self, node: ASTNode) -> list[Behavior]:
        """Return exfiltration behaviours detected in a pipeline."""
        commands = extract_pipeline_commands(node)
        if len(commands) < 2:
            return []

        first, last = commands[0], commands[-1]
        behaviors: list[Behavior] = []
        if first in ("cat", "grep") and last in ("curl", "wget"):
            behaviors.append(
                Behavior("data_exfiltration", "Pipeline de exfiltración de datos", 8.5)
            )
        if last in ("nc", "ncat"):
            behaviors.append(Behavior("data_exfiltration", "Envío de datos por netcat", 7.0))
        return behaviors

    def _update_user_context(self, user: str, command: str, timestamp: datetime) -> None:
        context = self.user_contexts.get(user)
        if context is None:
            context = UserContext(
                username=user,
                session_start=timestamp,
                privilege_level="user",
                working_dir="/home/" + user,
            )
            self.user_contexts[user] = context

        context.last_commands.append(command)
        if len(context.last_commands) > _HISTORY_LENGTH:
            del context.last_commands[0]

    def _analyze_behavior(self, ast: ASTNode, result: AnalysisResult) -> None:
        for behavior in self.extract_behaviors(ast):
            effect = _BEHAVIOR_EFFECTS.get(behavior.type)
            if effect is None:
                continue
            score, category = effect
            result.risk_score += score
            result.threat_categories.append(category)
            result.reasons.append(behavior.description)

    def _analyze_patterns(self, ast: ASTNode, result: AnalysisResult) -> None:
        for pattern in self.patterns:
            if matches_pattern(ast, pattern):
                result.risk_score += pattern.risk_score
                result.threat_categories.append(pattern.category)
                result.reasons.append(pattern.description)

    def _analyze_temporal_patterns(
        self, user: str, timestamp: datetime, result: AnalysisResult
    ) -> None:
        hour = timestamp.hour
        if hour < 6 or hour > 22:
            result.risk_score += 2.0
            result.reasons.append("Actividad fuera del horario laboral")

        context = self.user_contexts.get(user)
        if context is not None:
            recon_count = sum(1 for cmd in context.last_commands if is_recon_command(cmd))
            if recon_count >= 3:
                result.risk_score += 3.0
                result.reasons.append("Múltiples comandos de reconocimiento")

    def _analyze_sensitive_files(self, ast: ASTNode, result: AnalysisResult) -> None:
        for path in extract_file_paths(ast):
            score = self.suspicious_files.get(path)
            if score is not None:
                result.risk_score += score
                result.reasons.append(f"Acceso a archivo sensible: {path}")
            if is_sensitive_file_pattern(path):
                result.risk_score += 4.0
                result.reasons.append(f"Patrón de archivo sensible: {path}")

    def _analyze_network_activity(self, ast: ASTNode, result: AnalysisResult) -> None:
        for ip in extract_ip_addresses(ast):
            if is_external_ip(ip):
                result.risk_score += 3.0
                result.threat_categories.append(ThreatCategory.NETWORK_ACTIVITY)
                result.reasons.append(f"Comunicación con IP externa: {ip}")

        for url in extract_urls(ast):
            if is_suspicious_url(url):
                result.risk_score += 5.0
                result.threat_categories.append(ThreatCategory.DATA_EXFILTRATION)
                result.reasons.append(f"URL sospechosa: {url}")

    def _calculate_final_risk(self, result: AnalysisResult) -> None:
        for category in result.threat_categories:
            result.risk_score *= _CATEGORY_MULTIPLIERS.get(category, 1.0)

        result.risk_score = min(result.risk_score, _MAX_SCORE)
        result.risk_level = _risk_level(result.risk_score)
        result.is_blocked = result.risk_level is RiskLevel.CRITICAL

        result.recommendations.extend(
            _CATEGORY_RECOMMENDATIONS[category]
            for category in result.threat_categories
            if category in _CATEGORY_RECOMMENDATIONS
        )
        if result.risk_score >= HIGH_RISK_SCORE:
            result.recommendations.append(_HIGH_RISK_RECOMMENDATION)