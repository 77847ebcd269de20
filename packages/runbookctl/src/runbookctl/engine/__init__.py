"""PowerShell engine adapters."""
from .pwsh import ParsedScript, PowerShellEngine, PwshEngine, ScriptParseError

__all__ = ["ParsedScript", "PowerShellEngine", "PwshEngine", "ScriptParseError"]
