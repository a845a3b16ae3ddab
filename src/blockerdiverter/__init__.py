"""Blocker Diverter: keeps autonomous agent sessions running past blocking questions."""

__version__ = "0.1.0"

# Public API
from blockerdiverter.config import PluginConfig, get_config, load_config
from blockerdiverter.dedupe import CooldownGate
from blockerdiverter.errors import (
    BlockerDiverterError,
    BlockerValidationError,
    EventValidationError,
    PathTraversalError,
    QuestionToolBlocked,
)
from blockerdiverter.fingerprint import fingerprint
from blockerdiverter.host import HostClient
from blockerdiverter.models import (
    Blocker,
    BlockerCategory,
    BlockerDraft,
    BlockerToolArgs,
    ClarificationStatus,
    SessionState,
)
from blockerdiverter.persistence import BlockerLog, clear_template_cache
from blockerdiverter.plugin import BlockerDiverter
from blockerdiverter.recorder import BlockerRecorder, RecordOutcome
from blockerdiverter.scheduler import ContinuationScheduler, IdleDecision
from blockerdiverter.state import SessionRegistry
from blockerdiverter.timeout import PromptTimeoutError

__all__ = [
    # Main entry point
    "BlockerDiverter",
    "HostClient",
    # Config
    "PluginConfig",
    "load_config",
    "get_config",
    # Model
    "Blocker",
    "BlockerCategory",
    "BlockerDraft",
    "BlockerToolArgs",
    "ClarificationStatus",
    "SessionState",
    # Engine
    "SessionRegistry",
    "CooldownGate",
    "BlockerLog",
    "BlockerRecorder",
    "RecordOutcome",
    "ContinuationScheduler",
    "IdleDecision",
    "fingerprint",
    "clear_template_cache",
    # Errors
    "BlockerDiverterError",
    "BlockerValidationError",
    "EventValidationError",
    "PathTraversalError",
    "PromptTimeoutError",
    "QuestionToolBlocked",
]
