from interview_runtime.session.gateway import RuntimeGateway
from interview_runtime.session.orchestrator import SessionOrchestrator
from interview_runtime.session.registry import SessionRegistry, session_registry

__all__ = ["RuntimeGateway", "SessionOrchestrator", "SessionRegistry", "session_registry"]
